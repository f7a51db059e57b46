from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.routers import auth, profiles, media
from app.storage.database import engine, init_models


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    yield
    await engine.dispose()


app = FastAPI(title="Social Interaction Sync", lifespan=lifespan)

# 注册路由
app.include_router(auth.auth_router)
app.include_router(profiles.profiles_router)
app.include_router(media.media_router)

# uvicorn main:app
# uvicorn main:app --reload
@app.get("/")
def root():
    return {"message": "Welcome to Social Interaction Sync"}
