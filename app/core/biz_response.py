from typing import Any, Optional

from fastapi.responses import JSONResponse


class BizResponse(JSONResponse):
    """
    统一的接口响应包装：
        {"code": <http 状态码>, "msg": "...", "data": ...}
    - data 需要是可 JSON 序列化的对象（路由层先走 jsonable_encoder）
    """

    def __init__(self, data: Any = None, msg: Optional[str] = "ok", status_code: int = 200, **kwargs):
        super().__init__(
            content={"code": status_code, "msg": msg, "data": data},
            status_code=status_code,
            **kwargs,
        )
