import pytest
from jose import jwt
from starlette.websockets import WebSocketDisconnect

from app.core.security import create_access_token
from app.models.like import ProfileLike

from tests.factories import account, media_item


def seed(live_app, *rows):
    with live_app.db() as session:
        session.add_all(rows)
        session.commit()


def seed_people(live_app, *names):
    people = [account(name, minutes_ago=i) for i, name in enumerate(names)]
    seed(live_app, *[u for u, _ in people])
    seed(live_app, *[p for _, p in people])
    return [u.id for u, _ in people]


def bearer(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def receive_until(ws, predicate, max_messages=50):
    """读取状态推送，直到某个快照满足条件"""
    for _ in range(max_messages):
        message = ws.receive_json()
        if message["type"] == "state" and predicate(message["data"]):
            return message["data"]
    raise AssertionError("expected state was never pushed")


def receive_type(ws, message_type, max_messages=50):
    for _ in range(max_messages):
        message = ws.receive_json()
        if message["type"] == message_type:
            return message
    raise AssertionError(f"no {message_type} message was pushed")


# ----------------------------- REST -----------------------------

def test_recent_profiles(live_app):
    seed_people(live_app, "dora", "carl", "bea", "al")

    resp = live_app.client.get("/profiles/recent")

    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 200
    assert [p["username"] for p in body["data"]["items"]] == ["dora", "carl", "bea"]


@pytest.mark.parametrize("path", ["/profiles/recent", "/media/"])
@pytest.mark.parametrize("limit", [-1, 0, 101])
def test_list_limit_outside_bounds_is_rejected(live_app, path, limit):
    assert live_app.client.get(path, params={"limit": limit}).status_code == 422


def test_unknown_profile_is_404(live_app):
    resp = live_app.client.get("/profiles/user-ghost")

    assert resp.status_code == 404
    assert resp.json()["data"] is None


def test_media_list_with_viewer_flags(live_app):
    maker, fan = seed_people(live_app, "maker", "fan")
    seed(live_app, media_item("m1", maker, minutes_ago=5), media_item("m2", maker, category="tech"))

    resp = live_app.client.get("/media/", params={"category": "music"}, headers=bearer(fan))

    assert resp.status_code == 200
    [item] = resp.json()["data"]["items"]
    assert item["id"] == "m1"
    assert item["creator"]["username"] == "maker"
    assert item["likes_count"] == 0
    assert item["is_liked_by_user"] is False


def test_media_list_rejects_forged_bearer_token(live_app):
    _, fan = seed_people(live_app, "maker", "fan")
    forged = jwt.encode({"sub": fan}, "not-the-server-secret", algorithm="HS256")

    resp = live_app.client.get("/media/", headers={"Authorization": f"Bearer {forged}"})

    assert resp.status_code == 401


def test_unknown_media_is_404(live_app):
    assert live_app.client.get("/media/missing").status_code == 404


def test_invalid_media_type_is_rejected(live_app):
    assert live_app.client.get("/media/", params={"type": "podcast"}).status_code == 422


# ----------------------------- WebSocket -----------------------------

def test_profile_interactions_converge_across_clients(live_app):
    bob, me, alice = seed_people(live_app, "bob", "me", "alice")
    client = live_app.client
    my_token, her_token = create_access_token(me), create_access_token(alice)

    with client.websocket_connect(f"/profiles/{bob}/interactions?token={my_token}") as mine, \
            client.websocket_connect(f"/profiles/{bob}/interactions?token={her_token}") as hers:
        receive_until(mine, lambda d: d["likes"]["total_count"] == 0)
        receive_until(hers, lambda d: d["likes"]["total_count"] == 0)

        mine.send_json({"action": "toggle_like"})
        state = receive_until(mine, lambda d: d["likes"]["is_active"] and not d["likes"]["pending"])
        assert state["likes"]["total_count"] == 1

        state = receive_until(hers, lambda d: d["likes"]["total_count"] == 1)
        assert state["likes"]["is_active"] is False

        hers.send_json({"action": "comment", "content": "  hi bob  "})
        state = receive_until(mine, lambda d: d["comments"]["total_count"] == 1 and d["comments"]["items"])
        assert state["comments"]["items"][0]["content"] == "hi bob"
        assert state["comments"]["items"][0]["user_id"] == alice

        hers.send_json({"action": "dance"})
        assert receive_type(hers, "error")["msg"] == "unknown action"


def test_malformed_frame_gets_error_and_connection_survives(live_app):
    bob, me = seed_people(live_app, "bob", "me")

    with live_app.client.websocket_connect(f"/profiles/{bob}/interactions?token={create_access_token(me)}") as ws:
        receive_until(ws, lambda d: d["follows"]["total_count"] == 0)

        ws.send_text("not json {")
        assert receive_type(ws, "error")["msg"] == "invalid message"

        ws.send_json({"action": "toggle_follow"})
        state = receive_until(ws, lambda d: d["follows"]["is_active"] and not d["follows"]["pending"])
        assert state["follows"]["total_count"] == 1


def test_anonymous_socket_is_read_only(live_app):
    bob, _ = seed_people(live_app, "bob", "me")

    with live_app.client.websocket_connect(f"/profiles/{bob}/interactions") as ws:
        receive_until(ws, lambda d: d["likes"]["total_count"] == 0)
        ws.send_json({"action": "toggle_like"})
        ws.send_json({"action": "dance"})
        receive_type(ws, "error")

    with live_app.db() as session:
        assert session.query(ProfileLike).count() == 0


@pytest.mark.parametrize("token", ["garbage", "forged"])
def test_socket_with_invalid_token_is_closed(live_app, token):
    bob, me = seed_people(live_app, "bob", "me")
    if token == "forged":
        token = jwt.encode({"sub": me}, "not-the-server-secret", algorithm="HS256")

    with pytest.raises(WebSocketDisconnect) as exc:
        with live_app.client.websocket_connect(f"/profiles/{bob}/interactions?token={token}") as ws:
            ws.receive_json()

    assert exc.value.code == 4401


def test_sign_out_ends_the_session_and_closes_the_socket(live_app):
    bob, me = seed_people(live_app, "bob", "me")

    with pytest.raises(WebSocketDisconnect) as exc:
        with live_app.client.websocket_connect(f"/profiles/{bob}/interactions?token={create_access_token(me)}") as ws:
            receive_until(ws, lambda d: d["likes"]["total_count"] == 0)
            ws.send_json({"action": "sign_out"})
            message = receive_type(ws, "auth")
            assert message == {"type": "auth", "event": "SIGNED_OUT", "user_id": None}
            ws.receive_json()

    assert exc.value.code == 4401


def test_profile_socket_for_unknown_profile_is_closed(live_app):
    with pytest.raises(WebSocketDisconnect) as exc:
        with live_app.client.websocket_connect("/profiles/user-ghost/interactions") as ws:
            ws.receive_json()

    assert exc.value.code == 4404


def test_media_follow_reaches_other_cards_of_the_same_creator(live_app):
    maker, fan = seed_people(live_app, "maker", "fan")
    seed(live_app, media_item("m1", maker, minutes_ago=1), media_item("m2", maker))
    client = live_app.client

    with client.websocket_connect(f"/media/m1/interactions?token={create_access_token(fan)}") as card1, \
            client.websocket_connect("/media/m2/interactions") as card2:
        receive_until(card2, lambda d: d["follows"]["total_count"] == 0)

        card1.send_json({"action": "toggle_follow"})

        state = receive_until(card2, lambda d: d["follows"]["total_count"] == 1)
        assert state["creator_id"] == maker
        assert state["follows"]["is_active"] is False
        assert state["likes"]["total_count"] == 0


# ----------------------------- 登录 -----------------------------

def test_sign_up_then_sign_in(live_app):
    payload = {"email": "kim@example.com", "password": "hunter22", "username": "kim", "name": "Kim"}

    created = live_app.client.post("/auth/sign_up", json=payload)
    again = live_app.client.post("/auth/sign_up", json={**payload, "username": "kim2"})
    signed_in = live_app.client.post("/auth/sign_in", json={"email": "kim@example.com", "password": "hunter22"})
    rejected = live_app.client.post("/auth/sign_in", json={"email": "kim@example.com", "password": "nope-nope"})

    assert created.status_code == 201
    assert again.status_code == 409
    assert signed_in.status_code == 200
    user_id = created.json()["data"]["user"]["id"]
    assert signed_in.json()["data"]["user"]["id"] == user_id
    assert signed_in.json()["data"]["token_type"] == "bearer"
    assert rejected.status_code == 401
    assert live_app.client.get(f"/profiles/{user_id}").json()["data"]["username"] == "kim"

    token = signed_in.json()["data"]["access_token"]
    me = live_app.client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["data"] == {"id": user_id, "email": "kim@example.com"}
    assert live_app.client.get("/auth/me").status_code == 401
