import io

import pytest
from PIL import Image

import app as web
from services.errors import StylingServiceError
from services.image_converter import file_to_data_url

from conftest import FAKE_IMAGE_DATA_URL

SETTINGS = {"region": "서울", "gender": "male", "tone": "friendly"}


@pytest.fixture
def client(monkeypatch, services):
    monkeypatch.setattr(web.controller, "services", services)
    monkeypatch.setattr(web.controller, "image_loader", lambda path: FAKE_IMAGE_DATA_URL)
    web.app.config["TESTING"] = True
    return web.app.test_client()


@pytest.fixture
def session_id(client):
    return client.post("/api/session").get_json()["session_id"]


@pytest.fixture
def ready_session_id(client, session_id):
    client.post(f"/api/session/{session_id}/settings", json=SETTINGS)
    return session_id


def png_upload(name="me.png"):
    buffer = io.BytesIO()
    Image.new("RGB", (32, 32), (10, 120, 200)).save(buffer, "PNG")
    buffer.seek(0)
    return buffer, name


def test_create_session(client):
    response = client.post("/api/session")

    assert response.status_code == 201
    data = response.get_json()
    assert len(data["messages"]) == 1
    assert data["settings"]["region"] == ""


def test_get_session(client, session_id):
    data = client.get(f"/api/session/{session_id}").get_json()

    assert data["session_id"] == session_id
    assert data["context"]["settings_complete"] is False


def test_unknown_session_is_404(client):
    assert client.get("/api/session/nope").status_code == 404
    assert client.post("/api/session/nope/messages", data={"text": "hi"}).status_code == 404


def test_apply_settings_runs_weather_turn(client, services, session_id):
    response = client.post(f"/api/session/{session_id}/settings", json=SETTINGS)

    data = response.get_json()
    assert data["status"] == "completed"
    assert [m["role"] for m in data["session"]["messages"]] == ["assistant", "user", "assistant"]
    assert data["session"]["quick_replies"][0] == "코디 이미지 보여줘"
    assert len(services.called("get_weather_and_recommendation")) == 1


def test_apply_settings_form_with_profile_photo(client, session_id):
    response = client.post(
        f"/api/session/{session_id}/settings",
        data={**SETTINGS, "colors": ["블랙", "네이비"], "profile_image": png_upload()},
        content_type="multipart/form-data",
    )

    settings = response.get_json()["session"]["settings"]
    assert settings["preferred_colors"] == ["블랙", "네이비"]
    assert settings["profile_image"].startswith("data:image/png;base64,")


def test_unchanged_settings_keep_profile_photo(client, ready_session_id):
    client.post(
        f"/api/session/{ready_session_id}/settings",
        data={**SETTINGS, "profile_image": png_upload()},
        content_type="multipart/form-data",
    )

    response = client.post(f"/api/session/{ready_session_id}/settings", json=SETTINGS)

    assert response.get_json()["status"] == "ignored"


def test_invalid_settings_are_400(client, session_id):
    response = client.post(f"/api/session/{session_id}/settings", json={**SETTINGS, "tone": "grumpy"})

    assert response.status_code == 400
    assert "grumpy" in response.get_json()["error"]


def test_message_requires_settings(client, services, session_id):
    data = client.post(f"/api/session/{session_id}/messages", data={"text": "오늘 뭐 입지?"}).get_json()

    assert data["status"] == "settings_required"
    assert services.calls == []


def test_text_message(client, services, ready_session_id):
    data = client.post(f"/api/session/{ready_session_id}/messages", json={"text": "오늘 뭐 입지?"}).get_json()

    assert data["status"] == "completed"
    assert data["session"]["messages"][-1]["text"] == services.results["get_text_recommendation"]["advice"]


def test_image_message(client, services, ready_session_id):
    response = client.post(
        f"/api/session/{ready_session_id}/messages",
        data={"text": "어때?", "image": (io.BytesIO(b"jpeg"), "look.jpg")},
        content_type="multipart/form-data",
    )

    messages = response.get_json()["session"]["messages"]
    assert messages[-1]["text"] == services.results["get_image_recommendation"]["suggestion"]
    assert services.called("get_image_recommendation")[0][0] == FAKE_IMAGE_DATA_URL


def test_unsupported_upload_is_400(client, ready_session_id):
    response = client.post(
        f"/api/session/{ready_session_id}/messages",
        data={"image": (io.BytesIO(b"text"), "notes.txt")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400


def test_feedback(client, ready_session_id):
    response = client.post(f"/api/session/{ready_session_id}/feedback", json={"message_id": 1, "feedback": "like"})

    assert response.get_json()["session"]["messages"][0]["feedback"] == "like"
    assert client.post(f"/api/session/{ready_session_id}/feedback", json={}).status_code == 400
    assert client.post(
        f"/api/session/{ready_session_id}/feedback", json={"message_id": 1, "feedback": "love"}
    ).status_code == 400


def test_history_flow(client, services, ready_session_id):
    base = f"/api/session/{ready_session_id}/history"

    response = client.post(
        base,
        data={"images": [(io.BytesIO(b"a"), "a.jpg"), (io.BytesIO(b"b"), "b.png")]},
        content_type="multipart/form-data",
    )
    assert response.get_json()["status"] == "completed"

    items = client.get(base).get_json()["items"]
    assert len(items) == 2
    assert all(item["history_only"] for item in items)

    data = client.post(f"{base}/recommend", json={"message_ids": [items[0]["id"]]}).get_json()
    assert data["session"]["messages"][-3]["text"] == "1개의 선택한 코디로 새로운 스타일 추천!"
    assert services.called("generate_outfit_from_liked_images")[0][0] == [FAKE_IMAGE_DATA_URL]

    removed = client.delete(f"{base}/{items[0]['id']}").get_json()
    assert removed["status"] == "completed"
    assert len(client.get(base).get_json()["items"]) == 1


def test_recommend_with_empty_history(client, ready_session_id):
    data = client.post(f"/api/session/{ready_session_id}/history/recommend", json={}).get_json()

    assert data["status"] == "ignored"


def test_history_upload_requires_images(client, ready_session_id):
    assert client.post(f"/api/session/{ready_session_id}/history", data={}).status_code == 400


def test_history_upload_is_all_or_nothing(client, ready_session_id):
    base = f"/api/session/{ready_session_id}/history"

    response = client.post(
        base,
        data={"images": [(io.BytesIO(b"a"), "a.jpg"), (io.BytesIO(b"b"), "b.txt")]},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert client.get(base).get_json()["items"] == []


def test_reset(client, ready_session_id):
    data = client.post(f"/api/session/{ready_session_id}/reset").get_json()

    assert len(data["session"]["messages"]) == 1
    assert data["session"]["settings"]["region"] == ""


def test_region_lookup(client, services):
    assert client.get("/api/region?lat=37.56&lon=126.97").get_json() == {"region": "서울"}
    assert services.called("get_region_from_coords") == [(37.56, 126.97)]

    assert client.get("/api/region?lat=abc").status_code == 400

    services.results["get_region_from_coords"] = None
    assert client.get("/api/region?lat=1&lon=2").status_code == 404

    services.errors["get_region_from_coords"] = StylingServiceError("지역을 변환하는 중 오류가 발생했습니다.")
    response = client.get("/api/region?lat=1&lon=2")
    assert response.status_code == 502
    assert response.get_json()["error"] == "지역을 변환하는 중 오류가 발생했습니다."


def test_health(client, session_id):
    data = client.get("/health").get_json()

    assert data["status"] == "healthy"
    assert data["active_sessions"] >= 1


def test_socket_join_and_action(client, services, ready_session_id):
    socket = web.socketio.test_client(web.app, flask_test_client=client)
    socket.get_received()

    socket.emit("join", {"session_id": ready_session_id})
    joined = socket.get_received()
    assert joined[0]["name"] == "session_state"

    socket.emit("action", {"session_id": ready_session_id, "action": "send", "params": {"text": "출근룩 추천"}})
    names = [packet["name"] for packet in socket.get_received()]

    assert "session_event" in names
    assert names[-1] == "action_result"
    assert services.called("get_text_recommendation")[0][0] == "출근룩 추천"


def test_socket_unknown_action(client, ready_session_id):
    socket = web.socketio.test_client(web.app, flask_test_client=client)
    socket.get_received()

    socket.emit("action", {"session_id": ready_session_id, "action": "explode"})

    received = socket.get_received()
    assert received[-1]["name"] == "error"


def socket_for(client, session_id):
    socket = web.socketio.test_client(web.app, flask_test_client=client)
    socket.emit("join", {"session_id": session_id})
    socket.get_received()
    return socket


def test_socket_send_refuses_server_paths(client, services, ready_session_id, monkeypatch, tmp_path):
    monkeypatch.setattr(web.controller, "image_loader", file_to_data_url)
    photo = tmp_path / "server_owned.bmp"
    Image.new("RGB", (32, 32), (200, 10, 10)).save(photo, "BMP")
    socket = socket_for(client, ready_session_id)

    socket.emit("action", {
        "session_id": ready_session_id, "action": "send",
        "params": {"text": "이거 어때?", "image_path": str(photo)},
    })

    assert socket.get_received()[-1]["name"] == "error"
    assert photo.exists()
    assert services.called("get_image_recommendation") == []
    messages = client.get(f"/api/session/{ready_session_id}").get_json()["messages"]
    assert not any(message["user_image"] for message in messages)


def test_socket_recommend_uses_message_ids(client, services, ready_session_id, tmp_path):
    secret = tmp_path / "secret.txt"
    secret.write_text("TOPS")
    socket = socket_for(client, ready_session_id)

    socket.emit("action", {
        "session_id": ready_session_id, "action": "recommend_from_history",
        "params": {"images": [str(secret)], "source": "selected"},
    })
    assert socket.get_received()[-1]["name"] == "error"
    assert services.called("generate_outfit_from_liked_images") == []

    client.post(
        f"/api/session/{ready_session_id}/history",
        data={"images": [(io.BytesIO(b"a"), "a.jpg")]},
        content_type="multipart/form-data",
    )
    liked_id = client.get(f"/api/session/{ready_session_id}/history").get_json()["items"][0]["id"]

    socket.emit("action", {
        "session_id": ready_session_id, "action": "recommend_from_history",
        "params": {"message_ids": [str(liked_id)]},
    })
    result = socket.get_received()[-1]
    assert result["name"] == "action_result"
    assert result["args"][0]["status"] == "completed"
    assert services.called("generate_outfit_from_liked_images")[0][0] == [FAKE_IMAGE_DATA_URL]


def test_socket_settings_keep_profile_photo(client, ready_session_id):
    socket = socket_for(client, ready_session_id)

    socket.emit("action", {
        "session_id": ready_session_id, "action": "apply_settings",
        "params": {"settings": dict(SETTINGS, tone="witty", profile_image="/etc/hostname")},
    })

    assert socket.get_received()[-1]["name"] == "action_result"
    settings = client.get(f"/api/session/{ready_session_id}").get_json()["settings"]
    assert settings["tone"] == "witty"
    assert settings["profile_image"] is None


def test_socket_feedback_with_string_id(client, ready_session_id):
    socket = socket_for(client, ready_session_id)

    socket.emit("action", {
        "session_id": ready_session_id, "action": "feedback",
        "params": {"message_id": "1", "value": "like"},
    })

    assert socket.get_received()[-1]["args"][0]["status"] == "completed"
    messages = client.get(f"/api/session/{ready_session_id}").get_json()["messages"]
    assert messages[0]["feedback"] == "like"
