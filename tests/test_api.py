"""Tests for the HTTP API."""

import io
import json
import time
import zipfile

import pytest
from fastapi.testclient import TestClient

from posegen.core.config import Settings
from posegen.core.exceptions import ConfigurationError, PackagingFailure
from posegen.main import create_app
from posegen.services.archive import ArchiveService

from tests.conftest import SOURCE_BYTES, image_for


@pytest.fixture
def client(orchestrator, test_settings):
    app = create_app(orchestrator=orchestrator, settings=test_settings)
    with TestClient(app) as c:
        yield c


def form(theme="posing in a futuristic city", num_poses=9, aspect_ratio="1:1"):
    return {"theme": theme, "num_poses": str(num_poses), "aspect_ratio": aspect_ratio}


def upload():
    return {"file": ("me.png", SOURCE_BYTES, "image/png")}


def parse_events(body):
    events = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


def wait_for_session(client, session_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/v1/sessions/{session_id}").json()
        if not body["is_loading"]:
            return body
        time.sleep(0.01)
    raise AssertionError("session did not finish")


def test_startup_without_api_key_fails():
    app = create_app(settings=Settings(GEMINI_API_KEY="", _env_file=None))
    
    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass


def test_root_and_health(client, test_settings):
    assert client.get("/").json()["docs"] == "/docs"
    
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["models"]["images"] == test_settings.GEMINI_IMAGE_MODEL


def test_options(client):
    body = client.get("/api/v1/options").json()
    
    assert body["default_theme"] == "posing in a futuristic city"
    assert body["num_poses_choices"] == [1, 3, 9]
    assert body["aspect_ratio_choices"] == ["1:1", "9:16", "16:9"]


def test_generate_returns_all_images(client):
    response = client.post("/api/v1/generate", data=form(), files=upload())
    
    assert response.status_code == 200
    body = response.json()
    assert body["delivered"] == 9
    assert body["requested"] == 9
    assert body["progress"]["message"] == "Generating images... (9/9)"
    assert all(src.startswith("data:image/png;base64,") for src in body["images"])


def test_generate_partial_failure_is_silent(client, fake_models):
    fake_models.fail_poses = {"pose 3"}
    
    body = client.post("/api/v1/generate", data=form(), files=upload()).json()
    
    assert body["status"] == "completed"
    assert body["delivered"] == 8


def test_generate_ideation_failure_returns_short_message(client, fake_models):
    fake_models.idea_error = RuntimeError("raw upstream body")
    
    response = client.post("/api/v1/generate", data=form(), files=upload())
    
    assert response.status_code == 502
    assert response.json()["detail"].startswith("Could not generate pose ideas")
    assert "raw upstream body" not in response.text
    assert fake_models.image_calls == []


def test_generate_empty_ideas(client, fake_models):
    fake_models.idea_text = "[]"
    
    response = client.post("/api/v1/generate", data=form(), files=upload())
    
    assert response.status_code == 502
    assert response.json()["detail"] == "Failed to generate any pose ideas."


@pytest.mark.parametrize("data, files, detail", [
    (form(), None, "Please upload an image first."),
    (form(theme="   "), upload(), "Please enter a prompt describing the scene or theme."),
])
def test_generate_validation_messages(client, fake_models, data, files, detail):
    response = client.post("/api/v1/generate", data=data, files=files)
    
    assert response.status_code == 400
    assert response.json()["detail"] == detail
    assert fake_models.idea_calls == []


@pytest.mark.parametrize("data", [form(num_poses=0), form(num_poses=21), form(aspect_ratio="4:3")])
def test_generate_rejects_bad_options(client, data):
    assert client.post("/api/v1/generate", data=data, files=upload()).status_code == 400


def test_generate_rejects_non_image(client):
    response = client.post("/api/v1/generate", data=form(), files={"file": ("a.txt", b"hello", "text/plain")})
    
    assert response.status_code == 400


def test_stream_events(client, fake_models):
    fake_models.ideas = ["a", "b"]
    
    response = client.post("/api/v1/generate/stream", data=form(num_poses=2), files=upload())
    
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = parse_events(response.text)
    assert events[0] == ("progress", {"type": "progress", "progress": {
        "message": "Generating creative pose ideas...", "completed": 0, "total": 0}})
    assert [name for name, _ in events].count("image") == 2
    assert events[-1] == ("done", {"type": "done", "delivered": 2})


def test_stream_failure_event(client, fake_models):
    fake_models.idea_text = "not json"
    
    events = parse_events(client.post("/api/v1/generate/stream", data=form(), files=upload()).text)
    
    assert events[-1][0] == "failed"


def test_session_flow_with_downloads(client, fake_models):
    fake_models.ideas = ["a", "b", "c"]
    
    created = client.post("/api/v1/sessions", data=form(num_poses=3, aspect_ratio="portrait"), files=upload())
    assert created.status_code == 202
    session_id = created.json()["id"]
    
    status = wait_for_session(client, session_id)
    assert status["state"] == "completed"
    assert status["image_count"] == 3
    assert status["aspect_ratio"] == "9:16"
    assert status["progress"]["message"] == "Generating images... (3/3)"
    
    image = client.get(f"/api/v1/sessions/{session_id}/images/1")
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/png"
    assert image.content in {image_for(p) for p in fake_models.ideas}
    assert client.get(f"/api/v1/sessions/{session_id}/images/4").status_code == 404
    
    archive = client.get(f"/api/v1/sessions/{session_id}/archive")
    assert archive.status_code == 200
    assert 'filename="generated_poses.zip"' in archive.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(archive.content)) as zf:
        assert sorted(zf.namelist()) == ["pose_1.png", "pose_2.png", "pose_3.png"]
    
    assert client.delete(f"/api/v1/sessions/{session_id}").status_code == 204
    assert client.get(f"/api/v1/sessions/{session_id}").status_code == 404


def test_failed_session_has_no_archive(client, fake_models):
    fake_models.idea_error = RuntimeError("down")
    
    session_id = client.post("/api/v1/sessions", data=form(), files=upload()).json()["id"]
    status = wait_for_session(client, session_id)
    
    assert status["state"] == "failed"
    assert status["error"].startswith("Could not generate pose ideas")
    assert client.get(f"/api/v1/sessions/{session_id}/archive").status_code == 404


def test_unknown_session(client):
    assert client.get("/api/v1/sessions/sess_missing").status_code == 404
    assert client.delete("/api/v1/sessions/sess_missing").status_code == 404


def test_archive_conflicts_while_run_in_flight(client, fake_models):
    fake_models.ideas = ["a", "b"]
    fake_models.delays = {"a": 0.3, "b": 0.3}
    
    session_id = client.post("/api/v1/sessions", data=form(num_poses=2), files=upload()).json()["id"]
    
    running = client.get(f"/api/v1/sessions/{session_id}/archive")
    assert running.status_code == 409
    assert running.json()["detail"] == "Generation is still running"
    
    wait_for_session(client, session_id)
    assert client.get(f"/api/v1/sessions/{session_id}/archive").status_code == 200


class BrokenArchiveService(ArchiveService):
    async def build_archive(self, entries):
        raise PackagingFailure(details={"cause": "disk full"})


def test_archive_packaging_failure_returns_short_message(orchestrator, test_settings, fake_models):
    fake_models.ideas = ["a"]
    app = create_app(orchestrator=orchestrator, settings=test_settings, archive=BrokenArchiveService())
    
    with TestClient(app) as client:
        session_id = client.post("/api/v1/sessions", data=form(num_poses=1), files=upload()).json()["id"]
        wait_for_session(client, session_id)
        
        response = client.get(f"/api/v1/sessions/{session_id}/archive")
    
    assert response.status_code == 500
    assert response.json()["detail"] == "Could not create zip file for download."
    assert "disk full" not in response.text


def test_generate_invalid_request_detail_is_short(client, monkeypatch):
    from posegen.api import forms
    
    real_request = forms.GenerationRequest
    
    def reject(**kwargs):
        return real_request.model_validate({})  # missing fields
    
    monkeypatch.setattr(forms, "GenerationRequest", reject)
    
    response = client.post("/api/v1/generate", data=form(), files=upload())
    
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid generation request. Please check the form and try again."
    assert "validation error" not in response.text
