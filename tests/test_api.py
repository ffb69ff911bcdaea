import json
from unittest.mock import patch

import pytest
import requests
from fastapi.testclient import TestClient

from taskboard.main import app
from taskboard.routers.extract import get_generator
from taskboard.services.errors import ConfigurationError
from taskboard.services.gemini import GeminiClient


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def use_generator(gen):
    app.dependency_overrides[get_generator] = lambda: gen
    return gen


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert r.headers["X-Request-Id"]


def test_extract_success(client, fake_generator):
    gen = use_generator(fake_generator('Result: [{"description":"Do X","assignee":"A","dueDate":"Friday","priority":"P1"}]'))

    r = client.post("/api/extract-tasks", json={"transcript": "A will do X by Friday"})

    assert r.status_code == 200
    assert r.json() == {"tasks": [{"description": "Do X", "assignee": "A", "dueDate": "Friday", "priority": "P1"}]}
    assert "A will do X by Friday" in gen.prompts[0]


@pytest.mark.parametrize("body", [{}, {"transcript": ""}, {"transcript": "   "}, {"transcript": None}])
def test_missing_transcript_is_400(client, fake_generator, body):
    gen = use_generator(fake_generator())
    r = client.post("/api/extract-tasks", json=body)
    assert r.status_code == 400
    assert r.json() == {"error": "No transcript provided"}
    assert gen.prompts == []


def test_missing_api_key_is_500(client, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    use_generator(GeminiClient())
    r = client.post("/api/extract-tasks", json={"transcript": "notes"})
    assert r.status_code == 500
    assert r.json() == {"error": "Gemini API key not configured"}


def test_configuration_error_from_generator(client, fake_generator):
    use_generator(fake_generator(error=ConfigurationError("Gemini API key not configured")))
    r = client.post("/api/extract-tasks", json={"transcript": "notes"})
    assert r.status_code == 500
    assert "tasks" not in r.json()


def test_no_array_reply_includes_raw_text(client, fake_generator):
    use_generator(fake_generator("Sorry, nothing to extract."))
    r = client.post("/api/extract-tasks", json={"transcript": "notes"})
    assert r.status_code == 500
    body = r.json()
    assert set(body) == {"error"}
    assert "Sorry, nothing to extract." in body["error"]


def test_unparsable_array_returns_empty_tasks(client, fake_generator):
    use_generator(fake_generator('[1,2] and [{"description":"Y"}]'))
    r = client.post("/api/extract-tasks", json={"transcript": "notes"})
    assert r.status_code == 500
    assert r.json()["tasks"] == []
    assert r.json()["error"]


def test_upstream_failure_returns_empty_tasks(client, fake_generator):
    use_generator(fake_generator(error=TimeoutError("read timed out")))
    r = client.post("/api/extract-tasks", json={"transcript": "notes"})
    assert r.status_code == 500
    assert r.json() == {"error": "read timed out", "tasks": []}


def test_failures_are_audited(client, fake_generator, audit_file):
    use_generator(fake_generator("no json here"))
    r = client.post("/api/extract-tasks", json={"transcript": "notes"})

    records = [json.loads(line) for line in audit_file.read_text(encoding="utf-8").splitlines()]
    failed = [rec for rec in records if rec["event"] == "extract_failed"]
    assert len(failed) == 1
    assert failed[0]["status"] == "error"
    assert failed[0]["payload"]["kind"] == "unparsable_response"
    assert failed[0]["payload"]["raw_text"] == "no json here"
    assert failed[0]["request_id"] == r.headers["X-Request-Id"]


def _keyed_error_response(status):
    r = requests.Response()
    r.status_code = status
    r.reason = "Bad Request"
    r.url = "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent?key=SUPER-SECRET"
    return r


@pytest.mark.parametrize("status", [400, 429])
@patch("taskboard.services.gemini.requests.post")
def test_upstream_http_error_does_not_leak_api_key(mock_post, client, monkeypatch, audit_file, status):
    monkeypatch.setenv("GEMINI_API_KEY", "SUPER-SECRET")
    mock_post.return_value = _keyed_error_response(status)
    use_generator(GeminiClient())

    r = client.post("/api/extract-tasks", json={"transcript": "notes"})

    assert r.status_code == 500
    assert r.json() == {"error": f"Gemini request failed with status {status}", "tasks": []}
    assert "SUPER-SECRET" not in r.text
    assert "SUPER-SECRET" not in audit_file.read_text(encoding="utf-8")


@patch("taskboard.services.gemini.requests.post")
def test_upstream_connection_error_does_not_leak_api_key(mock_post, client, monkeypatch, audit_file):
    monkeypatch.setenv("GEMINI_API_KEY", "SUPER-SECRET")
    mock_post.side_effect = requests.ConnectionError(
        "Max retries exceeded with url: /v1beta/models/gemini-pro:generateContent?key=SUPER-SECRET"
    )
    use_generator(GeminiClient())

    r = client.post("/api/extract-tasks", json={"transcript": "notes"})

    assert r.status_code == 500
    assert r.json()["error"] == "Gemini request failed: ConnectionError"
    assert "SUPER-SECRET" not in r.text
    assert "SUPER-SECRET" not in audit_file.read_text(encoding="utf-8")


def test_nan_in_reply_is_unparsable(client, fake_generator):
    use_generator(fake_generator('[{"description":"A","priority":NaN}]'))
    r = client.post("/api/extract-tasks", json={"transcript": "notes"})
    assert r.status_code == 500
    assert r.json()["tasks"] == []
