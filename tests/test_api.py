"""Tests for the HTTP API."""
import json

import pytest
from fastapi.testclient import TestClient

from config.settings import JobConfig, Settings
from core.runtime import build_runtime


@pytest.fixture
def runtime(tmp_path, monkeypatch):
    settings = Settings()
    settings.activity.log_path = str(tmp_path / "activity.log")
    settings.activity.polling_log_dir = str(tmp_path / "jobs")
    settings.jobs = [
        JobConfig(name="deploy"),
        JobConfig(name="report", poll_path=str(tmp_path / "report.csv")),
    ]
    monkeypatch.setattr("config.settings._settings", settings)
    import api.main

    rt = build_runtime(settings)
    monkeypatch.setattr(api.main, "runtime", rt)
    return rt


@pytest.fixture
def client(runtime):
    from api.main import app
    return TestClient(app)


class TestHealth:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["jobs"] == 2
        assert body["polling_jobs"] == ["report"]


class TestTriggerEndpoint:
    def test_dispatch(self, client, runtime):
        payload = {"job": "deploy", "parameters": [
            {"name": "env", "type": "string", "value": "prod"},
            {"name": "force", "type": "boolean", "value": True},
        ]}
        resp = client.post("/api/v1/trigger", content=json.dumps(payload))
        assert resp.status_code == 200
        body = resp.json()
        assert body["kind"] == "dispatched"
        assert body["parameters"] == [
            {"type": "string", "name": "env", "value": "prod"},
            {"type": "boolean", "name": "force", "value": True},
        ]
        assert len(runtime.registry.get("deploy").submissions) == 1

    def test_malformed(self, client):
        resp = client.post("/api/v1/trigger", content="nope")
        assert resp.status_code == 200
        assert resp.json()["kind"] == "malformed_payload"


class TestActivityEndpoints:
    def test_tail_and_dump(self, client):
        client.post("/api/v1/trigger", content='{"job": "deploy"}')
        client.post("/api/v1/trigger", content='{"job": "missing"}')

        last = client.get("/api/v1/activity", params={"lines": 1}).text
        assert "job_not_found job=missing" in last
        assert "dispatched" not in last

        full = client.get("/api/v1/activity").text
        assert full.count("\n") == 2

    def test_invalid_line_count(self, client):
        assert client.get("/api/v1/activity", params={"lines": 0}).status_code == 422


class TestPollingEndpoints:
    def test_unknown_job(self, client):
        assert client.get("/api/v1/jobs/deploy/polling-log").status_code == 404
        assert client.post("/api/v1/jobs/deploy/poll").status_code == 404

    def test_polling_log(self, client, runtime):
        runtime.polling_triggers["report"].run()
        resp = client.get("/api/v1/jobs/report/polling-log")
        assert resp.status_code == 200
        assert resp.text.startswith("Started on ")
        assert "No changes" in resp.text
