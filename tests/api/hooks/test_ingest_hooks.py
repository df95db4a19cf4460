"""Tests for the HTTP publish hooks."""

import pytest
from fastapi.testclient import TestClient

from app.schemas import LiveStatus
from tests.api.api_fixtures import build_live_services, build_test_app


@pytest.fixture
def client(tmp_path, key_store, session_store, profile_store, job_store, fake_encoder):
    live = build_live_services(tmp_path, key_store, session_store, profile_store, job_store, fake_encoder)
    with TestClient(build_test_app(live)) as client:
        yield client


class TestPrePublishHook:
    def test_valid_key_answers_200(self, client: TestClient):
        response = client.post("/hooks/ingest/pre_publish", json={"connection_id": "c1", "path": "/live/abc123"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["results"]["accepted"] is True
        assert body["results"]["session_id"] == "s1"

    def test_invalid_key_answers_403(self, client: TestClient, session_store):
        response = client.post("/hooks/ingest/pre_publish", json={"connection_id": "c1", "path": "/live/wrong"})

        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["errcode"] == "E_INGEST_REJECTED"
        assert session_store.status_updates == []

    def test_empty_key_answers_403(self, client: TestClient):
        response = client.post("/hooks/ingest/pre_publish", json={"connection_id": "c1", "path": "/live/"})

        assert response.status_code == 403

    def test_missing_body_fields_answers_422(self, client: TestClient):
        response = client.post("/hooks/ingest/pre_publish", json={"path": "/live/abc123"})

        assert response.status_code == 422


class TestPublishLifecycleHooks:
    def test_started_then_ended(self, client: TestClient, session_store):
        started = client.post("/hooks/ingest/publish_started", json={"connection_id": "c1", "path": "/live/abc123"})

        assert started.status_code == 200
        assert session_store.sessions["s1"].status == LiveStatus.LIVE

        ended = client.post("/hooks/ingest/publish_ended", json={"connection_id": "c1", "path": "/live/abc123"})

        assert ended.status_code == 200
        assert ended.json()["results"]["status"] == "ENDED"
        assert session_store.sessions["s1"].status == LiveStatus.ENDED

    def test_status_event_reaches_websocket(self, client: TestClient):
        with client.websocket_connect("/api/v1/stream_status/ws?session_id=s1") as ws:
            client.post("/hooks/ingest/publish_started", json={"connection_id": "c1", "path": "/live/abc123"})
            event = ws.receive_json()

        assert event["event"] == "stream_status"
        assert event["sessionId"] == "s1"
        assert event["status"] == "LIVE"
        assert event["streamKey"] == "abc123"
