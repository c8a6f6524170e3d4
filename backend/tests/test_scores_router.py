"""
Tests des routes de scoring (FastAPI TestClient, service sur base SQLite temporaire).
"""
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, create_engine

import shiftcoach.domain.entities  # noqa: F401
from shiftcoach.api.routers._shared import get_scoring_service
from shiftcoach.core.settings import get_settings
from shiftcoach.domain.services.scoring_service import ScoringService
from shiftcoach.main import app


@pytest.fixture
def client(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'api.db'}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    app.dependency_overrides[get_scoring_service] = lambda: ScoringService(engine=engine, settings=get_settings())
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def headers():
    return {"X-User-Id": str(uuid4())}


class TestAuthAndValidation:

    def test_missing_user_header(self, client):
        response = client.get("/api/v1/scores/today")
        assert response.status_code == 401

    def test_invalid_user_header(self, client):
        response = client.get("/api/v1/scores/today", headers={"X-User-Id": "not-a-uuid"})
        assert response.status_code == 422

    def test_unknown_timezone(self, client, headers):
        response = client.get("/api/v1/scores/today", params={"tz": "Mars/Olympus_Mons"}, headers=headers)
        assert response.status_code == 422


class TestScoreRoutes:

    def test_today_bundle_for_new_user(self, client, headers):
        response = client.get("/api/v1/scores/today", params={"tz": "Europe/London"}, headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["sleep_deficit"]["days_with_sleep"] == 0
        assert body["shift_rhythm"]["has_rhythm_data"] is False
        assert body["binge_risk"]["drivers"]
        assert body["warnings"] == []

    @pytest.mark.parametrize("path, key", [
        ("/api/v1/sleep/deficit", "weekly_deficit_hours"),
        ("/api/v1/sleep/social-jetlag", "category"),
        ("/api/v1/shiftlag", "level"),
        ("/api/v1/activity/today", "intensity"),
        ("/api/v1/binge-risk", "drivers"),
    ])
    def test_single_score_routes(self, client, headers, path, key):
        response = client.get(path, headers=headers)
        assert response.status_code == 200
        assert key in response.json()

    def test_shift_rhythm_post_then_cached_get(self, client, headers):
        payload = {"nutrition": {"calorie_target": 2000, "consumed_calories": 1800}}
        posted = client.post("/api/v1/shift-rhythm", json=payload, headers=headers)
        assert posted.status_code == 200
        assert posted.json()["from_cache"] is False

        cached = client.get("/api/v1/shift-rhythm", headers=headers)
        assert cached.status_code == 200
        assert cached.json()["from_cache"] is True
        assert cached.json()["score"]["total_score"] == posted.json()["score"]["total_score"]

    def test_shift_rhythm_post_without_body(self, client, headers):
        response = client.post("/api/v1/shift-rhythm", headers=headers)
        assert response.status_code == 200

    def test_invalid_signals_rejected(self, client, headers):
        payload = {"activity": {"steps": -10}}
        response = client.post("/api/v1/shift-rhythm", json=payload, headers=headers)
        assert response.status_code == 422


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_health_reports_default_timezone(client):
    assert client.get("/health").json()["default_timezone"] == get_settings().DEFAULT_TIMEZONE


def test_cors_preflight_allows_user_header(client):
    response = client.options(
        "/api/v1/scores/today",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "X-User-Id",
        },
    )
    assert response.status_code == 200
    assert "x-user-id" in response.headers["access-control-allow-headers"].lower()
