"""
Unit tests for the HTTP layer.

Routes run against the seeded in-memory store through FastAPI's dependency
overrides, so no Snowflake configuration is needed.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_document_store, get_insights_service
from src.config.settings import Settings, get_settings
from src.core.insights.service import BusinessIntelligenceService
from src.infrastructure.snowflake.client import InMemoryDocumentStore
from src.infrastructure.snowflake.repositories.records import RecordRepository
from src.main import create_app


@pytest.fixture
def app(store, fixed_now):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: Settings(store_mock_mode=True)
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_insights_service] = lambda: BusinessIntelligenceService(
        RecordRepository(store), clock=lambda: fixed_now
    )
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


class TestHealthEndpoints:
    """Tests for liveness and readiness."""

    def test_liveness(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["details"] == {"mock_mode": True}

    def test_readiness_in_mock_mode(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"
        assert {check["name"] for check in response.json()["checks"]} == {"configuration", "record_store"}

    def test_readiness_without_credentials(self, app, client):
        app.dependency_overrides[get_settings] = lambda: Settings(
            store_mock_mode=False,
            snowflake_account="",
            snowflake_user="",
            snowflake_password="",
        )

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"


class TestInsightsEndpoints:
    """Tests for the reporting routes."""

    def test_snapshot(self, client):
        response = client.get("/api/v1/insights/snapshot")

        assert response.status_code == 200
        body = response.json()
        assert body["season"]["id"] == "fall-2025"
        assert body["total_revenue"] == 420
        assert body["overall_utilization"] == pytest.approx(0.4)
        assert body["underperforming_locations"][0]["performance"] == "poor"
        assert body["lesson_type_breakdown"][0]["duration_bucket"] == "30min"

    def test_snapshot_unknown_season(self, client):
        response = client.get("/api/v1/insights/snapshot", params={"season_id": "winter"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Season winter not found"

    def test_snapshot_without_active_season(self, app, client):
        empty = InMemoryDocumentStore()
        app.dependency_overrides[get_insights_service] = lambda: BusinessIntelligenceService(
            RecordRepository(empty)
        )

        response = client.get("/api/v1/insights/snapshot")

        assert response.status_code == 404
        assert response.json()["detail"] == "No active seasons found"

    def test_season_insights(self, client):
        response = client.get("/api/v1/insights/seasons/fall-2025")
        assert response.status_code == 200
        assert response.json()["total_bookings"] == 5
        assert response.json()["location_breakdown"][0]["location_id"] == "loc-a"

    def test_lesson_types_for_unknown_season(self, client):
        response = client.get("/api/v1/insights/seasons/winter/lesson-types")
        assert response.status_code == 404

    def test_all_locations(self, client):
        response = client.get("/api/v1/insights/seasons/fall-2025/locations")
        assert response.status_code == 200
        assert [item["location"]["id"] for item in response.json()] == ["loc-a", "loc-b"]

    def test_location_insights(self, client):
        response = client.get("/api/v1/insights/seasons/fall-2025/locations/loc-b")
        assert response.status_code == 200
        assert response.json()["performance"] == "fair"
        assert response.json()["revenue"]["total_revenue"] == 200

    def test_unknown_location(self, client):
        response = client.get("/api/v1/insights/seasons/fall-2025/locations/nope")
        assert response.status_code == 404
        assert response.json()["detail"] == "Location nope not found"

    def test_utilization(self, client):
        response = client.get("/api/v1/insights/seasons/fall-2025/locations/loc-a/utilization")
        assert response.status_code == 200
        assert response.json()["available_hours_per_week"] == 3.0
        assert response.json()["booked_hours_per_week"] == 1.0

    def test_malformed_record_is_bad_gateway(self, store, client):
        store.load("bookings", {"bad": {"locationId": "loc-a", "seasonId": "fall-2025"}})

        response = client.get("/api/v1/insights/seasons/fall-2025")

        assert response.status_code == 502
        assert response.json()["detail"] == "Stored bookings record bad is malformed"

    def test_snapshot_survives_a_malformed_booking(self, store, client):
        store.load("bookings", {"bad": {"locationId": "loc-a", "seasonId": "fall-2025"}})

        response = client.get("/api/v1/insights/snapshot")

        assert response.status_code == 200
        body = response.json()
        assert [item["location"]["id"] for item in body["locations"]] == ["loc-b"]
        assert body["total_bookings"] == 5
        assert body["total_revenue"] == 420


class TestCatalogEndpoints:
    """Tests for the reference listings."""

    def test_locations(self, client):
        response = client.get("/api/v1/catalog/locations")
        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_locations_including_inactive(self, client):
        response = client.get("/api/v1/catalog/locations", params={"include_inactive": True})
        assert response.json()["total"] == 3

    def test_seasons(self, client):
        response = client.get("/api/v1/catalog/seasons", params={"active_only": False})
        assert [season["id"] for season in response.json()["seasons"]] == ["fall-2025", "summer-2025"]

    def test_pricing(self, client):
        response = client.get("/api/v1/catalog/pricing")
        assert response.status_code == 200
        assert response.json()["private_lessons"]["30min"]["base_price"] == 45
        assert response.json()["small_group"]["45min"]["max_swimmers"] == 5

    def test_missing_pricing(self, app, client):
        app.dependency_overrides[get_document_store] = lambda: InMemoryDocumentStore()
        response = client.get("/api/v1/catalog/pricing")
        assert response.status_code == 404
