"""Tests for geo API routes and application startup."""

import httpx
import pytest
from unittest.mock import patch
from fastapi import FastAPI
from fastapi.testclient import TestClient

from region_router.adapters.factory import AdapterFactory
from region_router.api.middleware import RequestLoggingMiddleware
from region_router.api.routes.geo import router as geo_router
from region_router.api.routes.health import router as health_router
from region_router.errors import AdapterConstructionError
from region_router.geo.chain import DetectionChain
from region_router.geo.resolver import Resolver
from region_router.geo.router import CapabilityRouter
from region_router.geo.strategies import LocalHeuristicStrategy
from region_router.main import build_adapters, create_app


def create_test_app(capability_router: CapabilityRouter, factory: AdapterFactory) -> FastAPI:
    """Create a minimal FastAPI app for testing."""
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(geo_router)
    app.include_router(health_router)
    app.state.capability_router = capability_router
    app.state.adapter_factory = factory
    return app


@pytest.fixture
def network(recording_strategy):
    """Stand-in for the lookup services; every public IP is in Germany."""
    return recording_strategy("network", country="DE")


@pytest.fixture
def client(network, test_settings):
    """Create a test client."""
    chain = DetectionChain([LocalHeuristicStrategy(shortcut_only=True), network])
    capability_router = CapabilityRouter(Resolver(chain))
    return TestClient(create_test_app(capability_router, AdapterFactory(test_settings)))


class TestCountryRoute:
    """Tests for GET /api/geo/country."""

    def test_x_country_header(self, client, network):
        response = client.get("/api/geo/country", headers={"X-Country": "us"})

        assert response.status_code == 200
        assert response.json() == {"country": "US", "source": "header"}
        assert network.calls == []

    def test_cloudflare_header(self, client):
        response = client.get("/api/geo/country", headers={"CF-IPCountry": "SG"})

        assert response.json() == {"country": "SG", "source": "cloudflare"}

    def test_cloudflare_unknown_falls_through_to_ip(self, client, network):
        response = client.get(
            "/api/geo/country",
            headers={"CF-IPCountry": "XX", "X-Forwarded-For": "203.0.113.5"},
        )

        assert response.json() == {"country": "DE", "source": "ip"}
        assert network.calls[0][0] == "203.0.113.5"

    def test_request_id_header(self, client):
        response = client.get("/api/geo/country", headers={"X-Country": "US"})
        assert len(response.headers["X-Request-ID"]) == 8


class TestCapabilitiesRoute:
    """Tests for GET /api/geo/capabilities."""

    def test_forwarded_client_ip(self, client):
        response = client.get(
            "/api/geo/capabilities", headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["region"] == "europe"
        assert data["payment_methods"] == []
        assert data["regulated_privacy"] is True

    def test_private_ip_query(self, client, network):
        response = client.get("/api/geo/capabilities", params={"ip": "192.168.1.20"})

        data = response.json()
        assert data["region"] == "china"
        assert data["currency"] == "CNY"
        assert data["database_backend"] == "cloudbase"
        assert network.calls == []

    def test_timeout_passed_through(self, client, network):
        client.get("/api/geo/capabilities", params={"ip": "8.8.8.8", "timeout_ms": 300})
        assert network.calls == [("8.8.8.8", 300)]

    def test_invalid_timeout_rejected(self, client):
        response = client.get("/api/geo/capabilities", params={"timeout_ms": 0})
        assert response.status_code == 422


class TestCompatibilityRoute:
    """Tests for GET /api/geo/compatibility."""

    def test_china_visitor_on_china_deployment(self, client):
        response = client.get("/api/geo/compatibility", params={"ip": "10.0.0.5"})

        data = response.json()
        assert data["compatible"] is True
        assert data["capabilities"]["region"] == "china"
        assert data["compatibility"]["deployment_region"] == "CN"
        assert data["compatibility"]["database_compatible"] is True

    def test_european_visitor_on_china_deployment(self, client):
        response = client.get("/api/geo/compatibility", params={"ip": "203.0.113.5"})

        data = response.json()
        assert data["compatible"] is False
        assert data["compatibility"]["auth_methods_available"] == ["email"]
        assert data["compatibility"]["payment_methods_available"] == []

    def test_answer_comes_from_built_adapters(self, client, monkeypatch):
        factory = client.app.state.adapter_factory
        monkeypatch.setattr(factory.get_database(), "is_compatible", lambda descriptor: False)

        data = client.get("/api/geo/compatibility", params={"ip": "10.0.0.5"}).json()

        assert data["compatibility"]["database_compatible"] is False
        assert data["compatible"] is False
        assert data["auth_config"]["provider"] == "cloudbase"
        assert data["auth_config"]["env_id"] == "prod-env-123"

    def test_missing_settings_return_503(self, network, empty_settings):
        chain = DetectionChain([LocalHeuristicStrategy(shortcut_only=True), network])
        app = create_test_app(CapabilityRouter(Resolver(chain)), AdapterFactory(empty_settings))

        response = TestClient(app).get("/api/geo/compatibility", params={"ip": "10.0.0.5"})

        assert response.status_code == 503
        assert "cloudbase_env_id" in response.json()["detail"]
        assert network.calls == []


class TestCacheRoutes:
    """Tests for the cache introspection routes."""

    def test_stats_and_clear(self, client, network):
        client.get("/api/geo/capabilities", params={"ip": "8.8.8.8"})
        client.get("/api/geo/capabilities", params={"ip": "8.8.8.8"})

        stats = client.get("/api/geo/cache").json()
        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["entries"][0]["ip"] == "8.8.8.8"
        assert stats["entries"][0]["country_code"] == "DE"

        response = client.delete("/api/geo/cache")
        assert response.json() == {"cleared": 1}
        assert client.get("/api/geo/cache").json()["size"] == 0
        assert len(network.calls) == 1


class TestStartup:
    """Adapter construction at startup."""

    def test_production_requires_complete_environment(self, empty_settings):
        with pytest.raises(AdapterConstructionError):
            build_adapters(AdapterFactory(empty_settings), "production")

    def test_development_tolerates_missing_settings(self, empty_settings):
        factory = AdapterFactory(empty_settings)
        build_adapters(factory, "development")
        assert factory._instances == {}

    def test_complete_environment_builds_adapters(self, test_settings):
        factory = AdapterFactory(test_settings)
        build_adapters(factory, "production")
        assert len(factory._instances) == 2

    def test_app_lifespan(self, test_settings):
        async def offline(self, url, timeout):
            raise httpx.ConnectError("offline")

        with patch("region_router.geo.http_client.LookupHttpClient._fetch", offline):
            with TestClient(create_app(test_settings)) as client:
                assert client.get("/health").json()["healthy"] is True
                assert isinstance(client.app.state.capability_router, CapabilityRouter)


class TestHealthRoute:
    """Tests for GET /health."""

    def test_all_checks_pass(self, client, network):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["healthy"] is True
        assert [c["name"] for c in data["checks"]] == ["database", "geo-router", "auth"]
        assert all(c["status"] == "pass" for c in data["checks"])
        assert network.calls[0][0] == "8.8.8.8"

    def test_missing_settings_fail_adapter_checks(self, network, empty_settings):
        chain = DetectionChain([LocalHeuristicStrategy(shortcut_only=True), network])
        app = create_test_app(CapabilityRouter(Resolver(chain)), AdapterFactory(empty_settings))

        response = TestClient(app).get("/health")

        assert response.status_code == 503
        checks = {c["name"]: c for c in response.json()["checks"]}
        assert response.json()["healthy"] is False
        assert checks["database"]["status"] == "fail"
        assert "cloudbase_secret_key" in checks["database"]["error"]
        assert checks["auth"]["status"] == "fail"
        assert checks["geo-router"]["status"] == "pass"
        assert checks["geo-router"]["error"] is None

    def test_failed_check_logged_as_error_event(self, network, empty_settings):
        chain = DetectionChain([LocalHeuristicStrategy(shortcut_only=True), network])
        app = create_test_app(CapabilityRouter(Resolver(chain)), AdapterFactory(empty_settings))

        with patch("region_router.api.routes.health.logger") as mock_logger:
            TestClient(app).get("/health")

        logged = [c.kwargs for c in mock_logger.warning.call_args_list]
        assert {entry["check"] for entry in logged} == {"database", "auth"}
        assert all(entry["category"] == "error" for entry in logged)
