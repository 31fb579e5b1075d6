"""Tests for FastAPI application and exception handlers."""

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from feedback.core.errors import (
    IdentityResolutionError,
    InternalError,
    NotFoundError,
    StoreError,
    TokenConflictError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from feedback.main import create_app


@pytest.fixture
def app():
    """Create test application instance."""
    return create_app()


@pytest.fixture
async def client(app):
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_healthy_status(self, client):
        """Health endpoint should return 200 and healthy status."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAPIVersioning:
    """Tests for API versioning."""

    @pytest.mark.asyncio
    async def test_v1_router_mounted(self, client):
        """Unknown v1 paths are 404, not router errors."""
        response = await client.get("/api/v1/nonexistent")
        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("POST", "/api/v1/verification-links"),
            ("GET", "/api/v1/student-skills"),
            ("POST", "/api/v1/student-skills"),
        ],
    )
    async def test_v1_routes_registered(self, client, method, path):
        """Both feature routers answer under /api/v1."""
        response = await client.request(method, path)
        assert response.status_code not in (404, 405)


class TestExceptionHandlers:
    """Custom exceptions become error envelopes with the right status."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "status", "code"),
        [
            (ValidationError("Invalid input"), 400, "VALIDATION_ERROR"),
            (UnauthorizedError(), 401, "UNAUTHORIZED"),
            (NotFoundError("Student", "1"), 404, "NOT_FOUND"),
            (IdentityResolutionError(), 404, "IDENTITY_NOT_RESOLVED"),
            (TokenConflictError("verify"), 409, "TOKEN_CONFLICT"),
            (InternalError(), 500, "INTERNAL_ERROR"),
            (TransportError(), 502, "MAIL_TRANSPORT_ERROR"),
            (StoreError("Failed to read verification token"), 503, "STORE_ERROR"),
        ],
    )
    async def test_api_errors_render_envelope(self, app, client, error, status, code):
        """Each APIError maps to its status and code."""

        @app.get("/test/raise")
        async def raise_error():
            raise error

        response = await client.get("/test/raise")
        assert response.status_code == status
        data = response.json()
        assert data["error"]["code"] == code
        assert "message" in data["error"]
        assert "data" not in data

    @pytest.mark.asyncio
    async def test_conflict_details_included(self, app, client):
        """Error details reach the client."""

        @app.get("/test/conflict")
        async def raise_conflict():
            raise TokenConflictError("reset-password")

        response = await client.get("/test/conflict")
        assert response.json()["error"]["details"] == [
            {"action_type": "reset-password"}
        ]

    @pytest.mark.asyncio
    async def test_store_error_hides_cause(self, app, client):
        """Driver messages never reach the client."""

        @app.get("/test/store")
        async def raise_store():
            raise StoreError(
                "Failed to store verification token",
                cause=RuntimeError("password authentication failed for db-01"),
            )

        response = await client.get("/test/store")
        assert "db-01" not in response.text

    @pytest.mark.asyncio
    async def test_unhandled_exception_returns_generic_500(self, app, client):
        """Unexpected exceptions return a generic INTERNAL_ERROR."""

        @app.get("/test/boom")
        async def boom():
            raise RuntimeError("secret internals")

        response = await client.get("/test/boom")
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert "secret internals" not in response.text

    @pytest.mark.asyncio
    async def test_request_validation_error_returns_400(self, app, client):
        """Pydantic validation failures use VALIDATION_ERROR."""

        @app.get("/test/typed")
        async def typed(count: int):
            return {"count": count}

        response = await client.get("/test/typed", params={"count": "many"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["details"][0]["loc"] == ["query", "count"]


class TestCORSMiddleware:
    """Tests for CORS middleware configuration."""

    @pytest.mark.asyncio
    async def test_cors_allows_configured_origin(self, client):
        """Preflight from a configured origin succeeds."""
        response = await client.options(
            "/health",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert response.status_code == 200
        assert (
            response.headers.get("access-control-allow-origin")
            == "http://localhost:3000"
        )

    @pytest.mark.asyncio
    async def test_cors_denies_unconfigured_origin(self):
        """Unconfigured origins are not echoed back."""
        with patch("feedback.main.settings.allowed_origins", ["http://allowed.test"]):
            test_app = create_app()
            transport = ASGITransport(app=test_app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.options(
                    "/health",
                    headers={
                        "Origin": "http://malicious-site.com",
                        "Access-Control-Request-Method": "GET",
                    },
                )
        allowed_origin = response.headers.get("access-control-allow-origin")
        assert allowed_origin != "http://malicious-site.com"


class TestSecurityHeadersMiddleware:
    """Tests for security headers middleware."""

    @pytest.mark.asyncio
    async def test_standard_headers(self, client):
        """Frame, sniffing, referrer and CSP headers are set."""
        response = await client.get("/health")
        assert response.headers.get("x-frame-options") == "DENY"
        assert response.headers.get("x-content-type-options") == "nosniff"
        assert response.headers.get("referrer-policy") == "no-referrer"
        assert "default-src 'none'" in response.headers["content-security-policy"]

    @pytest.mark.asyncio
    async def test_api_responses_not_cached(self, client):
        """API paths get Cache-Control: no-store."""
        response = await client.get("/api/v1/nonexistent")
        assert response.headers.get("cache-control") == "no-store, max-age=0"

    @pytest.mark.asyncio
    async def test_hsts_only_in_production(self, client):
        """HSTS is absent outside production."""
        response = await client.get("/health")
        assert "strict-transport-security" not in response.headers

    @pytest.mark.asyncio
    async def test_hsts_in_production(self):
        """HSTS is present in production."""
        with patch("feedback.main.settings.environment", "production"):
            test_app = create_app()
            transport = ASGITransport(app=test_app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.get("/health")
        assert "max-age=31536000" in response.headers["strict-transport-security"]
