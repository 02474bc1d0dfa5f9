"""Tests for global exception handlers.

Validates that every error kind maps to its HTTP status and JSON body, and
that no internal detail leaks to clients.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from weather_proxy.core.errors import (
    AppError,
    RateLimitExceededError,
    UpstreamHTTPError,
    UpstreamPayloadError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from weather_proxy.core.exception_handlers import (
    general_exception_handler,
    resolve_error_response,
    setup_exception_handlers,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_rate_limit_error_returns_429_with_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limit")
        async def test_endpoint():
            raise RateLimitExceededError(
                code="rate_limit_exceeded",
                message="Rate limit exceeded for 1.2.3.4",
                details={"client_ip": "1.2.3.4", "retry_after": 12, "limit": 60, "remaining": 0, "reset_at": 1020},
            )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.json() == {
            "error": "Too many requests",
            "message": "Rate limit exceeded. Please try again later.",
        }
        assert response.headers["Retry-After"] == "12"
        assert response.headers["X-RateLimit-Limit"] == "60"
        assert response.headers["X-RateLimit-Reset"] == "1020"

    def test_rate_limit_error_without_retry_details_has_no_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limit-bare")
        async def test_endpoint():
            raise RateLimitExceededError(code="rate_limit_exceeded", message="limited", details={"client_ip": "1.2.3.4"})

        response = client.get("/test-rate-limit-bare")

        assert response.status_code == 429
        assert "Retry-After" not in response.headers

    def test_transport_error_returns_504(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-transport")
        async def test_endpoint():
            raise UpstreamTransportError(code="upstream_timeout", message="ReadTimeout after 10s")

        response = client.get("/test-transport")

        assert response.status_code == 504
        assert response.json()["error"] == "Gateway timeout"
        assert "ReadTimeout" not in response.text

    def test_http_error_returns_502(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-http")
        async def test_endpoint():
            raise UpstreamHTTPError(code="upstream_http_error", message="HTTP 503", details={"upstream_status": 503})

        response = client.get("/test-http")

        assert response.status_code == 502
        assert response.json() == {
            "error": "Bad gateway",
            "message": "Weather service returned an error. Please try again later.",
        }

    def test_payload_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-payload")
        async def test_endpoint():
            raise UpstreamPayloadError(code="upstream_invalid_json", message="Expecting value: line 1")

        response = client.get("/test-payload")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


@pytest.mark.parametrize(
    "error, expected_status",
    [
        (RateLimitExceededError(code="x", message="x"), 429),
        (UpstreamTransportError(code="x", message="x"), 504),
        (UpstreamTimeoutError(code="x", message="x"), 504),
        (UpstreamHTTPError(code="x", message="x"), 502),
        (UpstreamPayloadError(code="x", message="x"), 500),
        (AppError(code="x", message="x"), 500),
    ],
)
def test_resolve_error_response(error: AppError, expected_status: int):
    status_code, _, message = resolve_error_response(error)

    assert status_code == expected_status
    assert message.endswith("Please try again later.")


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_unexpected_exception_through_app(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-unexpected")
        async def test_endpoint():
            raise KeyError("current")

        response = client.get("/test-unexpected")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"

    def test_general_exception_handler_logic(self):
        request = AsyncMock()
        request.url.path = "/api/weather"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: cache lock poisoned")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data == {
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        }

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/api/weather"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "File \"" not in response_text
        assert "ValueError" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
