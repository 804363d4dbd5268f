"""Middleware tests: request ID, rate limiting, CORS, error shape."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient


def _limiter_redis(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient) -> None:
    with patch("mindbreaker.middleware.rate_limit.get_redis", return_value=_limiter_redis(1)):
        response = await client.get("/version")
    assert response.headers["x-ratelimit-remaining"] == "99"
    assert response.headers["x-ratelimit-limit"] == "100"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient) -> None:
    """Request 101 in a window returns 429 with Retry-After."""
    with patch("mindbreaker.middleware.rate_limit.get_redis", return_value=_limiter_redis(101)):
        response = await client.get("/version")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient) -> None:
    with patch("mindbreaker.middleware.rate_limit.get_redis", return_value=_limiter_redis(10_000)):
        response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_skipped_without_redis(client: AsyncClient) -> None:
    """Redis is never initialized in tests, so requests pass through unthrottled."""
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/health",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_shape(client: AsyncClient) -> None:
    response = await client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
