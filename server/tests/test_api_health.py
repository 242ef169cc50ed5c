"""Tests against the fully assembled app: middleware, docs and service endpoints."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ceylonbooking.main import create_app

TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"
PARENT_ID = "00f067aa0ba902b7"


@pytest_asyncio.fixture
async def app_client():
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_service_endpoints(app_client):
    response = await app_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

    response = await app_client.get("/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"

    response = await app_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "ceylonbooking-api"
    assert data["features"]["local_country_code"] == "LK"


@pytest.mark.asyncio
async def test_metrics_endpoint(app_client):
    response = await app_client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


@pytest.mark.asyncio
async def test_request_id_is_echoed_or_generated(app_client):
    response = await app_client.post("/v1/health/ping", headers={"X-Request-ID": "req-123"})
    assert response.headers["x-request-id"] == "req-123"

    response = await app_client.post("/v1/health/ping")
    assert response.headers["x-request-id"]


@pytest.mark.asyncio
async def test_traceparent_continues_incoming_trace(app_client):
    response = await app_client.post(
        "/v1/health/ping",
        headers={"traceparent": f"00-{TRACE_ID}-{PARENT_ID}-01", "tracestate": "vendor=1"},
    )

    version, trace_id, span_id, flags = response.headers["traceparent"].split("-")
    assert (version, trace_id, flags) == ("00", TRACE_ID, "01")
    assert span_id != PARENT_ID
    assert response.headers["tracestate"] == "vendor=1"


@pytest.mark.asyncio
async def test_problem_details_through_middleware(app_client):
    response = await app_client.post("/v1/booking/check-availability", json={"quantity": 0})
    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_openapi_docs(app_client):
    """Interactive docs are only served in development; the schema always is."""
    response = await app_client.get("/docs")
    # The suite runs with ENVIRONMENT=test
    assert response.status_code == 404

    response = await app_client.get("/openapi.json")
    assert response.status_code == 200
    paths = response.json()["paths"]
    assert "/v1/booking/create" in paths
    assert "/v1/booking/check-availability" in paths
