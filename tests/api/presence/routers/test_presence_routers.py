"""Unit tests for presence router endpoints.

Routers are mounted on a bare FastAPI app with the presence error handler and
a PresenceService driven by a fake clock.
"""

import orjson
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from solitude.api.presence.errors import app_error_handler
from solitude.api.presence.routers import events, occupancy, session
from solitude.domain.presence import PresenceService
from solitude.shared.api import health
from solitude.utils.presence_errors import PresenceError
from tests.fixtures.presence_fixtures import FakeClock


@pytest.fixture
def test_app(presence_service: PresenceService) -> FastAPI:
    """Create FastAPI test app with routers and error handler."""
    app = FastAPI()
    app.add_exception_handler(PresenceError, app_error_handler)  # type: ignore[arg-type]
    app.include_router(health.router)
    for module in (events, session, occupancy):
        app.include_router(module.router, prefix="/api/v1")
    app.state.presence_service = presence_service
    return app


@pytest_asyncio.fixture
async def client(test_app: FastAPI):
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=test_app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["results"] == "OK"


class TestHeartbeat:
    """Tests for POST /api/v1/presence/heartbeat."""

    async def test_missing_session_id_is_rejected(self, client: AsyncClient):
        """Should return 400 with E_MISSING_IDENTIFIER and change nothing."""
        response = await client.post("/api/v1/presence/heartbeat")

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["errcode"] == "E_MISSING_IDENTIFIER"

    async def test_blank_session_id_is_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/presence/heartbeat", params={"session_id": "  "})

        assert response.status_code == 400

    async def test_unknown_session_needs_reconnect(
        self, client: AsyncClient, presence_service: PresenceService
    ):
        """Should report reconnect_needed without creating a session."""
        response = await client.post("/api/v1/presence/heartbeat", params={"session_id": "ghost"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["results"]["status"] == "reconnect_needed"
        assert (await presence_service.occupancy()).count == 0

    async def test_known_session_is_alive(
        self, client: AsyncClient, presence_service: PresenceService, fake_clock: FakeClock
    ):
        await presence_service.subscribe("a")
        fake_clock.advance(4)

        response = await client.post("/api/v1/presence/heartbeat", params={"session_id": "a"})

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["status"] == "alive"
        assert results["heartbeat_interval"] == 5
        records = await presence_service.store.snapshot()
        assert records[0].last_seen == fake_clock.now


class TestDisconnect:
    """Tests for POST /api/v1/presence/disconnect."""

    async def test_disconnect_removes_session(
        self, client: AsyncClient, presence_service: PresenceService
    ):
        await presence_service.subscribe("a")

        response = await client.post("/api/v1/presence/disconnect", params={"session_id": "a"})

        assert response.status_code == 200
        assert response.json()["results"]["removed"] is True
        assert (await presence_service.occupancy()).count == 0

    async def test_disconnect_is_idempotent(self, client: AsyncClient):
        response = await client.post("/api/v1/presence/disconnect", params={"session_id": "a"})

        assert response.status_code == 200
        assert response.json()["results"]["removed"] is False

    async def test_disconnect_requires_session_id(self, client: AsyncClient):
        response = await client.post("/api/v1/presence/disconnect")

        assert response.status_code == 400


class TestOccupancy:
    """Tests for GET /api/v1/presence/occupancy."""

    @pytest.mark.parametrize(
        ("session_ids", "state"),
        [
            ((), "vacant"),
            (("a",), "occupied"),
            (("a", "b"), "contended"),
        ],
    )
    async def test_reports_state_and_count(
        self,
        client: AsyncClient,
        presence_service: PresenceService,
        session_ids: tuple[str, ...],
        state: str,
    ):
        for session_id in session_ids:
            await presence_service.subscribe(session_id)

        response = await client.get("/api/v1/presence/occupancy")

        assert response.status_code == 200
        assert response.json()["results"] == {"state": state, "count": len(session_ids)}


class TestEventsEndpoint:
    """Tests for GET /api/v1/presence/events."""

    async def test_missing_session_id_gets_error_event(
        self, client: AsyncClient, presence_service: PresenceService
    ):
        """Should send a single error frame, end the stream, and register nothing."""
        response = await client.get("/api/v1/presence/events")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        data_lines = [line for line in response.text.splitlines() if line.startswith("data:")]
        assert len(data_lines) == 1
        payload = orjson.loads(data_lines[0].removeprefix("data:").strip())
        assert payload["type"] == "error"
        assert (await presence_service.occupancy()).count == 0
