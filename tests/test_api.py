from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from staff_availability.api import create_app
from staff_availability.config import EngineSettings
from tests.conftest import DAY, booking


def _p(msg: str) -> None:
    # pytest captures stdout unless you run with -s
    print(msg, flush=True)


@pytest_asyncio.fixture
async def client(team_store):
    app = create_app(store=team_store, settings=EngineSettings())
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as async_client:
        yield async_client


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_check_availability_for_staff(
    client: AsyncClient, team_store
) -> None:
    team_store.add_booking(booking("b1", "10:00", "12:00", staff_id="alice-id"))

    resp = await client.post(
        "/availability/check",
        json={
            "dates": [DAY.isoformat()],
            "start_time": "11:00",
            "end_time": "13:00",
            "service_id": "svc-clean",
            "mode": "individual",
        },
    )
    _p(f"POST /availability/check -> status={resp.status_code}")

    assert resp.status_code == 200
    data = resp.json()
    assert data["state"] == "ready"
    assert data["service_skill_tag"] == "Cleaning"
    alice = next(r for r in data["staff_results"] if r["staff_id"] == "alice-id")
    assert alice["is_available"] is False
    assert alice["conflicts"][0]["booking_id"] == "b1"
    assert alice["conflicts"][0]["customer_name"] == "Pat Customer"


@pytest.mark.asyncio
async def test_check_availability_for_teams_over_several_dates(
    client: AsyncClient,
) -> None:
    resp = await client.post(
        "/availability/check",
        json={
            "dates": ["2025-07-02", "2025-07-03"],
            "start_time": "09:00",
            "end_time": "10:00",
            "service_id": "svc-clean",
            "mode": "team",
        },
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["multi_date"] is True
    assert data["staff_results"] == []
    alpha = next(t for t in data["team_results"] if t["team_id"] == "team-a")
    assert alpha["is_available_all_dates"] is True
    assert set(alpha["date_availability"]) == {"2025-07-02", "2025-07-03"}


@pytest.mark.asyncio
async def test_check_availability_incomplete_input_is_idle(
    client: AsyncClient,
) -> None:
    resp = await client.post(
        "/availability/check", json={"start_time": "09:00", "end_time": "10:00"}
    )

    assert resp.status_code == 200
    assert resp.json()["state"] == "idle"
    assert resp.json()["error"] is None


@pytest.mark.asyncio
async def test_check_availability_store_failure_is_reported_in_body(
    client: AsyncClient, team_store, monkeypatch
) -> None:
    monkeypatch.setattr(
        team_store,
        "get_service_requirement",
        AsyncMock(side_effect=RuntimeError("store offline")),
    )

    resp = await client.post(
        "/availability/check",
        json={
            "dates": [DAY.isoformat()],
            "start_time": "11:00",
            "end_time": "13:00",
            "service_id": "svc-clean",
        },
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["state"] == "failed"
    assert data["error"] == "store offline"
    assert data["staff_results"] == []


@pytest.mark.asyncio
async def test_conflict_check_endpoint(client: AsyncClient, team_store) -> None:
    team_store.add_booking(booking("b1", "10:00", "12:00", team_id="team-a"))

    resp = await client.post(
        "/conflicts/check",
        json={
            "team_id": "team-a",
            "booking_date": DAY.isoformat(),
            "start_time": "11:00",
            "end_time": "12:30",
        },
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["has_conflicts"] is True
    assert data["conflicts"][0]["conflict_type"] == "team"
    assert data["conflicts"][0]["booking"]["id"] == "b1"


@pytest.mark.asyncio
async def test_conflict_check_rejects_inverted_window(client: AsyncClient) -> None:
    resp = await client.post(
        "/conflicts/check",
        json={
            "staff_id": "alice-id",
            "booking_date": DAY.isoformat(),
            "start_time": "12:00",
            "end_time": "11:00",
        },
    )

    assert resp.status_code == 422
    assert "invalid_window" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_injected_store_follows_configured_inactive_statuses(team_store) -> None:
    # the store only filters "cancelled"; the app settings also retire "completed"
    team_store.add_booking(
        booking("done", "10:00", "12:00", staff_id="alice-id", status="completed")
    )
    settings = EngineSettings(inactive_statuses=frozenset({"cancelled", "completed"}))
    app = create_app(store=team_store, settings=settings)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        availability = await client.post(
            "/availability/check",
            json={
                "dates": [DAY.isoformat()],
                "start_time": "11:00",
                "end_time": "13:00",
                "service_id": "svc-clean",
            },
        )
        point = await client.post(
            "/conflicts/check",
            json={
                "staff_id": "alice-id",
                "booking_date": DAY.isoformat(),
                "start_time": "11:00",
                "end_time": "13:00",
            },
        )

    alice = next(
        r for r in availability.json()["staff_results"] if r["staff_id"] == "alice-id"
    )
    assert alice["is_available"] is True
    assert alice["conflicts"] == []
    assert alice["jobs_today"] == 0
    assert point.json() == {"has_conflicts": False, "conflicts": []}


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("AVAILABILITY_INACTIVE_STATUSES", "Cancelled, no_show")
    monkeypatch.setenv("AVAILABILITY_LOG_LEVEL", "debug")

    settings = EngineSettings.from_env()

    assert settings.inactive_statuses == frozenset({"cancelled", "no_show"})
    assert settings.log_level == "DEBUG"
    assert settings.is_active_status("confirmed")
    assert not settings.is_active_status("NO_SHOW")
