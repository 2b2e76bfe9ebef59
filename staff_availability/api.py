from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel

from staff_availability.config import EngineSettings, configure_logging
from staff_availability.conflicts import check_booking_conflicts
from staff_availability.database import AvailabilityStore, InMemoryAvailabilityStore
from staff_availability.engine import INVALID_WINDOW, AvailabilityEngine
from staff_availability.models import (
    AvailabilityRequest,
    AvailabilityResponse,
    ConflictCheckRequest,
    ScheduleConflict,
    TimeWindow,
)

router = APIRouter()


class ConflictCheckResponse(BaseModel):
    has_conflicts: bool
    conflicts: list[ScheduleConflict]


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/availability/check")
async def check_availability(
    body: AvailabilityRequest, request: Request
) -> AvailabilityResponse:
    # failures are reported in the body, never as an HTTP error
    engine: AvailabilityEngine = request.app.state.engine
    return await engine.check_availability(body)


@router.post("/conflicts/check")
async def check_conflicts(
    body: ConflictCheckRequest, request: Request
) -> ConflictCheckResponse:
    if body.start_time >= body.end_time:
        raise HTTPException(status_code=422, detail=INVALID_WINDOW)

    store: AvailabilityStore = request.app.state.store
    conflicts = await check_booking_conflicts(
        store,
        booking_date=body.booking_date,
        window=TimeWindow(start_time=body.start_time, end_time=body.end_time),
        staff_id=body.staff_id,
        team_id=body.team_id,
        exclude_booking_id=body.exclude_booking_id,
        settings=request.app.state.settings,
    )
    return ConflictCheckResponse(
        has_conflicts=bool(conflicts), conflicts=conflicts
    )


def create_app(
    store: AvailabilityStore | None = None,
    settings: EngineSettings | None = None,
) -> FastAPI:
    settings = settings or EngineSettings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI()
    app.state.settings = settings
    app.state.store = store or InMemoryAvailabilityStore(
        inactive_statuses=settings.inactive_statuses
    )
    app.state.engine = AvailabilityEngine(app.state.store, settings)

    app.include_router(router)
    return app
