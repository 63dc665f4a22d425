"""API routes for the in-vehicle driving session."""

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from pydantic import BaseModel

from config import (
    SPEED_LIMIT_TIMEOUT_SECONDS,
    get_local_timezone,
    get_speed_unit,
    hands_free_readout_enabled,
    require_speed_limit_service_url,
    speed_limit_service_configured,
    zone_announcements_enabled,
)
from core.api import api_route
from core.exceptions import PositionSourceError, ValidationException
from core.timers import AsyncioScheduler
from tracking.services.kinematics import SOURCE_ERROR_MESSAGES, PositionSample
from tracking.services.session import DrivingSession, StaticPositionSource
from tracking.services.speed_limit import (
    HttpSpeedLimitFetcher,
    SpeedLimitMonitor,
    SpeedLimitResult,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class StartDriveRequest(BaseModel):
    source_available: bool = True


class ToggleRequest(BaseModel):
    enabled: bool | None = None


class PositionErrorRequest(BaseModel):
    reason: str = PositionSourceError.POSITION_UNAVAILABLE


class SessionState:
    """Process-wide holder for the active driving session."""

    def __init__(self) -> None:
        self._session: DrivingSession | None = None

    def get(self) -> DrivingSession:
        if self._session is None:
            self._session = build_driving_session()
        return self._session

    def set(self, session: DrivingSession | None) -> None:
        self._session = session

    async def close(self) -> None:
        session = self._session
        self._session = None
        if session is None:
            return
        if session.is_tracking:
            session.stop()
        monitor = session.speed_limit_monitor
        if monitor is not None and isinstance(monitor.fetcher, HttpSpeedLimitFetcher):
            await monitor.fetcher.close()


session_state = SessionState()


def build_driving_session() -> DrivingSession:
    """Create a session configured from the environment."""
    scheduler = AsyncioScheduler()
    monitor = None
    if speed_limit_service_configured():
        fetcher = HttpSpeedLimitFetcher(
            require_speed_limit_service_url(),
            timeout_seconds=SPEED_LIMIT_TIMEOUT_SECONDS,
        )
        monitor = SpeedLimitMonitor(fetcher, scheduler.now_ms)
    else:
        logger.warning(
            "SPEED_LIMIT_SERVICE_URL not set; speed limits must be pushed manually",
        )
    return DrivingSession(
        scheduler,
        speed_limit_monitor=monitor,
        unit=get_speed_unit(),
        announcements_enabled=zone_announcements_enabled(),
        hands_free=hands_free_readout_enabled(),
        tz=get_local_timezone(),
    )


def get_driving_session() -> DrivingSession:
    return session_state.get()


@router.post("/api/drive/start", tags=["Driving Session"])
@api_route(logger)
async def start_drive(
    request: StartDriveRequest | None = None,
    session: DrivingSession = Depends(get_driving_session),
):
    """Start tracking a new trip."""
    request = request or StartDriveRequest()
    motion = session.start(StaticPositionSource(request.source_available))
    return {"status": "success", "motion": motion.as_dict()}


@router.post("/api/drive/position", tags=["Driving Session"])
@api_route(logger)
async def ingest_position(
    background_tasks: BackgroundTasks,
    payload: dict[str, Any] = Body(...),
    session: DrivingSession = Depends(get_driving_session),
):
    """Feed one position fix into the session."""
    sample = PositionSample.parse(payload)
    motion = session.ingest(sample)
    if session.speed_limit_monitor is not None:
        background_tasks.add_task(session.refresh_speed_limit)
    return {
        "status": "success",
        "motion": motion.as_dict(),
        "overLimitBy": session.over_limit_by(),
        "alarm": session.alarm.state.as_dict(),
        "turn": session.turns.as_dict(),
    }


@router.post("/api/drive/position-error", tags=["Driving Session"])
@api_route(logger)
async def report_position_error(
    request: PositionErrorRequest,
    session: DrivingSession = Depends(get_driving_session),
):
    """Record a failure reported by the position sensor."""
    if request.reason not in SOURCE_ERROR_MESSAGES:
        msg = f"Unknown position error reason: {request.reason}"
        raise ValidationException(msg)
    motion = session.fail(request.reason)
    return {"status": "success", "motion": motion.as_dict()}


@router.post("/api/drive/speed-limit", tags=["Driving Session"])
@api_route(logger)
async def push_speed_limit(
    result: SpeedLimitResult,
    session: DrivingSession = Depends(get_driving_session),
):
    """Apply a speed-limit result supplied by the client."""
    session.apply_speed_limit(result)
    return {
        "status": "success",
        "speedLimit": result.speed_limit,
        "overLimitBy": session.over_limit_by(),
        "alarm": session.alarm.state.as_dict(),
    }


@router.post("/api/drive/mute", tags=["Driving Session"])
@api_route(logger)
async def set_mute(
    request: ToggleRequest | None = None,
    session: DrivingSession = Depends(get_driving_session),
):
    """Mute or unmute the over-speed alarm. Toggles when no value is given."""
    if request is None or request.enabled is None:
        session.alarm.toggle_mute()
    else:
        session.alarm.set_muted(request.enabled)
    return {"status": "success", "alarm": session.alarm.state.as_dict()}


@router.post("/api/drive/announcements", tags=["Driving Session"])
@api_route(logger)
async def set_announcements(
    request: ToggleRequest | None = None,
    session: DrivingSession = Depends(get_driving_session),
):
    """Enable or disable zone announcements. Toggles when no value is given."""
    if request is None or request.enabled is None:
        session.zones.toggle_announcements()
    else:
        session.zones.set_enabled(request.enabled)
    return {"status": "success", "zone": session.zones.as_dict()}


@router.post("/api/drive/hands-free", tags=["Driving Session"])
@api_route(logger)
async def set_hands_free(
    request: ToggleRequest,
    session: DrivingSession = Depends(get_driving_session),
):
    enabled = not session.hands_free if request.enabled is None else request.enabled
    session.set_hands_free(enabled)
    return {"status": "success", "handsFree": session.hands_free}


@router.post("/api/drive/break/dismiss", tags=["Driving Session"])
@api_route(logger)
async def dismiss_break(session: DrivingSession = Depends(get_driving_session)):
    session.breaks.dismiss()
    return {"status": "success", "breakReminder": session.breaks.as_dict()}


@router.get("/api/drive/state", tags=["Driving Session"])
@api_route(logger)
async def get_drive_state(session: DrivingSession = Depends(get_driving_session)):
    """Full snapshot of the live session."""
    return {"status": "success", **session.snapshot()}


@router.get("/api/drive/eco", tags=["Driving Session"])
@api_route(logger)
async def get_eco_report(session: DrivingSession = Depends(get_driving_session)):
    return {"status": "success", "eco": session.eco_report().model_dump()}


@router.post("/api/drive/stop", tags=["Driving Session"])
@api_route(logger)
async def stop_drive(session: DrivingSession = Depends(get_driving_session)):
    """Stop tracking and finalize the trip record."""
    record = session.stop()
    return {
        "status": "success",
        "trip": record.model_dump() if record else None,
    }


@router.post("/api/drive/reset", tags=["Driving Session"])
@api_route(logger)
async def reset_trip(session: DrivingSession = Depends(get_driving_session)):
    motion = session.reset_trip()
    return {"status": "success", "motion": motion.as_dict()}


@router.get("/api/drive/trip", tags=["Driving Session"])
@api_route(logger)
async def get_trip_record(session: DrivingSession = Depends(get_driving_session)):
    """Most recently completed trip."""
    return {"status": "success", "trip": session.trip_record().model_dump()}


@router.delete("/api/drive/trip", tags=["Driving Session"])
@api_route(logger)
async def clear_trip_record(session: DrivingSession = Depends(get_driving_session)):
    session.clear_trip()
    return {"status": "success"}
