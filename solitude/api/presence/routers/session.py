"""Heartbeat and explicit disconnect endpoints."""

from fastapi import APIRouter, Depends

from solitude.api.presence.dependency import get_presence_service, require_session_id
from solitude.api.presence.schemas.base import ApiOut
from solitude.api.presence.schemas.presence import DisconnectOut, HeartbeatOut, HeartbeatStatus
from solitude.domain.presence import PresenceService, TouchResult

router = APIRouter(prefix="/presence")


@router.post("/heartbeat")
async def heartbeat(
    session_id: str = Depends(require_session_id),
    service: PresenceService = Depends(get_presence_service),
) -> ApiOut[HeartbeatOut]:
    """Refresh a session's liveness.

    Returns `reconnect_needed` when the session already expired; the client
    must reopen its event stream. No session is created here.

    Raises:
        400: session_id missing
    """
    result = await service.heartbeat(session_id)
    status = (
        HeartbeatStatus.ALIVE if result is TouchResult.REFRESHED else HeartbeatStatus.RECONNECT_NEEDED
    )

    return ApiOut[HeartbeatOut](
        results=HeartbeatOut(
            status=status,
            heartbeat_interval=service.settings.heartbeat_interval,
        )
    )


@router.post("/disconnect")
async def disconnect(
    session_id: str = Depends(require_session_id),
    service: PresenceService = Depends(get_presence_service),
) -> ApiOut[DisconnectOut]:
    """Leave the page (e.g. from an unload beacon). Idempotent."""
    removed = await service.disconnect(session_id)
    return ApiOut[DisconnectOut](results=DisconnectOut(removed=removed))
