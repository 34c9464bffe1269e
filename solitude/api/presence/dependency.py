from fastapi import Query, Request

from solitude.domain.presence import PresenceService, SessionOrigin
from solitude.utils.presence_errors import PresenceError, PresenceErrorCode, PresenceStatusCode


def get_presence_service(request: Request) -> PresenceService:
    return request.app.state.presence_service


def get_session_origin(request: Request) -> SessionOrigin:
    return SessionOrigin(
        address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def require_session_id(
    session_id: str | None = Query(None, description="Client-generated session token"),
) -> str:
    value = (session_id or "").strip()
    if not value:
        raise PresenceError(
            errcode=PresenceErrorCode.E_MISSING_IDENTIFIER,
            errmesg="session_id is required",
            status_code=PresenceStatusCode.BAD_REQUEST,
        )
    return value
