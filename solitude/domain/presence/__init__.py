from .broadcast import BroadcastEngine
from .occupancy_policy import OccupancyPolicy
from .presence_domain import PresenceService
from .presence_models import (
    OccupancySnapshot,
    PresenceEvent,
    PresenceEventType,
    PresenceSettings,
    SessionOrigin,
    SessionRecord,
    TouchResult,
)
from .session_store import SessionStore
from .stream import SessionStream, StreamWriteFailure
from .sweeper import LivenessSweeper

__all__ = [
    "BroadcastEngine",
    "LivenessSweeper",
    "OccupancyPolicy",
    "OccupancySnapshot",
    "PresenceEvent",
    "PresenceEventType",
    "PresenceService",
    "PresenceSettings",
    "SessionOrigin",
    "SessionRecord",
    "SessionStore",
    "SessionStream",
    "StreamWriteFailure",
    "TouchResult",
]
