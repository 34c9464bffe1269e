"""Presence domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

import orjson
from pydantic import BaseModel

from solitude.schemas import OccupancyState

if TYPE_CHECKING:
    from solitude.app_config import AppEnvironConfig

    from .stream import SessionStream


class PresenceEventType(str, Enum):
    STATUS = "status"
    OCCUPANCY_CHANGED = "occupancy_changed"
    SHUTDOWN = "shutdown"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class PresenceEvent(BaseModel):
    """Event pushed to connected clients over their stream."""

    type: PresenceEventType
    count: int | None = None
    state: OccupancyState | None = None
    message: str | None = None

    @classmethod
    def status(cls, count: int) -> PresenceEvent:
        return cls(type=PresenceEventType.STATUS, count=count)

    @classmethod
    def occupancy_changed(cls, state: OccupancyState, count: int) -> PresenceEvent:
        return cls(type=PresenceEventType.OCCUPANCY_CHANGED, state=state, count=count)

    @classmethod
    def shutdown(cls, message: str = "server is shutting down") -> PresenceEvent:
        return cls(type=PresenceEventType.SHUTDOWN, message=message)

    @classmethod
    def error(cls, message: str) -> PresenceEvent:
        return cls(type=PresenceEventType.ERROR, message=message)

    def to_message(self) -> dict[str, str]:
        """Server-sent event message with the JSON payload as `data`, null fields omitted."""
        payload = orjson.dumps(self.model_dump(mode="json", exclude_none=True))
        return {"data": payload.decode()}


class SessionOrigin(BaseModel):
    """Where a session came from. Diagnostics only, never used for identity."""

    address: str | None = None
    user_agent: str | None = None


class TouchResult(str, Enum):
    REFRESHED = "refreshed"
    NOT_FOUND = "not_found"


@dataclass
class SessionRecord:
    """One visitor's occupancy claim. Owned and mutated only by the SessionStore."""

    session_id: str
    last_seen: float
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stream: SessionStream | None = None
    origin: SessionOrigin | None = None

    @property
    def has_open_stream(self) -> bool:
        return self.stream is not None and not self.stream.closed


@dataclass(frozen=True)
class RegisterResult:
    """Outcome of SessionStore.register."""

    created: bool
    count: int
    displaced: SessionStream | None = None


class OccupancySnapshot(BaseModel):
    """Current occupancy as reported to the rendered page."""

    state: OccupancyState
    count: int


@dataclass(frozen=True)
class PresenceSettings:
    """Validated presence timing and buffering parameters (seconds)."""

    heartbeat_interval: float = 5.0
    sweep_interval: float = 5.0
    stale_threshold: float = 15.0
    stream_queue_size: int = 32
    stream_keepalive: float = 15.0
    release_on_stream_close: bool = True

    def __post_init__(self):
        for name in ("heartbeat_interval", "sweep_interval", "stale_threshold", "stream_keepalive"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0 (got {getattr(self, name)})")
        if self.stream_queue_size < 1:
            raise ValueError(f"stream_queue_size must be >= 1 (got {self.stream_queue_size})")
        if self.stale_threshold <= self.heartbeat_interval:
            raise ValueError(
                f"stale_threshold ({self.stale_threshold}) must exceed "
                f"heartbeat_interval ({self.heartbeat_interval})"
            )
        if self.stale_threshold <= self.sweep_interval:
            raise ValueError(
                f"stale_threshold ({self.stale_threshold}) must exceed "
                f"sweep_interval ({self.sweep_interval})"
            )

    @staticmethod
    def from_app_config(app_config: AppEnvironConfig) -> PresenceSettings:
        return PresenceSettings(
            heartbeat_interval=app_config.HEARTBEAT_INTERVAL_SECONDS,
            sweep_interval=app_config.SWEEP_INTERVAL_SECONDS,
            stale_threshold=app_config.STALE_THRESHOLD_SECONDS,
            stream_queue_size=app_config.STREAM_QUEUE_SIZE,
            stream_keepalive=app_config.STREAM_KEEPALIVE_SECONDS,
            release_on_stream_close=app_config.RELEASE_ON_STREAM_CLOSE,
        )
