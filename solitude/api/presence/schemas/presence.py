from enum import Enum

from pydantic import BaseModel, Field

from solitude.schemas import OccupancyState


class HeartbeatStatus(str, Enum):
    ALIVE = "alive"
    RECONNECT_NEEDED = "reconnect_needed"


class HeartbeatOut(BaseModel):
    status: HeartbeatStatus
    heartbeat_interval: float = Field(description="Seconds between client heartbeats")


class DisconnectOut(BaseModel):
    removed: bool


class OccupancyOut(BaseModel):
    state: OccupancyState
    count: int
