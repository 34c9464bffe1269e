"""Shared schemas."""

from .occupancy_state import OccupancyState

__all__ = [
    "OccupancyState",
]
