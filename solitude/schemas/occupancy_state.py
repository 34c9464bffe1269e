"""Common enums used across schemas."""

from enum import Enum


class OccupancyState(str, Enum):
    """Occupancy of the shared page, derived from the live session count.

    - VACANT: nobody is connected (0 sessions).
    - OCCUPIED: exactly one visitor holds the page (1 session).
    - CONTENDED: two or more visitors are present; everyone sees the failure view.
    """

    VACANT = "vacant"
    OCCUPIED = "occupied"
    CONTENDED = "contended"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_count(cls, count: int) -> "OccupancyState":
        """Map a session count to its occupancy label."""
        if count <= 0:
            return cls.VACANT
        if count == 1:
            return cls.OCCUPIED
        return cls.CONTENDED


__all__ = ["OccupancyState"]
