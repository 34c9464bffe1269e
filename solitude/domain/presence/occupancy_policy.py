"""Occupancy state machine driven by the live session count."""

from loguru import logger

from solitude.schemas import OccupancyState

from .presence_models import PresenceEvent


class OccupancyPolicy:
    """Decides which event, if any, follows a change in session count.

    State flow:
    - VACANT -> OCCUPIED: first visitor subscribes. No broadcast; the visitor
      already received status(1) on subscribe.
    - OCCUPIED -> CONTENDED: a second visitor arrives. Everyone, including the
      newcomer, receives occupancy_changed(CONTENDED, n).
    - CONTENDED -> OCCUPIED | VACANT, OCCUPIED -> VACANT: a visitor leaves or is
      evicted. Remaining streams receive occupancy_changed(state, n).
    - Same state, different count (e.g. 3 -> 2 visitors): status(n).

    There is no terminal state. The state itself is a pure function of the
    count; the policy only remembers what was last announced.
    """

    TRANSITIONS: dict[OccupancyState, set[OccupancyState]] = {
        OccupancyState.VACANT: {OccupancyState.OCCUPIED, OccupancyState.CONTENDED},
        OccupancyState.OCCUPIED: {OccupancyState.VACANT, OccupancyState.CONTENDED},
        OccupancyState.CONTENDED: {OccupancyState.VACANT, OccupancyState.OCCUPIED},
    }

    # Transitions that change the label without a broadcast
    SILENT_TRANSITIONS: set[tuple[OccupancyState, OccupancyState]] = {
        (OccupancyState.VACANT, OccupancyState.OCCUPIED),
    }

    def __init__(self):
        self._announced_state = OccupancyState.VACANT
        self._announced_count = 0

    @property
    def announced_state(self) -> OccupancyState:
        return self._announced_state

    @property
    def announced_count(self) -> int:
        return self._announced_count

    @staticmethod
    def state_for(count: int) -> OccupancyState:
        return OccupancyState.from_count(count)

    @classmethod
    def can_transition(cls, current: OccupancyState, new: OccupancyState) -> bool:
        """Check if moving from `current` to `new` is a label change the policy knows."""
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def get_valid_transitions(cls, state: OccupancyState) -> set[OccupancyState]:
        return cls.TRANSITIONS.get(state, set())

    def evaluate(self, count: int) -> PresenceEvent | None:
        """
        Record the new count and return the event to broadcast, if any.

        Args:
            count: Current number of sessions in the store

        Returns:
            occupancy_changed when the label changed (except silent transitions),
            status when only the count changed, otherwise None
        """
        new_state = self.state_for(count)
        previous_state, previous_count = self._announced_state, self._announced_count
        self._announced_state, self._announced_count = new_state, count

        if new_state != previous_state:
            logger.info("Occupancy {} -> {} (count={})", previous_state, new_state, count)
            if (previous_state, new_state) in self.SILENT_TRANSITIONS:
                return None
            return PresenceEvent.occupancy_changed(new_state, count)

        if count != previous_count:
            return PresenceEvent.status(count)

        return None

    def reset(self) -> None:
        self._announced_state = OccupancyState.VACANT
        self._announced_count = 0
