from dataclasses import dataclass
from typing import List

from .models import CheckInStatus, Participant
from ..storage.base import PARTICIPANTS, RecordStore


@dataclass(frozen=True)
class EventStats:
    event_id: str
    total: int
    checked_in: int
    pending: int

    @property
    def check_in_rate(self) -> int:
        """Checked-in share of all registrations, as a rounded percentage."""
        if self.total == 0:
            return 0
        return round(self.checked_in * 100 / self.total)


class StatsAggregator:
    """
    Read-only counts derived from the participant collection on every call.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def participants_for(self, event_id: str) -> List[Participant]:
        return [
            Participant.from_record(r)
            for r in self._store.read_collection(PARTICIPANTS)
            if r.get("event_id") == event_id
        ]

    def stats_for(self, event_id: str) -> EventStats:
        statuses = [
            r.get("check_in_status")
            for r in self._store.read_collection(PARTICIPANTS)
            if r.get("event_id") == event_id
        ]
        total = len(statuses)
        checked_in = sum(1 for s in statuses if s == CheckInStatus.CHECKED_IN.value)
        return EventStats(
            event_id=event_id,
            total=total,
            checked_in=checked_in,
            pending=total - checked_in,
        )
