import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from .errors import InvalidTokenError
from .models import CheckInStatus, Participant
from ..storage.base import PARTICIPANTS, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class CheckInResult:
    participant: Participant
    # True when the pass had already been scanned before this call
    already_checked_in: bool


class CheckInEngine:
    """
    Validates entry passes at the door.

    The entry token is the only credential: lookup is an exact string
    match and every failure reads the same ("access denied").
    """

    def __init__(self, store: RecordStore, lock: Optional[threading.RLock] = None) -> None:
        self._store = store
        self._lock = lock or threading.RLock()

    def _load(self) -> List[Participant]:
        return [Participant.from_record(r) for r in self._store.read_collection(PARTICIPANTS)]

    def find_by_token(self, token: str) -> Participant:
        """
        Returns the participant whose entry token equals `token` exactly.

        Raises:
            InvalidTokenError: blank, malformed or unknown token
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError()
        for participant in self._load():
            if participant.entry_uuid == token:
                return participant
        logger.warning("Entry pass lookup failed: unknown token")
        raise InvalidTokenError()

    def check_in(self, token: str) -> CheckInResult:
        """
        Marks the pass holder as present. Scanning the same pass again is
        not an error: the record comes back unchanged with
        `already_checked_in=True`.

        Raises:
            InvalidTokenError: blank, malformed or unknown token
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError()

        with self._lock:
            participants = self._load()
            index = next(
                (i for i, p in enumerate(participants) if p.entry_uuid == token), None
            )
            if index is None:
                logger.warning("Check-in refused: unknown token")
                raise InvalidTokenError()

            participant = participants[index]
            if participant.is_checked_in:
                logger.info(
                    f"Entry pass scanned again: participant_id={participant.id}, "
                    f"event_id={participant.event_id}"
                )
                return CheckInResult(participant=participant, already_checked_in=True)

            participant.check_in_status = CheckInStatus.CHECKED_IN
            participants[index] = participant
            self._store.write_collection(
                PARTICIPANTS, [p.to_record() for p in participants]
            )

        logger.info(
            f"Participant checked in: participant_id={participant.id}, "
            f"event_id={participant.event_id}"
        )
        return CheckInResult(participant=participant, already_checked_in=False)
