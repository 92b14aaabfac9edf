import logging
import threading
from typing import Any, Dict, List, Optional, Set, Tuple
from uuid import uuid4

from .errors import DuplicateError, DuplicateKind, ValidationError
from .models import (
    CheckInStatus,
    Event,
    EventType,
    FieldRole,
    FieldType,
    FormField,
    Participant,
    utcnow,
)
from .normalizers import (
    is_empty_value,
    is_valid_email,
    normalize_email,
    normalize_team_name,
    parse_number,
    team_key,
)
from ..storage.base import PARTICIPANTS, RecordStore

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
TEAM_NAME_FALLBACK_KEY = "teamName"


class RegistrationEngine:
    """
    Turns a form submission into a stored participant.

    Steps, in order: required-field check, value check, identity
    extraction through field roles, duplicate checks against the same
    event, then creation with a fresh entry token.
    """

    def __init__(
        self,
        store: RecordStore,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._store = store
        self._lock = lock or threading.RLock()

    def _check_required(self, event: Event, submission: Dict[str, Any]) -> None:
        missing = [
            f.label for f in event.form_fields
            if f.required and is_empty_value(submission.get(f.id))
        ]
        if missing:
            logger.info(
                f"Registration rejected, missing fields: event_id={event.id}, "
                f"missing={missing}"
            )
            raise ValidationError(missing=missing)

    def _clean_value(self, form_field: FormField, value: Any) -> Tuple[bool, Any]:
        """
        Validates one provided value against its field type.

        Returns:
            (ok, cleaned value)
        """
        if form_field.type == FieldType.EMAIL:
            if not isinstance(value, str):
                return False, value
            return is_valid_email(value), value.strip()
        if form_field.type == FieldType.NUMBER:
            number = parse_number(value)
            return number is not None, number
        if form_field.type == FieldType.SELECT:
            return value in (form_field.options or []), value
        if form_field.type == FieldType.CHECKBOX:
            return isinstance(value, bool), value
        return isinstance(value, str), value

    def _clean_submission(self, event: Event, submission: Dict[str, Any]) -> Dict[str, Any]:
        form_data = dict(submission)
        invalid: List[str] = []
        for form_field in event.form_fields:
            value = submission.get(form_field.id)
            if is_empty_value(value):
                continue
            ok, cleaned = self._clean_value(form_field, value)
            if not ok:
                invalid.append(form_field.label)
                continue
            form_data[form_field.id] = cleaned
        if invalid:
            logger.info(
                f"Registration rejected, invalid values: event_id={event.id}, "
                f"invalid={invalid}"
            )
            raise ValidationError(invalid=invalid)
        return form_data

    def _role_value(self, event: Event, role: FieldRole, form_data: Dict[str, Any]) -> Any:
        form_field = event.field_with_role(role)
        if form_field is None:
            return None
        return form_data.get(form_field.id)

    def _extract_identity(
        self, event: Event, form_data: Dict[str, Any]
    ) -> Tuple[str, str, Optional[str]]:
        raw_name = self._role_value(event, FieldRole.NAME, form_data)
        name = raw_name.strip() if isinstance(raw_name, str) and raw_name.strip() else UNKNOWN_NAME

        raw_email = self._role_value(event, FieldRole.EMAIL, form_data)
        email = raw_email.strip() if isinstance(raw_email, str) else ""

        team_name = None
        if event.event_type == EventType.TEAM:
            if event.field_with_role(FieldRole.TEAM_NAME) is not None:
                raw_team = self._role_value(event, FieldRole.TEAM_NAME, form_data)
            else:
                raw_team = form_data.get(TEAM_NAME_FALLBACK_KEY)
            team_name = normalize_team_name(raw_team)

        return name, email, team_name

    def _check_duplicates(
        self,
        event: Event,
        email: str,
        team_name: Optional[str],
        participants: List[Participant],
    ) -> None:
        email_key = normalize_email(email)
        wanted_team = team_key(team_name)

        for existing in participants:
            if existing.event_id != event.id:
                continue
            if email_key and normalize_email(existing.email) == email_key:
                logger.warning(
                    f"Duplicate registration by email: event_id={event.id}, "
                    f"email={email_key}, existing_id={existing.id}"
                )
                raise DuplicateError(DuplicateKind.EMAIL)
            if wanted_team and team_key(existing.team_name) == wanted_team:
                logger.warning(
                    f"Duplicate registration by team: event_id={event.id}, "
                    f"team_name={team_name}, existing_id={existing.id}"
                )
                raise DuplicateError(DuplicateKind.TEAM)

    @staticmethod
    def _new_entry_token(taken: Set[str]) -> str:
        token = str(uuid4())
        while token in taken:
            token = str(uuid4())
        return token

    def register(self, event: Event, submission: Dict[str, Any]) -> Participant:
        """
        Registers a participant for `event`.

        Args:
            event: Event whose form schema the submission answers
            submission: Mapping from field id to submitted value

        Returns:
            The stored participant, Pending, with its entry token

        Raises:
            ValidationError: required fields missing or values malformed
            DuplicateError: email or team already registered for this event
        """
        submission = submission or {}
        self._check_required(event, submission)
        form_data = self._clean_submission(event, submission)
        name, email, team_name = self._extract_identity(event, form_data)

        with self._lock:
            participants = [
                Participant.from_record(r)
                for r in self._store.read_collection(PARTICIPANTS)
            ]
            self._check_duplicates(event, email, team_name, participants)

            participant = Participant(
                id=str(uuid4()),
                event_id=event.id,
                entry_uuid=self._new_entry_token({p.entry_uuid for p in participants}),
                name=name,
                email=email,
                team_name=team_name,
                form_data=form_data,
                check_in_status=CheckInStatus.PENDING,
                registered_at=utcnow(),
            )
            participants.append(participant)
            self._store.write_collection(
                PARTICIPANTS, [p.to_record() for p in participants]
            )

        logger.info(
            f"Participant registered: participant_id={participant.id}, "
            f"event_id={event.id}, email={email or '-'}, team_name={team_name or '-'}"
        )
        return participant
