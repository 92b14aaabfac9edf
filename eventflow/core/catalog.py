import logging
import threading
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from .errors import NotFoundError, ValidationError
from .models import Event, EventType, FieldRole, FieldType, FormField, utcnow
from .normalizers import infer_field_roles
from ..storage.base import EVENTS, RecordStore

logger = logging.getLogger(__name__)

FieldInput = Union[FormField, Dict[str, Any]]

REQUIRED_LABELS = {"name": "Event Name", "date": "Date", "location": "Location"}

# Keys an update may touch; id and created_at are fixed at creation
PATCHABLE_KEYS = (
    "name",
    "description",
    "date",
    "location",
    "event_type",
    "max_team_size",
    "form_fields",
)


def _coerce_field(raw: FieldInput) -> FormField:
    if isinstance(raw, FormField):
        return FormField(
            id=raw.id,
            label=raw.label,
            type=raw.type,
            required=raw.required,
            options=list(raw.options) if raw.options is not None else None,
            role=raw.role,
        )
    try:
        return FormField(
            id=str(raw.get("id") or ""),
            label=str(raw.get("label") or ""),
            type=FieldType(raw.get("type") or FieldType.TEXT.value),
            required=bool(raw.get("required", False)),
            options=raw.get("options"),
            role=FieldRole(raw.get("role") or FieldRole.NONE.value),
        )
    except ValueError:
        raise ValidationError(invalid=[str(raw.get("label") or "form field")])


def normalize_form_fields(raw_fields: List[FieldInput]) -> List[FormField]:
    """
    Cleans a form schema the way the form designer submits it.

    - fields with a blank label are dropped
    - missing ids get a fresh UUID; duplicate ids are rejected
    - options are kept only on select fields, which need at least one
    - semantic roles are inferred for fields that do not declare one

    Raises:
        ValidationError: duplicate ids or a select field without options
    """
    fields: List[FormField] = []
    seen_ids = set()
    invalid: List[str] = []

    for raw in raw_fields or []:
        form_field = _coerce_field(raw)
        form_field.label = form_field.label.strip()
        if not form_field.label:
            continue
        if not form_field.id:
            form_field.id = str(uuid4())
        if form_field.id in seen_ids:
            invalid.append(form_field.label)
            continue
        seen_ids.add(form_field.id)

        if form_field.type == FieldType.SELECT:
            options = [str(o).strip() for o in (form_field.options or []) if str(o).strip()]
            if not options:
                invalid.append(form_field.label)
            form_field.options = options
        else:
            form_field.options = None
        fields.append(form_field)

    if invalid:
        raise ValidationError(invalid=invalid)

    return infer_field_roles(fields)


def _normalize_team_settings(event_type: Any, max_team_size: Any):
    try:
        event_type = EventType(event_type or EventType.INDIVIDUAL.value)
    except ValueError:
        raise ValidationError(invalid=["Event Type"])

    if event_type == EventType.INDIVIDUAL:
        return event_type, None

    if max_team_size is None:
        raise ValidationError(missing=["Max Team Size"])
    try:
        size = int(max_team_size)
    except (TypeError, ValueError):
        raise ValidationError(invalid=["Max Team Size"])
    if size < 2:
        raise ValidationError(invalid=["Max Team Size"])
    return event_type, size


class EventCatalog:
    """
    CRUD over events. Each mutation reads the whole collection,
    changes it and writes it back while holding the shared lock.
    """

    def __init__(self, store: RecordStore, lock: Optional[threading.RLock] = None) -> None:
        self._store = store
        self._lock = lock or threading.RLock()

    def _load(self) -> List[Event]:
        return [Event.from_record(r) for r in self._store.read_collection(EVENTS)]

    def _save(self, events: List[Event]) -> None:
        self._store.write_collection(EVENTS, [e.to_record() for e in events])

    def list_events(self) -> List[Event]:
        return self._load()

    def get_event(self, event_id: str) -> Event:
        for event in self._load():
            if event.id == event_id:
                return event
        raise NotFoundError("Event", event_id)

    def create_event(self, draft: Dict[str, Any]) -> Event:
        """
        Stores a new event built from an admin draft.

        Args:
            draft: name, date, location (required), description, event_type,
                   max_team_size, form_fields

        Returns:
            The stored event, with fresh id and created_at

        Raises:
            ValidationError: missing descriptive fields or a malformed schema
        """
        missing = [
            label for key, label in REQUIRED_LABELS.items()
            if not str(draft.get(key) or "").strip()
        ]
        if missing:
            raise ValidationError(missing=missing)

        event_type, max_team_size = _normalize_team_settings(
            draft.get("event_type"), draft.get("max_team_size")
        )
        event = Event(
            id=str(uuid4()),
            name=str(draft["name"]).strip(),
            description=str(draft.get("description") or ""),
            date=str(draft["date"]).strip(),
            location=str(draft["location"]).strip(),
            event_type=event_type,
            max_team_size=max_team_size,
            form_fields=normalize_form_fields(draft.get("form_fields") or []),
            created_at=utcnow(),
        )

        with self._lock:
            events = self._load()
            events.append(event)
            self._save(events)

        logger.info(
            f"Event created: event_id={event.id}, name={event.name}, "
            f"type={event.event_type.value}, fields={len(event.form_fields)}"
        )
        return event

    def update_event(self, event_id: str, patch: Dict[str, Any]) -> Event:
        """
        Merges `patch` into an existing event. Unknown keys, `id` and
        `created_at` are ignored.

        Raises:
            NotFoundError: no event with that id
            ValidationError: the merged event breaks a schema rule
        """
        changes = {k: v for k, v in patch.items() if k in PATCHABLE_KEYS}

        with self._lock:
            events = self._load()
            index = next((i for i, e in enumerate(events) if e.id == event_id), None)
            if index is None:
                raise NotFoundError("Event", event_id)
            event = events[index]

            for key in ("name", "date", "location"):
                if key in changes:
                    value = str(changes[key] or "").strip()
                    if not value:
                        raise ValidationError(missing=[REQUIRED_LABELS[key]])
                    setattr(event, key, value)
            if "description" in changes:
                event.description = str(changes["description"] or "")
            if "event_type" in changes or "max_team_size" in changes:
                event.event_type, event.max_team_size = _normalize_team_settings(
                    changes.get("event_type", event.event_type.value),
                    changes.get("max_team_size", event.max_team_size),
                )
            if "form_fields" in changes:
                event.form_fields = normalize_form_fields(changes["form_fields"] or [])

            events[index] = event
            self._save(events)

        logger.info(f"Event updated: event_id={event_id}, keys={sorted(changes)}")
        return event

    def delete_event(self, event_id: str) -> None:
        """
        Removes an event. Its participants are kept as orphans.

        Raises:
            NotFoundError: no event with that id
        """
        with self._lock:
            events = self._load()
            remaining = [e for e in events if e.id != event_id]
            if len(remaining) == len(events):
                raise NotFoundError("Event", event_id)
            self._save(remaining)

        logger.info(f"Event deleted: event_id={event_id}")
