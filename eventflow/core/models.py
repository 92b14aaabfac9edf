from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    SELECT = "select"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"


class FieldRole(str, Enum):
    """
    Semantic role of a form field, fixed when the form is designed.
    Registration reads identity data through roles only.
    """
    NAME = "name"
    EMAIL = "email"
    TEAM_NAME = "team_name"
    NONE = "none"


class EventType(str, Enum):
    INDIVIDUAL = "individual"
    TEAM = "team"


class CheckInStatus(str, Enum):
    """
    Pending -> CheckedIn, never back.
    """
    PENDING = "Pending"
    CHECKED_IN = "CheckedIn"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class FormField:
    id: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: Optional[List[str]] = None
    role: FieldRole = FieldRole.NONE

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "role": self.role.value,
        }
        if self.options is not None:
            record["options"] = list(self.options)
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "FormField":
        options = record.get("options")
        return cls(
            id=record["id"],
            label=record["label"],
            type=FieldType(record.get("type", FieldType.TEXT.value)),
            required=bool(record.get("required", False)),
            options=list(options) if options is not None else None,
            role=FieldRole(record.get("role", FieldRole.NONE.value)),
        )


@dataclass
class Event:
    """
    An activity accepting registrations, with its registration form.
    Field order in `form_fields` is display order.
    """
    id: str
    name: str
    date: str
    location: str
    description: str = ""
    event_type: EventType = EventType.INDIVIDUAL
    max_team_size: Optional[int] = None
    form_fields: List[FormField] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)

    def field_with_role(self, role: FieldRole) -> Optional[FormField]:
        for form_field in self.form_fields:
            if form_field.role == role:
                return form_field
        return None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "date": self.date,
            "location": self.location,
            "event_type": self.event_type.value,
            "max_team_size": self.max_team_size,
            "form_fields": [f.to_record() for f in self.form_fields],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Event":
        return cls(
            id=record["id"],
            name=record["name"],
            description=record.get("description", ""),
            date=record["date"],
            location=record["location"],
            event_type=EventType(record.get("event_type", EventType.INDIVIDUAL.value)),
            max_team_size=record.get("max_team_size"),
            form_fields=[FormField.from_record(f) for f in record.get("form_fields", [])],
            created_at=_parse_timestamp(record["created_at"]),
        )


@dataclass
class Participant:
    """
    One registration against one event.

    `entry_uuid` is the bearer credential printed in the QR entry pass.
    `event_id` is a lookup reference only; deleting the event leaves this record.
    """
    id: str
    event_id: str
    entry_uuid: str
    name: str
    email: str
    form_data: Dict[str, Any] = field(default_factory=dict)
    team_name: Optional[str] = None
    check_in_status: CheckInStatus = CheckInStatus.PENDING
    registered_at: datetime = field(default_factory=utcnow)

    @property
    def is_checked_in(self) -> bool:
        return self.check_in_status == CheckInStatus.CHECKED_IN

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "entry_uuid": self.entry_uuid,
            "name": self.name,
            "email": self.email,
            "team_name": self.team_name,
            "form_data": dict(self.form_data),
            "check_in_status": self.check_in_status.value,
            "registered_at": self.registered_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Participant":
        return cls(
            id=record["id"],
            event_id=record["event_id"],
            entry_uuid=record["entry_uuid"],
            name=record["name"],
            email=record.get("email", ""),
            team_name=record.get("team_name"),
            form_data=dict(record.get("form_data") or {}),
            check_in_status=CheckInStatus(record.get("check_in_status", CheckInStatus.PENDING.value)),
            registered_at=_parse_timestamp(record["registered_at"]),
        )


def entry_pass_payload(participant: Participant) -> str:
    """
    Content of the QR entry pass: the entry token and nothing else.
    """
    return participant.entry_uuid
