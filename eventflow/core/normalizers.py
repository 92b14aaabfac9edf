"""
Helpers to normalize and validate user-supplied form values.
"""
import re
import unicodedata
from typing import Any, List, Optional, Union

from .models import FieldRole, FieldType, FormField

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def strip_accents(text: str) -> str:
    """
    Removes accents from a string.
    """
    return "".join(
        ch for ch in unicodedata.normalize("NFD", text)
        if unicodedata.category(ch) != "Mn"
    )


def fold_label(label: str) -> str:
    """
    Case- and accent-insensitive form of a label, for keyword matching.
    """
    return strip_accents(label).casefold()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


def normalize_email(raw: Any) -> str:
    """
    Key used for duplicate detection: trimmed and lowercased.
    Returns "" when nothing usable was submitted.
    """
    if not isinstance(raw, str):
        return ""
    return raw.strip().lower()


def normalize_team_name(raw: Any) -> Optional[str]:
    """
    Trims a submitted team name. Empty or whitespace-only means no team name.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def team_key(team_name: Optional[str]) -> Optional[str]:
    if team_name is None:
        return None
    return team_name.casefold()


def is_empty_value(value: Any) -> bool:
    """
    Whether a submitted value counts as "not provided".

    None, blank strings, False (unchecked box) and empty lists are empty.
    The number 0 is a value.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def parse_number(value: Any) -> Optional[Union[int, float]]:
    """
    Parses a number field value.

    Examples:
        "42" -> 42
        " 3.5 " -> 3.5
        7 -> 7
        "abc" -> None
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not NUMBER_PATTERN.match(text):
        return None
    try:
        return int(text)
    except ValueError:
        return float(text)


def infer_field_roles(fields: List[FormField]) -> List[FormField]:
    """
    Assigns a role to every field still marked as NONE, once, at form-design time.

    - first field whose label mentions "team" -> TEAM_NAME
    - first field of type email -> EMAIL
    - first remaining text field whose label mentions "name" -> NAME

    Roles already set by the form designer are kept and never assigned twice.
    """
    taken = {f.role for f in fields if f.role != FieldRole.NONE}

    def assign(role: FieldRole, predicate) -> None:
        if role in taken:
            return
        for form_field in fields:
            if form_field.role == FieldRole.NONE and predicate(form_field):
                form_field.role = role
                taken.add(role)
                return

    assign(FieldRole.TEAM_NAME, lambda f: "team" in fold_label(f.label))
    assign(FieldRole.EMAIL, lambda f: f.type == FieldType.EMAIL)
    assign(
        FieldRole.NAME,
        lambda f: f.type == FieldType.TEXT and "name" in fold_label(f.label),
    )
    return fields
