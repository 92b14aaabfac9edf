import pytest

from eventflow.core.models import FieldRole, FieldType, FormField
from eventflow.core.normalizers import (
    fold_label,
    infer_field_roles,
    is_empty_value,
    is_valid_email,
    normalize_email,
    normalize_team_name,
    parse_number,
    team_key,
)


@pytest.mark.parametrize("value,expected", [
    (None, True),
    ("", True),
    ("   ", True),
    (False, True),
    ([], True),
    (0, False),
    (0.0, False),
    ("0", False),
    (True, False),
    (["a"], False),
])
def test_is_empty_value(value, expected):
    assert is_empty_value(value) is expected


@pytest.mark.parametrize("value,expected", [
    ("42", 42),
    (" 3.5 ", 3.5),
    ("-1e3", -1000.0),
    (7, 7),
    ("abc", None),
    ("", None),
    (True, None),
])
def test_parse_number(value, expected):
    assert parse_number(value) == expected


def test_emails():
    assert is_valid_email(" ann@x.com ")
    assert not is_valid_email("ann@x")
    assert not is_valid_email("ann x@y.com")
    assert normalize_email("  Ann@X.com ") == "ann@x.com"
    assert normalize_email(None) == ""


def test_team_names():
    assert normalize_team_name("  Rocket ") == "Rocket"
    assert normalize_team_name("   ") is None
    assert normalize_team_name(None) is None
    assert team_key("RoCkEt") == team_key("rocket")
    assert team_key(None) is None


def test_fold_label_ignores_case_and_accents():
    assert fold_label("Nome Completo") == "nome completo"
    assert fold_label("Équipe") == "equipe"


class TestInferFieldRoles:
    def test_team_name_is_not_mistaken_for_person_name(self):
        fields = infer_field_roles([
            FormField(id="t", label="Team Name"),
            FormField(id="n", label="Leader Name"),
            FormField(id="e", label="Contact", type=FieldType.EMAIL),
        ])
        assert [f.role for f in fields] == [FieldRole.TEAM_NAME, FieldRole.NAME, FieldRole.EMAIL]

    def test_each_role_assigned_once(self):
        fields = infer_field_roles([
            FormField(id="a", label="Email", type=FieldType.EMAIL),
            FormField(id="b", label="Backup Email", type=FieldType.EMAIL),
            FormField(id="c", label="First Name"),
            FormField(id="d", label="Last Name"),
        ])
        assert [f.role for f in fields] == [
            FieldRole.EMAIL, FieldRole.NONE, FieldRole.NAME, FieldRole.NONE,
        ]

    def test_declared_roles_win(self):
        fields = infer_field_roles([
            FormField(id="a", label="Full Name"),
            FormField(id="b", label="Who are you", role=FieldRole.NAME),
        ])
        assert [f.role for f in fields] == [FieldRole.NONE, FieldRole.NAME]

    def test_name_needs_a_text_field(self):
        fields = infer_field_roles([FormField(id="a", label="Name notes", type=FieldType.TEXTAREA)])
        assert fields[0].role == FieldRole.NONE
