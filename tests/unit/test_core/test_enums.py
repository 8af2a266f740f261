"""Tests for enum coercion and serialization."""

from enum import Enum, IntEnum
from typing import Optional

import pytest

from sqlconnplus.core.enums import EnumSerializationMode, coerce_enum, serialize_enum
from sqlconnplus.exceptions import InvalidArgumentError, InvalidConversionError, UnsupportedError


class Status(Enum):
    ACTIVE = 1
    INACTIVE = 2
    DELETED = 3


class Priority(IntEnum):
    LOW = -1
    NORMAL = 0
    HIGH = 10


class Color(Enum):
    RED = "r"
    GREEN = "g"


class Huge(Enum):
    TOO_BIG = 2**31
    TOO_SMALL = -(2**31) - 1


ENUM_MEMBERS = [*Status, *Priority]


@pytest.mark.parametrize("member", ENUM_MEMBERS, ids=lambda m: f"{type(m).__name__}.{m.name}")
def test_coerce_enum_accepts_member_names_case_insensitively(member: Enum) -> None:
    """Every member is found by its name in any casing."""
    enum_type = type(member)
    assert coerce_enum(member.name, enum_type) is member
    assert coerce_enum(member.name.lower(), enum_type) is member
    assert coerce_enum(member.name.swapcase(), enum_type) is member


@pytest.mark.parametrize("member", ENUM_MEMBERS, ids=lambda m: f"{type(m).__name__}.{m.name}")
def test_coerce_enum_accepts_member_codes(member: Enum) -> None:
    """Every member is found by its integer code."""
    assert coerce_enum(member.value, type(member)) is member


@pytest.mark.parametrize("member", ENUM_MEMBERS, ids=lambda m: f"{type(m).__name__}.{m.name}")
def test_serialize_then_coerce_round_trips(member: Enum) -> None:
    """Both serialization modes produce values that coerce back to the member."""
    enum_type = type(member)
    assert coerce_enum(str(serialize_enum(member, EnumSerializationMode.STRINGS)), enum_type) is member
    assert coerce_enum(serialize_enum(member, EnumSerializationMode.INTEGERS), enum_type) is member


def test_coerce_enum_returns_member_unchanged() -> None:
    assert coerce_enum(Status.ACTIVE, Status) is Status.ACTIVE
    assert coerce_enum(Priority.HIGH, Optional[Priority]) is Priority.HIGH


def test_coerce_enum_strips_surrounding_whitespace() -> None:
    assert coerce_enum("  inactive ", Status) is Status.INACTIVE


@pytest.mark.parametrize("value", ["", "   ", "\t\n"], ids=["empty", "spaces", "tab_newline"])
def test_coerce_enum_rejects_blank_strings(value: str) -> None:
    """Empty and whitespace-only strings never match a member."""
    with pytest.raises(InvalidConversionError, match="empty string or a string that consists only of white-space"):
        coerce_enum(value, Status)


def test_coerce_enum_rejects_unknown_name() -> None:
    with pytest.raises(InvalidConversionError, match="Could not convert the string 'Archived'"):
        coerce_enum("Archived", Status)


def test_coerce_enum_rejects_undefined_code() -> None:
    with pytest.raises(InvalidConversionError, match="does not match any of the values of the enum's members"):
        coerce_enum(99, Status)


def test_coerce_enum_rejects_numeric_strings() -> None:
    """Strings are matched against member names only."""
    with pytest.raises(InvalidConversionError):
        coerce_enum("1", Status)


def test_coerce_enum_rejects_booleans_and_other_shapes() -> None:
    with pytest.raises(InvalidConversionError, match="must either be an enum value of that type or a string or an integer"):
        coerce_enum(True, Status)
    with pytest.raises(InvalidConversionError, match="must either be an enum value"):
        coerce_enum(1.0, Status)
    with pytest.raises(InvalidConversionError, match="must either be an enum value"):
        coerce_enum(Color.RED, Status)


def test_coerce_enum_codes_ignore_non_integer_member_values() -> None:
    with pytest.raises(InvalidConversionError):
        coerce_enum(0, Color)
    assert coerce_enum("green", Color) is Color.GREEN


def test_coerce_enum_none_handling() -> None:
    """None coerces to None only for optional targets."""
    assert coerce_enum(None, Optional[Status]) is None
    assert coerce_enum(None, Status | None) is None
    with pytest.raises(InvalidConversionError, match=r"Could not convert \{null\} to an enum member"):
        coerce_enum(None, Status)


@pytest.mark.parametrize("target", [int, str, Optional[int], object], ids=["int", "str", "optional_int", "object"])
def test_coerce_enum_rejects_non_enum_targets(target: object) -> None:
    with pytest.raises(InvalidArgumentError, match="is not an enum type"):
        coerce_enum("ACTIVE", target)


def test_serialize_enum_strings_mode_returns_name() -> None:
    assert serialize_enum(Status.DELETED, EnumSerializationMode.STRINGS) == "DELETED"
    assert serialize_enum(Color.RED, EnumSerializationMode.STRINGS) == "RED"


def test_serialize_enum_integers_mode_returns_code() -> None:
    result = serialize_enum(Priority.HIGH, EnumSerializationMode.INTEGERS)
    assert result == 10
    assert type(result) is int


def test_serialize_enum_accepts_mode_values() -> None:
    assert serialize_enum(Status.ACTIVE, "integers") == 1


def test_serialize_enum_integers_mode_rejects_non_int32_codes() -> None:
    with pytest.raises(InvalidConversionError):
        serialize_enum(Huge.TOO_BIG, EnumSerializationMode.INTEGERS)
    with pytest.raises(InvalidConversionError):
        serialize_enum(Huge.TOO_SMALL, EnumSerializationMode.INTEGERS)
    with pytest.raises(InvalidConversionError):
        serialize_enum(Color.GREEN, EnumSerializationMode.INTEGERS)


@pytest.mark.parametrize("mode", ["bytes", 0, None], ids=["unknown_string", "int", "none"])
def test_serialize_enum_rejects_unknown_modes(mode: object) -> None:
    with pytest.raises(UnsupportedError, match="is not supported"):
        serialize_enum(Status.ACTIVE, mode)  # type: ignore[arg-type]


def test_serialize_enum_rejects_missing_value() -> None:
    with pytest.raises(InvalidArgumentError):
        serialize_enum(None, EnumSerializationMode.STRINGS)
    with pytest.raises(InvalidArgumentError):
        serialize_enum(1, EnumSerializationMode.STRINGS)  # type: ignore[arg-type]
