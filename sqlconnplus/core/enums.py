"""Enum coercion and serialization.

Coercion turns enum members, case-insensitive member names and integer codes into members of
a target enum type. Serialization is the inverse direction: it writes a member either as its
name or as its 32-bit integer code, depending on :class:`EnumSerializationMode`.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from sqlconnplus.exceptions import InvalidArgumentError, InvalidConversionError, UnsupportedError
from sqlconnplus.utils.text import to_debug_string, type_display_name
from sqlconnplus.utils.type_guards import is_enum_type, unwrap_optional

if TYPE_CHECKING:
    from sqlconnplus.typing import EnumT

__all__ = ("INT32_MAX", "INT32_MIN", "EnumSerializationMode", "coerce_enum", "serialize_enum")

INT32_MIN: Final = -(2**31)
INT32_MAX: Final = 2**31 - 1


class EnumSerializationMode(str, Enum):
    """How enum values are written into statement and command parameters."""

    STRINGS = "strings"
    """Write the member name."""
    INTEGERS = "integers"
    """Write the underlying integer code."""


def _find_member_by_name(enum_type: "type[EnumT]", name: str) -> "Optional[EnumT]":
    wanted = name.strip().casefold()
    for member_name, member in enum_type.__members__.items():
        if member_name.casefold() == wanted:
            return member
    return None


def _find_member_by_code(enum_type: "type[EnumT]", code: int) -> "Optional[EnumT]":
    for member in enum_type.__members__.values():
        member_value = member.value
        if isinstance(member_value, int) and not isinstance(member_value, bool) and member_value == code:
            return member
    return None


def coerce_enum(value: Any, target_type: Any) -> Any:
    """Coerce ``value`` to a member of the enum type ``target_type``.

    Args:
        value: An enum member, a member name (case-insensitive), an integer code or ``None``.
        target_type: An :class:`~enum.Enum` subclass, optionally wrapped in ``Optional``.

    Raises:
        InvalidArgumentError: If ``target_type`` is not an enum type or an optional enum type.
        InvalidConversionError: If ``value`` does not identify a member of the enum type.

    Returns:
        The matching member, or ``None`` for ``None`` input into an optional target.
    """
    enum_type, nullable = unwrap_optional(target_type)
    if not is_enum_type(enum_type):
        msg = f"The type {type_display_name(target_type)} is not an enum type or a nullable enum type."
        raise InvalidArgumentError(msg, argument="target_type")

    type_name = type_display_name(enum_type)

    if value is None:
        if nullable:
            return None
        msg = f"Could not convert {{null}} to an enum member of the type {type_name}."
        raise InvalidConversionError(msg, value=value, target_type=target_type)

    if isinstance(value, enum_type):
        return value

    if isinstance(value, str):
        if not value.strip():
            msg = (
                "Could not convert an empty string or a string that consists only of white-space characters "
                f"to an enum member of the type {type_name}."
            )
            raise InvalidConversionError(msg, value=value, target_type=target_type)
        member = _find_member_by_name(enum_type, value)
        if member is None:
            msg = (
                f"Could not convert the string '{value}' to an enum member of the type {type_name}. "
                "That string does not match any of the names of the enum's members."
            )
            raise InvalidConversionError(msg, value=value, target_type=target_type)
        return member

    if isinstance(value, int) and not isinstance(value, bool):
        member = _find_member_by_code(enum_type, int(value))
        if member is None:
            msg = (
                f"Could not convert the value {to_debug_string(value)} to an enum member of the type {type_name}. "
                "That value does not match any of the values of the enum's members."
            )
            raise InvalidConversionError(msg, value=value, target_type=target_type)
        return member

    msg = (
        f"Could not convert the value {to_debug_string(value)} to an enum member of the type {type_name}. "
        "The value must either be an enum value of that type or a string or an integer."
    )
    raise InvalidConversionError(msg, value=value, target_type=target_type)


def serialize_enum(value: Optional[Enum], mode: "Union[EnumSerializationMode, str]") -> Union[str, int]:
    """Serialize an enum member according to ``mode``.

    Args:
        value: The member to serialize.
        mode: :attr:`EnumSerializationMode.STRINGS` for the member name,
            :attr:`EnumSerializationMode.INTEGERS` for its integer code.

    Raises:
        InvalidArgumentError: If ``value`` is ``None`` or not an enum member.
        InvalidConversionError: If the member's value is not an integer in the signed 32-bit range.
        UnsupportedError: If ``mode`` is not a serialization mode.

    Returns:
        The member name or its integer code.
    """
    if value is None:
        msg = "The argument 'value' must not be None."
        raise InvalidArgumentError(msg, argument="value")
    if not isinstance(value, Enum):
        msg = f"The value {to_debug_string(value)} is not an enum member."
        raise InvalidArgumentError(msg, argument="value")

    try:
        resolved_mode = EnumSerializationMode(mode)
    except ValueError as e:
        msg = f"The enum serialization mode {mode!r} is not supported."
        raise UnsupportedError(msg) from e

    if resolved_mode is EnumSerializationMode.STRINGS:
        return value.name

    code = value.value
    if isinstance(code, bool) or not isinstance(code, int) or not INT32_MIN <= code <= INT32_MAX:
        msg = (
            f"Could not convert the enum member {to_debug_string(value)} to a 32-bit integer. "
            f"Its value {to_debug_string(code)} is not an integer in the range {INT32_MIN} to {INT32_MAX}."
        )
        raise InvalidConversionError(msg, value=value, target_type=int)
    return int(code)
