"""Conversion of arbitrary runtime values to a requested target type.

``convert_value`` evaluates a fixed precedence of cases: ``None``, value already of the target
type, single-character strings, enum targets and finally culture-invariant scalar conversion
through a registry of converters keyed by target type.
"""

import datetime
import math
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Final
from uuid import UUID

from sqlconnplus.core.enums import coerce_enum
from sqlconnplus.exceptions import InvalidConversionError
from sqlconnplus.typing import Char
from sqlconnplus.utils.logging import get_logger
from sqlconnplus.utils.text import to_debug_string, type_display_name
from sqlconnplus.utils.type_guards import accepts_none, is_enum_type, unwrap_optional

__all__ = ("convert_value", "get_scalar_converter", "register_scalar_converter")

logger = get_logger("sqlconnplus.core.type_conversion")

ScalarConverter = Callable[[Any], Any]

_TRUE_STRINGS: Final = frozenset({"true"})
_FALSE_STRINGS: Final = frozenset({"false"})
_NUMERIC_TYPES: Final = (int, float, Decimal)


def _unsupported(value: Any, target_type: type) -> TypeError:
    msg = f"Values of type {type_display_name(type(value))} cannot be converted to {type_display_name(target_type)}."
    return TypeError(msg)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        msg = f"String {value!r} was not recognized as a valid boolean."
        raise ValueError(msg)
    if isinstance(value, _NUMERIC_TYPES):
        return value != 0
    raise _unsupported(value, bool)


def _to_int(value: Any) -> int:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            msg = f"Value {value!r} is not a finite number."
            raise OverflowError(msg)
        return round(value)
    if isinstance(value, Decimal):
        return int(value.to_integral_value(rounding=ROUND_HALF_EVEN))
    if isinstance(value, str):
        return int(value.strip())
    raise _unsupported(value, int)


def _to_float(value: Any) -> float:
    if isinstance(value, (*_NUMERIC_TYPES, str)):
        return float(value.strip() if isinstance(value, str) else value)
    raise _unsupported(value, float)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, (float, str)):
        result = Decimal(value.strip() if isinstance(value, str) else str(value))
        if not result.is_finite():
            msg = f"Value {value!r} is not a finite decimal number."
            raise OverflowError(msg)
        return result
    raise _unsupported(value, Decimal)


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (*_NUMERIC_TYPES, UUID)):
        return str(value)
    raise _unsupported(value, str)


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value.strip())
    raise _unsupported(value, datetime.datetime)


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value.strip()).date()
    raise _unsupported(value, datetime.date)


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, str):
        return datetime.time.fromisoformat(value.strip())
    raise _unsupported(value, datetime.time)


def _to_uuid(value: Any) -> UUID:
    if isinstance(value, str):
        return UUID(value.strip())
    if isinstance(value, (bytes, bytearray)):
        return UUID(bytes=bytes(value))
    raise _unsupported(value, UUID)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, UUID):
        return value.bytes
    raise _unsupported(value, bytes)


def _to_char(value: Any) -> Char:
    if isinstance(value, int) and not isinstance(value, bool):
        return Char(chr(value))
    raise _unsupported(value, Char)


_SCALAR_CONVERTERS: "dict[type, ScalarConverter]" = {
    bool: _to_bool,
    int: _to_int,
    float: _to_float,
    Decimal: _to_decimal,
    str: _to_str,
    bytes: _to_bytes,
    datetime.datetime: _to_datetime,
    datetime.date: _to_date,
    datetime.time: _to_time,
    UUID: _to_uuid,
    Char: _to_char,
}


def register_scalar_converter(target_type: type, converter: ScalarConverter) -> None:
    """Register (or replace) the scalar converter used for ``target_type``.

    The converter receives the non-``None`` value and either returns the converted value or
    raises ``ValueError``, ``TypeError``, ``OverflowError`` or ``ArithmeticError``.
    """
    _SCALAR_CONVERTERS[target_type] = converter


def get_scalar_converter(target_type: type) -> "ScalarConverter | None":
    return _SCALAR_CONVERTERS.get(target_type)


def _has_target_shape(value: Any, target_type: Any) -> bool:
    if not isinstance(target_type, type) or not isinstance(value, target_type):
        return False
    if isinstance(value, bool) and target_type is not bool:
        return not issubclass(target_type, (int, float))
    if isinstance(value, datetime.datetime) and target_type is datetime.date:
        return False
    return True


def convert_value(value: Any, target_type: Any) -> Any:
    """Convert ``value`` to ``target_type``.

    Args:
        value: The value to convert.
        target_type: A scalar type, :class:`~sqlconnplus.typing.Char`, an enum type, or an
            ``Optional`` form of any of those.

    Raises:
        InvalidConversionError: If ``value`` is ``None`` and ``target_type`` does not accept
            ``None``, if a string converted to ``Char`` is not exactly one character long, or if
            the conversion is unsupported, out of range or malformed.

    Returns:
        The converted value. Values that already have the target type are returned unchanged.
    """
    if target_type is Any or target_type is object:
        return value

    if value is None:
        if accepts_none(target_type):
            return None
        msg = (
            f"Could not convert {{null}} to the target type {type_display_name(target_type)} "
            "because the target type is non-nullable."
        )
        raise InvalidConversionError(msg, value=value, target_type=target_type)

    underlying, _ = unwrap_optional(target_type)

    if _has_target_shape(value, underlying):
        return value

    if underlying is Char and isinstance(value, str):
        if len(value) != 1:
            msg = (
                f"Could not convert the string '{value}' to the target type {type_display_name(target_type)}. "
                "The string must be exactly one character long."
            )
            raise InvalidConversionError(msg, value=value, target_type=target_type)
        return Char(value)

    if is_enum_type(underlying):
        return coerce_enum(value, underlying)

    converter = _SCALAR_CONVERTERS.get(underlying) if isinstance(underlying, type) else None
    if converter is None:
        msg = (
            f"Could not convert the value {to_debug_string(value)} to the target type "
            f"{type_display_name(target_type)}. The target type is not supported."
        )
        raise InvalidConversionError(msg, value=value, target_type=target_type)

    try:
        return converter(value)
    except (ValueError, TypeError, OverflowError, ArithmeticError, InvalidOperation) as e:
        msg = (
            f"Could not convert the value {to_debug_string(value)} to the target type "
            f"{type_display_name(target_type)}. See inner exception for details."
        )
        logger.debug("Scalar conversion failed: %s", e)
        raise InvalidConversionError(msg, value=value, target_type=target_type) from e
