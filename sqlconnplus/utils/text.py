"""Text helpers for name inference and debug rendering."""

import ast
import base64
import datetime
import enum
import re
from decimal import Decimal
from functools import singledispatch
from typing import Any, Optional

__all__ = (
    "create_name_from_expression",
    "format_debug_value",
    "to_debug_string",
    "type_display_name",
)

_NAME_INVALID_CHARS_RE = re.compile(r"[^A-Za-z0-9_]")
_STRIPPED_PREFIXES = ("self.", "new", "get")
_WRAPPER_CALLS = frozenset({"parameter", "temporary_table", "Parameter", "TemporaryTable"})


def _unwrap_wrapper_call(expression: str) -> str:
    """Return the source of the first argument when ``expression`` is ``parameter(x)`` or similar."""
    try:
        node = ast.parse(expression.strip(), mode="eval").body
    except SyntaxError:
        return expression
    if not isinstance(node, ast.Call) or not node.args:
        return expression
    func = node.func
    func_name = func.attr if isinstance(func, ast.Attribute) else getattr(func, "id", None)
    if func_name not in _WRAPPER_CALLS:
        return expression
    return ast.get_source_segment(expression.strip(), node.args[0]) or expression


def create_name_from_expression(expression: Optional[str], max_length: int) -> str:
    """Create a parameter or temporary table name from a source expression.

    A wrapping ``parameter(...)`` or ``temporary_table(...)`` call is unwrapped first. Then a
    leading ``self.``, ``new`` and ``get`` are removed (case-insensitive, in that order), every
    character outside ``[A-Za-z0-9_]`` is dropped, the result is truncated to ``max_length``
    and its first letter is upper-cased.

    Args:
        expression: Source text of the expression, e.g. ``"self.get_id()"``.
        max_length: Maximum length of the returned name.

    Returns:
        The inferred name. Empty when nothing usable is left.
    """
    if not expression:
        return ""
    text = _unwrap_wrapper_call(expression)
    for prefix in _STRIPPED_PREFIXES:
        if text[: len(prefix)].lower() == prefix:
            text = text[len(prefix) :]
    name = _NAME_INVALID_CHARS_RE.sub("", text)[:max_length]
    if name and name[0].islower():
        name = name[0].upper() + name[1:]
    return name


def type_display_name(tp: Any) -> str:
    """Qualified display name of a type, without the ``builtins`` module."""
    if not isinstance(tp, type):
        return repr(tp)
    module = tp.__module__
    if module == "builtins":
        return tp.__qualname__
    return f"{module}.{tp.__qualname__}"


@singledispatch
def format_debug_value(value: Any) -> str:
    """Invariant text form of ``value`` used in error messages and debug views."""
    return str(value)


@format_debug_value.register
def _(value: bool) -> str:
    return "True" if value else "False"


@format_debug_value.register(bytes)
@format_debug_value.register(bytearray)
def _(value: "bytes | bytearray") -> str:
    return base64.b64encode(bytes(value)).decode("ascii")


@format_debug_value.register(datetime.date)
@format_debug_value.register(datetime.time)
def _(value: "datetime.date | datetime.time") -> str:
    return value.isoformat()


@format_debug_value.register
def _(value: Decimal) -> str:
    return format(value, "f")


@format_debug_value.register
def _(value: enum.Enum) -> str:
    return value.name


def to_debug_string(value: Any) -> str:
    """Render ``value`` with its type for diagnostics.

    ``None`` renders as ``{null}``; everything else as ``'<text>' (<type>)``.
    """
    if value is None:
        return "{null}"
    return f"'{format_debug_value(value)}' ({type_display_name(type(value))})"
