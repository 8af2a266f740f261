"""Type guards and runtime type introspection helpers."""

import dataclasses
import types
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, ClassVar, Union, get_args, get_origin

from sqlconnplus.typing import Char

if TYPE_CHECKING:
    from typing_extensions import TypeGuard

    from sqlconnplus.core.statement import Parameter, TemporaryTable

__all__ = (
    "accepts_none",
    "is_char_type",
    "is_class_var",
    "is_enum_type",
    "is_frozen_record_type",
    "is_parameter",
    "is_temporary_table",
    "is_union_type",
    "is_template",
    "is_template_interpolation",
    "strip_annotated",
    "unwrap_optional",
)

_NONE_TYPE = type(None)
_UNION_ORIGINS: "tuple[Any, ...]" = (Union, types.UnionType)


def is_union_type(tp: Any) -> bool:
    """Check whether ``tp`` is a ``Union[...]`` or ``X | Y`` type."""
    return get_origin(tp) in _UNION_ORIGINS


def strip_annotated(tp: Any) -> Any:
    """Return the underlying type of ``Annotated[X, ...]``, or ``tp`` itself."""
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    return tp


def unwrap_optional(tp: Any) -> "tuple[Any, bool]":
    """Split an optional type into its underlying type and whether it accepts ``None``.

    Args:
        tp: A type such as ``int``, ``Optional[int]`` or ``int | None``.

    Returns:
        ``(underlying, accepts_none)``. Unions of several non-``None`` members are returned
        unchanged apart from the ``None`` member.
    """
    tp = strip_annotated(tp)
    if tp is _NONE_TYPE or tp is None:
        return _NONE_TYPE, True
    if not is_union_type(tp):
        return tp, False
    args = tuple(strip_annotated(arg) for arg in get_args(tp))
    members = tuple(arg for arg in args if arg is not _NONE_TYPE)
    nullable = len(members) != len(args)
    if len(members) == 1:
        return members[0], nullable
    return Union[members], nullable  # type: ignore[return-value]


def accepts_none(tp: Any) -> bool:
    """Check whether ``None`` is a valid value of ``tp``."""
    if tp is Any or tp is object:
        return True
    return unwrap_optional(tp)[1]


def is_enum_type(tp: Any) -> "TypeGuard[type[Enum]]":
    return isinstance(tp, type) and issubclass(tp, Enum)


def is_char_type(tp: Any) -> bool:
    """Check whether ``tp`` is :class:`~sqlconnplus.typing.Char` or ``Optional[Char]``."""
    return unwrap_optional(tp)[0] is Char


def is_class_var(tp: Any) -> bool:
    tp = strip_annotated(tp)
    return tp is ClassVar or get_origin(tp) is ClassVar


def is_frozen_record_type(cls: Any) -> bool:
    """Check whether instances of ``cls`` reject attribute assignment.

    Covers dataclasses declared with ``frozen=True`` and msgspec structs declared with ``frozen=True``.
    """
    if dataclasses.is_dataclass(cls):
        params = getattr(cls, "__dataclass_params__", None)
        return bool(params is not None and params.frozen)
    struct_config = getattr(cls, "__struct_config__", None)
    return bool(struct_config is not None and getattr(struct_config, "frozen", False))


def is_parameter(obj: Any) -> "TypeGuard[Parameter]":
    from sqlconnplus.core.statement import Parameter

    return isinstance(obj, Parameter)


def is_temporary_table(obj: Any) -> "TypeGuard[TemporaryTable]":
    from sqlconnplus.core.statement import TemporaryTable

    return isinstance(obj, TemporaryTable)


def is_template_interpolation(obj: Any) -> bool:
    """Check whether ``obj`` looks like a template string interpolation.

    Args:
        obj: The object to check

    Returns:
        True if ``obj`` exposes ``value``, ``expression``, ``conversion`` and ``format_spec``.
    """
    return all(hasattr(obj, attr) for attr in ("value", "expression", "conversion", "format_spec"))


def is_template(obj: Any) -> bool:
    """Check whether ``obj`` looks like a template string (``t"..."``) object."""
    return hasattr(obj, "strings") and hasattr(obj, "interpolations") and hasattr(obj, "__iter__")
