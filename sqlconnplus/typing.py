from enum import Enum
from typing import Any, Callable

from typing_extensions import TypeAlias, TypeVar

__all__ = (
    "Char",
    "EnumT",
    "MemberGetter",
)


class Char(str):
    """Single-character string shape.

    Used as a conversion target the same way ``int`` or ``str`` are: converting into ``Char``
    only succeeds for strings that are exactly one character long.
    """

    __slots__ = ()


EnumT = TypeVar("EnumT", bound=Enum)

MemberGetter: TypeAlias = Callable[[Any], Any]
"""Callable reading one member value off an entity instance."""
