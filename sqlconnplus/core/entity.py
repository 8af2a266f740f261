"""Entity metadata derivation.

An entity type is a class whose public members map to the columns of one table row. Members
are public annotated attributes (dataclasses, msgspec structs, attrs classes or plain annotated
classes) and public properties. Markers are attached with :data:`typing.Annotated`::

    @table("Products")
    @dataclass
    class Product:
        id: Annotated[int, Key]
        name: str
        cached_label: Annotated[str, NotMapped] = ""

Everything derived from a type is computed once and cached for the lifetime of the process.
Derivation failures are never cached.
"""

import datetime
import operator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Callable, Final, Optional, Union, get_args, get_origin, get_type_hints

from sqlconnplus.core.cache import get_cache
from sqlconnplus.core.config import get_enum_serialization_mode
from sqlconnplus.core.enums import EnumSerializationMode, serialize_enum
from sqlconnplus.exceptions import InvalidArgumentError, ensure_not_none
from sqlconnplus.utils.logging import get_logger
from sqlconnplus.utils.text import type_display_name
from sqlconnplus.utils.type_guards import (
    is_class_var,
    is_enum_type,
    is_frozen_record_type,
    is_union_type,
    unwrap_optional,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlconnplus.protocols import CommandParameterProtocol
    from sqlconnplus.typing import MemberGetter

__all__ = (
    "DELETE_KEY_PARAMETER_NAME",
    "EntityMember",
    "EntityTypeMetadata",
    "Key",
    "NotMapped",
    "clear_entity_caches",
    "get_entity_type_metadata",
    "get_key_member",
    "get_readable_member_names",
    "get_readable_members",
    "get_table_name",
    "get_writable_members",
    "populate_key_parameter",
    "populate_parameters",
    "table",
)

logger = get_logger("sqlconnplus.core.entity")

DELETE_KEY_PARAMETER_NAME: Final = "Key"
TABLE_NAME_ATTRIBUTE: Final = "__table_name__"

_metadata_cache = get_cache("entity_type_metadata")
_members_cache = get_cache("entity_members")
_table_name_cache = get_cache("entity_table_name")


class Key:
    """Marks the primary key member of an entity type, e.g. ``id: Annotated[int, Key]``."""

    __slots__ = ()


class NotMapped:
    """Marks a member that does not map to a column, e.g. ``label: Annotated[str, NotMapped]``."""

    __slots__ = ()


def _has_marker(metadata: "tuple[Any, ...]", marker: type) -> bool:
    return any(item is marker or isinstance(item, marker) for item in metadata)


def table(name: str) -> "Callable[[type], type]":
    """Class decorator setting the table an entity type maps to.

    Args:
        name: Table name used in generated SQL.

    Returns:
        Decorator storing ``name`` on the decorated class.
    """
    if not isinstance(name, str) or not name.strip():
        msg = "The table name must be a non-empty string."
        raise InvalidArgumentError(msg, argument="name")

    def decorator(cls: type) -> type:
        setattr(cls, TABLE_NAME_ATTRIBUTE, name)
        return cls

    return decorator


class _AttributeSetter:
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__(self, entity: Any, value: Any) -> None:
        setattr(entity, self.name, value)

    def __repr__(self) -> str:
        return f"_AttributeSetter({self.name!r})"


@dataclass(frozen=True)
class EntityMember:
    """One public member of an entity type.

    Attributes:
        name: Member name, also used as column and parameter name.
        annotation: Declared type with ``Annotated`` metadata removed.
        getter: Reads the member value from an instance.
        setter: Writes the member value, ``None`` for read-only members.
        is_key: Whether the member carries the :class:`Key` marker.
        is_not_mapped: Whether the member carries the :class:`NotMapped` marker.
    """

    name: str
    annotation: Any
    getter: "MemberGetter"
    setter: "Optional[Callable[[Any, Any], None]]"
    is_key: bool = False
    is_not_mapped: bool = False

    @property
    def is_readable(self) -> bool:
        return not self.is_not_mapped

    @property
    def is_writable(self) -> bool:
        return self.setter is not None and not self.is_not_mapped


@dataclass(frozen=True)
class EntityTypeMetadata:
    """Everything needed to insert, update and delete single rows of an entity type.

    All ``member_*`` and ``is_*`` tuples are positionally aligned with ``member_names``, which
    is sorted by name.
    """

    entity_type: type
    table_name: str
    key_member_name: str
    key_member_type: Any
    key_member_getter: "MemberGetter"
    member_names: "tuple[str, ...]"
    member_getters: "tuple[MemberGetter, ...]"
    member_types: "tuple[Any, ...]"
    is_byte_array: "tuple[bool, ...]"
    is_datetime_like: "tuple[bool, ...]"
    is_enum_like: "tuple[bool, ...]"
    insert_sql: str
    update_sql: str
    delete_sql: str

    def __len__(self) -> int:
        return len(self.member_names)


def _resolve_hints(owner: Any, entity_type: type) -> "dict[str, Any]":
    try:
        return get_type_hints(owner, include_extras=True)
    except (NameError, TypeError) as e:
        msg = f"Could not resolve the type annotations of the type {type_display_name(entity_type)}: {e}"
        raise InvalidArgumentError(msg, argument="entity_type") from e


def _split_annotated(hint: Any) -> "tuple[Any, tuple[Any, ...]]":
    metadata: tuple[Any, ...] = ()
    while get_origin(hint) is Annotated:
        args = get_args(hint)
        hint, metadata = args[0], (*metadata, *args[1:])
    if not is_union_type(hint):
        return hint, metadata

    # Optional[Annotated[int, Key]] carries its markers inside the union.
    members = []
    for arg in get_args(hint):
        member, member_metadata = _split_annotated(arg)
        members.append(member)
        metadata = (*metadata, *member_metadata)
    return Union[tuple(members)], metadata


def _discover_properties(entity_type: type) -> "dict[str, EntityMember]":
    properties: dict[str, property] = {}
    for klass in reversed(entity_type.__mro__):
        for name, attribute in vars(klass).items():
            if isinstance(attribute, property) and not name.startswith("_"):
                properties[name] = attribute

    members: dict[str, EntityMember] = {}
    for name, prop in properties.items():
        if prop.fget is None:
            continue
        hint = _resolve_hints(prop.fget, entity_type).get("return", Any)
        annotation, metadata = _split_annotated(hint)
        members[name] = EntityMember(
            name=name,
            annotation=annotation,
            getter=operator.attrgetter(name),
            setter=_AttributeSetter(name) if prop.fset is not None else None,
            is_key=_has_marker(metadata, Key),
            is_not_mapped=_has_marker(metadata, NotMapped),
        )
    return members


def _ensure_entity_type(entity_type: Any) -> None:
    ensure_not_none(entity_type, "entity_type")
    if not isinstance(entity_type, type):
        msg = f"The value {entity_type!r} is not a type."
        raise InvalidArgumentError(msg, argument="entity_type")


def _member_sort_key(name: str) -> "tuple[str, str]":
    # Case-insensitive alphabetical order, exact name as tie-break.
    return name.casefold(), name


def _discover_members(entity_type: type) -> "tuple[EntityMember, ...]":
    members = _discover_properties(entity_type)
    frozen = is_frozen_record_type(entity_type)
    for name, hint in _resolve_hints(entity_type, entity_type).items():
        if name.startswith("_") or name in members or is_class_var(hint):
            continue
        if isinstance(getattr(entity_type, name, None), property):
            continue
        annotation, metadata = _split_annotated(hint)
        members[name] = EntityMember(
            name=name,
            annotation=annotation,
            getter=operator.attrgetter(name),
            setter=None if frozen else _AttributeSetter(name),
            is_key=_has_marker(metadata, Key),
            is_not_mapped=_has_marker(metadata, NotMapped),
        )
    return tuple(members[name] for name in sorted(members, key=_member_sort_key))


def _all_members(entity_type: type) -> "tuple[EntityMember, ...]":
    _ensure_entity_type(entity_type)
    return _members_cache.get_or_create(entity_type, _discover_members)


def get_readable_members(entity_type: type) -> "tuple[EntityMember, ...]":
    """Readable members of ``entity_type`` sorted by name, :class:`NotMapped` members excluded."""
    return tuple(member for member in _all_members(entity_type) if member.is_readable)


def get_readable_member_names(entity_type: type) -> "tuple[str, ...]":
    return tuple(member.name for member in get_readable_members(entity_type))


def get_writable_members(entity_type: type) -> "tuple[EntityMember, ...]":
    """Writable members of ``entity_type`` sorted by name, :class:`NotMapped` members excluded.

    Properties without a setter and attributes of frozen dataclasses or frozen msgspec structs
    are not writable.
    """
    return tuple(member for member in _all_members(entity_type) if member.is_writable)


def get_key_member(entity_type: type) -> EntityMember:
    """The single readable member of ``entity_type`` marked with :class:`Key`.

    A member marked with both :class:`Key` and :class:`NotMapped` is not a key.

    Raises:
        InvalidArgumentError: If no readable member or more than one readable member is marked as key.
    """
    keys = [member for member in get_readable_members(entity_type) if member.is_key]
    if len(keys) != 1:
        type_name = type_display_name(entity_type)
        if not keys:
            msg = (
                f"Could not get the key member of the type {type_name}. Make sure that exactly one "
                "public member of that type is annotated with Key."
            )
            not_mapped = [member.name for member in _all_members(entity_type) if member.is_key and member.is_not_mapped]
            if not_mapped:
                msg += f" Key members that are also annotated with NotMapped do not count: {', '.join(not_mapped)}."
        else:
            names = ", ".join(member.name for member in keys)
            msg = (
                f"The type {type_name} has more than one key member ({names}). Make sure that exactly "
                "one public member of that type is annotated with Key."
            )
        raise InvalidArgumentError(msg, argument="entity_type")
    return keys[0]


def _derive_table_name(entity_type: type) -> str:
    name = vars(entity_type).get(TABLE_NAME_ATTRIBUTE)
    if name is None:
        return entity_type.__name__
    if not isinstance(name, str) or not name.strip():
        msg = f"The {TABLE_NAME_ATTRIBUTE} of the type {type_display_name(entity_type)} must be a non-empty string."
        raise InvalidArgumentError(msg, argument="entity_type")
    return name


def get_table_name(entity_type: type) -> str:
    """Table name of ``entity_type``: its ``__table_name__`` (see :func:`table`) or its class name."""
    _ensure_entity_type(entity_type)
    return _table_name_cache.get_or_create(entity_type, _derive_table_name)


def _render_insert_sql(table_name: str, member_names: "Sequence[str]") -> str:
    columns = ", ".join(f"[{name}]" for name in member_names)
    values = ", ".join(f"@{name}" for name in member_names)
    return f"INSERT INTO [{table_name}]\n({columns})\nVALUES\n({values})\n"


def _render_update_sql(table_name: str, member_names: "Sequence[str]", key_name: str) -> str:
    assignments = ", ".join(f"[{name}] = @{name}" for name in member_names)
    return f"UPDATE [{table_name}]\nSET {assignments}\nWHERE [{key_name}] = @{key_name}\n"


def _render_delete_sql(table_name: str, key_name: str) -> str:
    return f"DELETE FROM [{table_name}] WHERE [{key_name}] = @{DELETE_KEY_PARAMETER_NAME}"


def _is_byte_array(annotation: Any) -> bool:
    underlying, _ = unwrap_optional(annotation)
    return isinstance(underlying, type) and issubclass(underlying, (bytes, bytearray))


def _is_datetime_like(annotation: Any) -> bool:
    underlying, _ = unwrap_optional(annotation)
    return isinstance(underlying, type) and issubclass(underlying, datetime.datetime)


def _is_enum_like(annotation: Any) -> bool:
    return is_enum_type(unwrap_optional(annotation)[0])


def _derive_metadata(entity_type: type) -> EntityTypeMetadata:
    table_name = get_table_name(entity_type)
    members = get_readable_members(entity_type)
    key = get_key_member(entity_type)
    member_names = tuple(member.name for member in members)
    annotations = tuple(member.annotation for member in members)

    metadata = EntityTypeMetadata(
        entity_type=entity_type,
        table_name=table_name,
        key_member_name=key.name,
        key_member_type=key.annotation,
        key_member_getter=key.getter,
        member_names=member_names,
        member_getters=tuple(member.getter for member in members),
        member_types=annotations,
        is_byte_array=tuple(_is_byte_array(annotation) for annotation in annotations),
        is_datetime_like=tuple(_is_datetime_like(annotation) for annotation in annotations),
        is_enum_like=tuple(_is_enum_like(annotation) for annotation in annotations),
        insert_sql=_render_insert_sql(table_name, member_names),
        update_sql=_render_update_sql(table_name, member_names, key.name),
        delete_sql=_render_delete_sql(table_name, key.name),
    )
    logger.debug(
        "Derived entity metadata",
        extra={"extra_fields": {"entity_type": type_display_name(entity_type), "table": table_name, "members": len(members)}},
    )
    return metadata


def get_entity_type_metadata(entity_type: type) -> EntityTypeMetadata:
    """Get the cached :class:`EntityTypeMetadata` of ``entity_type``, deriving it on first use.

    Args:
        entity_type: The entity type.

    Raises:
        InvalidArgumentError: If ``entity_type`` is ``None``, not a type, has unresolvable
            annotations, or does not have exactly one key member.

    Returns:
        The metadata instance. Every call for the same type returns the same instance.
    """
    _ensure_entity_type(entity_type)
    return _metadata_cache.get_or_create(entity_type, _derive_metadata)


def populate_parameters(
    metadata: EntityTypeMetadata,
    parameters: "Sequence[CommandParameterProtocol]",
    entity: Any,
    mode: "Optional[EnumSerializationMode]" = None,
) -> None:
    """Write the member values of ``entity`` into pre-allocated parameter slots.

    ``parameters`` must be aligned with ``metadata.member_names``, as returned by
    :func:`~sqlconnplus.driver.build_insert_command` and
    :func:`~sqlconnplus.driver.build_update_command`. Enum values of enum-typed members
    are serialized; ``None`` is written as is.

    Args:
        metadata: Metadata of the entity type.
        parameters: Parameter slots, one per member.
        entity: The entity instance to read from.
        mode: Enum serialization mode. Defaults to the process-wide mode.

    Raises:
        InvalidArgumentError: If ``metadata``, ``parameters`` or ``entity`` is ``None``.
    """
    ensure_not_none(metadata, "metadata")
    ensure_not_none(parameters, "parameters")
    ensure_not_none(entity, "entity")

    resolved_mode = get_enum_serialization_mode() if mode is None else mode
    for index, getter in enumerate(metadata.member_getters):
        value = getter(entity)
        if metadata.is_enum_like[index] and isinstance(value, Enum):
            value = serialize_enum(value, resolved_mode)
        parameters[index].value = value


def populate_key_parameter(metadata: EntityTypeMetadata, parameter: "CommandParameterProtocol", entity: Any) -> None:
    """Write the key value of ``entity`` into the ``Key`` slot of a delete command."""
    ensure_not_none(metadata, "metadata")
    ensure_not_none(parameter, "parameter")
    ensure_not_none(entity, "entity")
    parameter.value = metadata.key_member_getter(entity)


def clear_entity_caches() -> None:
    """Drop all cached entity information."""
    _metadata_cache.clear()
    _members_cache.clear()
    _table_name_cache.clear()
