"""Composition of parameterized SQL statements.

A :class:`SQLStatement` is built from literal SQL text and holes. A hole is filled by a
:class:`Parameter` (its value becomes a named parameter and its name is written into the
code), a :class:`TemporaryTable` (its name is written into the code and the table is tracked
for the transport to create) or any other value (formatted and written into the code
verbatim)::

    statement = SQLStatement.build(
        "SELECT * FROM Product WHERE SupplierId = ",
        parameter(supplier_id, name="SupplierId"),
        " AND Id IN (SELECT Value FROM ",
        temporary_table(product_ids, name="ProductIds"),
        ")",
    )

On Python versions with template strings, ``SQLStatement(t"... {parameter(supplier_id)} ...")``
infers ``@Supplier_id`` from the interpolated expression.
"""

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Final, Optional, Union

import sqlglot
from mypy_extensions import mypyc_attr
from sqlglot import exp
from sqlglot.errors import ParseError

from sqlconnplus.core.config import get_enum_serialization_mode, get_global_config
from sqlconnplus.core.enums import EnumSerializationMode, serialize_enum
from sqlconnplus.exceptions import InvalidArgumentError, SQLParsingError
from sqlconnplus.utils.logging import get_logger
from sqlconnplus.utils.text import create_name_from_expression, to_debug_string
from sqlconnplus.utils.type_guards import is_parameter, is_template, is_template_interpolation, is_temporary_table

__all__ = (
    "PARAMETER_NAME_PREFIX",
    "POSITIONAL_PARAMETER_PREFIX",
    "SQL_DIALECT",
    "Parameter",
    "SQLStatement",
    "TemporaryTable",
    "parameter",
    "temporary_table",
)

logger = get_logger("sqlconnplus.core.statement")

PARAMETER_NAME_PREFIX: Final = "@"
POSITIONAL_PARAMETER_PREFIX: Final = "@Parameter_"
TEMPORARY_TABLE_NAME_PREFIX: Final = "#"
ANONYMOUS_TEMPORARY_TABLE_NAME: Final = "Values"
SQL_DIALECT: Final = "tsql"

StatementParameters = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]


@dataclass(frozen=True)
class Parameter:
    """A value to be passed as a named parameter.

    Attributes:
        value: The parameter value.
        name: Name of the parameter, or ``None`` to name it from its position. The ``@`` marker
            is prepended when missing; a blank name counts as ``None``.
    """

    value: Any
    name: Optional[str] = None

    def __post_init__(self) -> None:
        name = self.name
        if name is not None and not name.strip():
            name = None
        elif name is not None and not name.startswith(PARAMETER_NAME_PREFIX):
            name = f"{PARAMETER_NAME_PREFIX}{name}"
        object.__setattr__(self, "name", name)


@dataclass(frozen=True)
class TemporaryTable:
    """A sequence of values to be passed as a temporary table.

    Attributes:
        name: Table name, starting with ``#``.
        values: The values, one row each.
        value_type: Element type of ``values``.
    """

    name: str
    values: "tuple[Any, ...]"
    value_type: type
    anonymous: bool = field(default=False, compare=False, repr=False)

    def renamed(self, base_name: str) -> "TemporaryTable":
        """Copy of this table named ``#<base_name>_<unique suffix>``, keeping the current suffix."""
        suffix = self.name.rsplit("_", 1)[-1]
        return replace(self, name=f"{TEMPORARY_TABLE_NAME_PREFIX}{base_name}_{suffix}", anonymous=False)


def parameter(value: Any, name: Optional[str] = None) -> Parameter:
    """Mark ``value`` as a statement parameter.

    Args:
        value: The parameter value. Enum members are serialized when the parameter is added to
            a statement.
        name: Optional parameter name; ``@`` is prepended when missing.

    Returns:
        The parameter hole.
    """
    return Parameter(value=value, name=name)


def temporary_table(values: "Iterable[Any]", name: Optional[str] = None, value_type: Optional[type] = None) -> TemporaryTable:
    """Mark ``values`` as a temporary table.

    The table is named ``#<name>_<32 hex digits>``, where ``<name>`` is derived from ``name``
    the same way parameter names are inferred, or ``Values`` when no name is given.

    Args:
        values: The table rows.
        name: Optional base name or source expression.
        value_type: Element type. Inferred from the first non-``None`` value, ``object`` if there is none.

    Raises:
        InvalidArgumentError: If ``values`` is ``None``.

    Returns:
        The temporary table hole.
    """
    if values is None:
        msg = "The argument 'values' must not be None."
        raise InvalidArgumentError(msg, argument="values")
    rows = tuple(values)
    if value_type is None:
        value_type = next((type(row) for row in rows if row is not None), object)

    max_length = get_global_config().temporary_table_name_max_length
    base_name = create_name_from_expression(name, max_length) if name else ""
    return TemporaryTable(
        name=f"{TEMPORARY_TABLE_NAME_PREFIX}{base_name or ANONYMOUS_TEMPORARY_TABLE_NAME}_{uuid.uuid4().hex}",
        values=rows,
        value_type=value_type,
        anonymous=not base_name,
    )


@mypyc_attr(allow_interpreted_subclasses=True)
class SQLStatement:
    """SQL code with named parameters and temporary tables.

    Parameter names are unique ignoring case. Two statements are equal when their code, their
    parameters (regardless of insertion order) and their temporary tables are equal.
    """

    __slots__ = ("_code", "_enum_serialization_mode", "_parameter_keys", "_parameters", "_temporary_tables")

    def __init__(
        self,
        code: Optional[Any] = None,
        parameters: "Optional[StatementParameters]" = (),
        *,
        enum_serialization_mode: Optional[EnumSerializationMode] = None,
    ) -> None:
        """Initialize the statement.

        Args:
            code: SQL code, or a template string object to compose from.
            parameters: Parameters as a mapping or ``(name, value)`` pairs. Enum members are serialized.
            enum_serialization_mode: Mode for serializing enum parameter values. Defaults to the
                process-wide mode at the time a value is added.

        Raises:
            InvalidArgumentError: If ``parameters`` is ``None`` or contains a name twice.
        """
        if parameters is None:
            msg = "The argument 'parameters' must not be None."
            raise InvalidArgumentError(msg, argument="parameters")

        self._code: list[str] = []
        self._parameters: dict[str, Any] = {}
        self._parameter_keys: set[str] = set()
        self._temporary_tables: list[TemporaryTable] = []
        self._enum_serialization_mode = enum_serialization_mode

        if code is not None and not isinstance(code, str) and is_template(code):
            self._append_template(code)
        elif code is not None:
            self._code.append(str(code))

        items = parameters.items() if isinstance(parameters, Mapping) else parameters
        for name, value in items:
            key = name.lower()
            if key in self._parameter_keys:
                msg = f"Duplicate parameter name '{name}'. Make sure each parameter name is only used once."
                raise InvalidArgumentError(msg, argument="parameters")
            self._store_parameter(name, value)

    @classmethod
    def from_string(cls, code: str) -> "SQLStatement":
        """Create a statement without parameters from plain SQL code."""
        return cls(code)

    @classmethod
    def build(cls, *fragments: Any, enum_serialization_mode: Optional[EnumSerializationMode] = None) -> "SQLStatement":
        """Compose a statement from fragments in order.

        ``str`` fragments are appended as literal SQL; every other fragment is a hole, see
        :meth:`append_formatted`.
        """
        statement = cls(enum_serialization_mode=enum_serialization_mode)
        for fragment in fragments:
            if isinstance(fragment, str):
                statement.append_literal(fragment)
            else:
                statement.append_formatted(fragment)
        return statement

    @classmethod
    def from_template(
        cls, template: Any, *, enum_serialization_mode: Optional[EnumSerializationMode] = None
    ) -> "SQLStatement":
        """Compose a statement from a template string object (``t"..."``).

        Unnamed parameters are named after the interpolated expression, e.g.
        ``{parameter(supplier_id)}`` becomes ``@Supplier_id``. Temporary tables created without a
        name are renamed after their expression the same way.

        Raises:
            InvalidArgumentError: If ``template`` is not a template string object.
        """
        if not is_template(template):
            msg = f"The value {to_debug_string(template)} is not a template string."
            raise InvalidArgumentError(msg, argument="template")
        statement = cls(enum_serialization_mode=enum_serialization_mode)
        statement._append_template(template)
        return statement

    def _append_template(self, template: Any) -> None:
        config = get_global_config()
        for item in template:
            if isinstance(item, str):
                self.append_literal(item)
                continue
            if not is_template_interpolation(item):
                self.append_formatted(item)
                continue

            value = item.value
            if is_parameter(value) and not value.name:
                inferred = create_name_from_expression(item.expression, config.parameter_name_max_length)
                if inferred:
                    value = Parameter(value=value.value, name=inferred)
            elif is_temporary_table(value) and value.anonymous:
                inferred = create_name_from_expression(item.expression, config.temporary_table_name_max_length)
                if inferred:
                    value = value.renamed(inferred)
            elif item.conversion == "r":
                value = repr(value)
            elif item.conversion == "s":
                value = str(value)
            elif item.conversion == "a":
                value = ascii(value)
            self.append_formatted(value, format_spec=item.format_spec or None)

    def append_literal(self, value: Optional[str]) -> None:
        """Append literal SQL text. ``None`` appends nothing."""
        self._code.append(value or "")

    def append_formatted(self, value: Any, alignment: int = 0, format_spec: Optional[str] = None) -> None:
        """Fill a hole with ``value``.

        Args:
            value: A :class:`Parameter`, a :class:`TemporaryTable` or any other value. Other
                values are formatted and appended verbatim, without any escaping.
            alignment: Minimum width for formatted values; positive right-aligns, negative left-aligns.
            format_spec: Format specification passed to :func:`format` for formatted values.
        """
        if is_parameter(value):
            self._add_parameter(value.name, value.value)
            return
        if is_temporary_table(value):
            self._temporary_tables.append(value)
            self._code.append(value.name)
            return

        if value is None:
            text = ""
        elif isinstance(value, str) and not format_spec:
            text = value
        else:
            text = format(value, format_spec or "")

        if alignment > 0:
            text = text.rjust(alignment)
        elif alignment < 0:
            text = text.ljust(-alignment)
        self._code.append(text)

    def _add_parameter(self, name: Optional[str], value: Any) -> None:
        if not name or not name.strip():
            name = f"{POSITIONAL_PARAMETER_PREFIX}{len(self._parameters) + 1}"

        if name.lower() in self._parameter_keys:
            suffix = 2
            while f"{name}{suffix}".lower() in self._parameter_keys:
                suffix += 1
            logger.debug("Renamed parameter %s to %s%d to avoid a name collision", name, name, suffix)
            name = f"{name}{suffix}"

        self._store_parameter(name, value)
        self._code.append(name)

    def _store_parameter(self, name: str, value: Any) -> None:
        if isinstance(value, Enum):
            mode = self._enum_serialization_mode or get_enum_serialization_mode()
            value = serialize_enum(value, mode)
        self._parameters[name] = value
        self._parameter_keys.add(name.lower())

    @property
    def code(self) -> str:
        """The SQL code."""
        return "".join(self._code)

    @property
    def parameters(self) -> "MappingProxyType[str, Any]":
        """Read-only view of the parameters in insertion order."""
        return MappingProxyType(self._parameters)

    @property
    def temporary_tables(self) -> "tuple[TemporaryTable, ...]":
        return tuple(self._temporary_tables)

    @property
    def expression(self) -> exp.Expression:
        """The code parsed with sqlglot's T-SQL dialect.

        Raises:
            SQLParsingError: If the code cannot be parsed.
        """
        code = self.code
        try:
            expression = sqlglot.parse_one(code, dialect=SQL_DIALECT)
        except ParseError as e:
            msg = f"Failed to parse SQL statement: {e}"
            raise SQLParsingError(msg, sql=code) from e
        return expression

    def __hash__(self) -> int:
        return hash((self.code, tuple(sorted(self._parameter_keys)), tuple(table.name for table in self._temporary_tables)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SQLStatement):
            return False
        return (
            self.code == other.code
            and self._parameters == other._parameters
            and self._temporary_tables == other._temporary_tables
        )

    def __str__(self) -> str:
        lines = ["SQL Statement", "", "Statement Code", "--------------", self.code, "--------------", ""]
        lines.extend(("Statement Parameters", "--------------------"))
        lines.extend(f"{name} = {to_debug_string(value)}" for name, value in self._parameters.items())
        lines.extend(("", "Statement Temporary Tables", "--------------------------"))
        for table in self._temporary_tables:
            lines.extend((table.name, "-" * (len(table.name) + 1)))
            lines.extend(to_debug_string(value) for value in table.values)
            lines.append("")
        return "\n".join(lines) + "\n"

    def __repr__(self) -> str:
        parts = [repr(self.code)]
        if self._parameters:
            parts.append(f"parameters={self._parameters!r}")
        if self._temporary_tables:
            parts.append(f"temporary_tables={[table.name for table in self._temporary_tables]!r}")
        return f"SQLStatement({', '.join(parts)})"
