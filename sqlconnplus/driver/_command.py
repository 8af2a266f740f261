"""Assembly of unexecuted transport commands.

Commands are created through the process-wide :class:`CommandFactory` and bound to a
connection, optional transaction, timeout and command type. Statement parameters are attached
as named command parameters; entity commands get one parameter slot per member, to be filled
with :func:`~sqlconnplus.core.entity.populate_parameters`.
"""

import datetime
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol, Union, runtime_checkable

from sqlconnplus.core.entity import DELETE_KEY_PARAMETER_NAME
from sqlconnplus.core.statement import SQLStatement
from sqlconnplus.exceptions import InvalidArgumentError, ensure_not_none
from sqlconnplus.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlconnplus.core.entity import EntityTypeMetadata
    from sqlconnplus.protocols import CommandParameterProtocol, CommandProtocol, ConnectionProtocol

__all__ = (
    "Command",
    "CommandFactory",
    "CommandParameter",
    "CommandType",
    "DbType",
    "DefaultCommandFactory",
    "build_command",
    "build_command_async",
    "build_delete_command",
    "build_insert_command",
    "build_update_command",
    "get_command_factory",
    "set_command_factory",
)

logger = get_logger("sqlconnplus.driver")

Timeout = Union[int, float, datetime.timedelta]


class CommandType(str, Enum):
    """How the transport interprets a command's text."""

    TEXT = "text"
    STORED_PROCEDURE = "stored_procedure"
    TABLE_DIRECT = "table_direct"


class DbType(str, Enum):
    """Native storage shapes assigned to entity parameter slots.

    Slots without an explicit shape are left to the transport's inference.
    """

    BINARY = "binary"
    DATETIME2 = "datetime2"


class CommandParameter:
    """A named value bound to a :class:`Command`."""

    __slots__ = ("db_type", "name", "value")

    def __init__(self, name: str = "", value: Any = None, db_type: Optional[DbType] = None) -> None:
        self.name = name
        self.value = value
        self.db_type = db_type

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommandParameter):
            return False
        return self.name == other.name and self.value == other.value and self.db_type == other.db_type

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        db_type = f", db_type={self.db_type.value}" if self.db_type is not None else ""
        return f"CommandParameter(name={self.name!r}, value={self.value!r}{db_type})"


class Command:
    """Plain command for transports that do not bring their own command type."""

    __slots__ = ("command_type", "connection", "parameters", "text", "timeout", "transaction")

    def __init__(self, connection: Any = None) -> None:
        self.connection = connection
        self.text = ""
        self.command_type: Any = CommandType.TEXT
        self.timeout: Optional[int] = None
        self.transaction: Optional[Any] = None
        self.parameters: list[Any] = []

    def create_parameter(self) -> CommandParameter:
        return CommandParameter()

    def __repr__(self) -> str:
        return f"Command(text={self.text!r}, command_type={self.command_type!r}, parameters={self.parameters!r})"


@runtime_checkable
class CommandFactory(Protocol):
    """Creates commands bound to a connection."""

    def create_command(
        self,
        connection: "ConnectionProtocol",
        text: str,
        transaction: Optional[Any] = None,
        timeout: Optional[Timeout] = None,
        command_type: CommandType = CommandType.TEXT,
    ) -> "CommandProtocol":
        """Create a command with the given text and settings."""
        ...


def _timeout_seconds(timeout: Timeout) -> int:
    seconds = timeout.total_seconds() if isinstance(timeout, datetime.timedelta) else timeout
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or seconds < 0:
        msg = f"The timeout must be a non-negative number of seconds or a timedelta, got {timeout!r}."
        raise InvalidArgumentError(msg, argument="timeout")
    return int(seconds)


class DefaultCommandFactory:
    """Creates commands through ``connection.create_command()``."""

    __slots__ = ()

    def create_command(
        self,
        connection: "ConnectionProtocol",
        text: str,
        transaction: Optional[Any] = None,
        timeout: Optional[Timeout] = None,
        command_type: CommandType = CommandType.TEXT,
    ) -> "CommandProtocol":
        """Create a command with the given text and settings.

        Args:
            connection: Connection to create the command on.
            text: Command text.
            transaction: Transaction to run the command in.
            timeout: Timeout in seconds or as a timedelta; truncated to whole seconds. Left at the
                transport's default when ``None``.
            command_type: How the text is interpreted.

        Returns:
            The unexecuted command.
        """
        command = connection.create_command()
        command.text = text
        command.transaction = transaction
        command.command_type = command_type
        if timeout is not None:
            command.timeout = _timeout_seconds(timeout)
        return command


_command_factory: CommandFactory = DefaultCommandFactory()
_factory_lock = threading.Lock()


def get_command_factory() -> CommandFactory:
    return _command_factory


def set_command_factory(factory: Optional[CommandFactory]) -> None:
    """Replace the process-wide command factory. ``None`` restores :class:`DefaultCommandFactory`."""
    global _command_factory
    with _factory_lock:
        _command_factory = factory if factory is not None else DefaultCommandFactory()
    logger.debug("Command factory set to %s", type(_command_factory).__qualname__)


def _add_parameter(
    command: "CommandProtocol", name: str, value: Any = None, db_type: Optional[DbType] = None
) -> "CommandParameterProtocol":
    slot = command.create_parameter()
    slot.name = name
    slot.value = value
    if db_type is not None:
        slot.db_type = db_type
    command.parameters.append(slot)
    return slot


def build_command(
    connection: "ConnectionProtocol",
    statement: Any,
    transaction: Optional[Any] = None,
    timeout: Optional[Timeout] = None,
    command_type: CommandType = CommandType.TEXT,
) -> "CommandProtocol":
    """Build an unexecuted command for ``statement``.

    Args:
        connection: Connection to create the command on.
        statement: A :class:`~sqlconnplus.core.statement.SQLStatement`, plain SQL code or a
            template string object.
        transaction: Transaction to run the command in.
        timeout: Timeout in seconds or as a timedelta.
        command_type: How the text is interpreted.

    Raises:
        InvalidArgumentError: If ``connection`` or ``statement`` is ``None``.

    Returns:
        The command with one parameter per statement parameter, in statement order. Temporary
        tables of the statement are left to the transport.
    """
    ensure_not_none(connection, "connection")
    ensure_not_none(statement, "statement")
    if not isinstance(statement, SQLStatement):
        statement = SQLStatement(statement)

    command = get_command_factory().create_command(connection, statement.code, transaction, timeout, command_type)
    for name, value in statement.parameters.items():
        _add_parameter(command, name, value)
    return command


async def build_command_async(
    connection: "ConnectionProtocol",
    statement: Any,
    transaction: Optional[Any] = None,
    timeout: Optional[Timeout] = None,
    command_type: CommandType = CommandType.TEXT,
) -> "CommandProtocol":
    """Async variant of :func:`build_command` for use inside async drivers."""
    return build_command(connection, statement, transaction, timeout, command_type)


def _build_entity_command(
    connection: "ConnectionProtocol", transaction: Optional[Any], metadata: "EntityTypeMetadata", text: str
) -> "tuple[CommandProtocol, tuple[CommandParameterProtocol, ...]]":
    command = get_command_factory().create_command(connection, text, transaction)
    slots = []
    for index, name in enumerate(metadata.member_names):
        db_type = None
        if metadata.is_datetime_like[index]:
            db_type = DbType.DATETIME2
        elif metadata.is_byte_array[index]:
            db_type = DbType.BINARY
        slots.append(_add_parameter(command, name, db_type=db_type))
    return command, tuple(slots)


def build_insert_command(
    connection: "ConnectionProtocol", transaction: Optional[Any], metadata: "EntityTypeMetadata"
) -> "tuple[CommandProtocol, tuple[CommandParameterProtocol, ...]]":
    """Build the insert command of an entity type.

    Returns:
        The command with ``metadata.insert_sql`` as text and the parameter slots, aligned with
        ``metadata.member_names``.
    """
    ensure_not_none(connection, "connection")
    ensure_not_none(metadata, "metadata")
    return _build_entity_command(connection, transaction, metadata, metadata.insert_sql)


def build_update_command(
    connection: "ConnectionProtocol", transaction: Optional[Any], metadata: "EntityTypeMetadata"
) -> "tuple[CommandProtocol, tuple[CommandParameterProtocol, ...]]":
    """Build the update command of an entity type.

    Returns:
        The command with ``metadata.update_sql`` as text and the parameter slots, aligned with
        ``metadata.member_names``.
    """
    ensure_not_none(connection, "connection")
    ensure_not_none(metadata, "metadata")
    return _build_entity_command(connection, transaction, metadata, metadata.update_sql)


def build_delete_command(
    connection: "ConnectionProtocol", transaction: Optional[Any], metadata: "EntityTypeMetadata"
) -> "tuple[CommandProtocol, CommandParameterProtocol]":
    """Build the delete command of an entity type.

    Returns:
        The command with ``metadata.delete_sql`` as text and its single ``Key`` parameter slot,
        to be filled with :func:`~sqlconnplus.core.entity.populate_key_parameter`.
    """
    ensure_not_none(connection, "connection")
    ensure_not_none(metadata, "metadata")
    command = get_command_factory().create_command(connection, metadata.delete_sql, transaction)
    return command, _add_parameter(command, DELETE_KEY_PARAMETER_NAME)
