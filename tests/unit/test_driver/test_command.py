"""Tests for command assembly."""

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Optional

import pytest

from sqlconnplus.core.entity import Key, get_entity_type_metadata, populate_key_parameter, populate_parameters
from sqlconnplus.core.enums import EnumSerializationMode
from sqlconnplus.core.statement import SQLStatement, parameter, temporary_table
from sqlconnplus.driver import (
    Command,
    CommandParameter,
    CommandType,
    DbType,
    DefaultCommandFactory,
    build_command,
    build_command_async,
    build_delete_command,
    build_insert_command,
    build_update_command,
    get_command_factory,
    set_command_factory,
)
from sqlconnplus.exceptions import InvalidArgumentError
from sqlconnplus.protocols import CommandProtocol, ConnectionProtocol


class Level(Enum):
    DEBUG = 10
    ERROR = 40


@dataclass
class LogEntry:
    id: Annotated[int, Key]
    level: Level
    logged_at: datetime.datetime
    attachment: Optional[bytes]
    message: str


class RecordingFactory(DefaultCommandFactory):
    """Factory recording the texts it was asked to create commands for."""

    def __init__(self) -> None:
        self.texts: list[str] = []

    def create_command(self, connection: Any, text: str, *args: Any, **kwargs: Any) -> Any:
        self.texts.append(text)
        return super().create_command(connection, text, *args, **kwargs)


def test_fake_connection_satisfies_protocols(connection: Any) -> None:
    assert isinstance(connection, ConnectionProtocol)
    assert isinstance(connection.create_command(), CommandProtocol)


def test_build_command_binds_text_settings_and_parameters(connection: Any) -> None:
    transaction = object()
    statement = SQLStatement.build("SELECT * FROM Log WHERE Id = ", parameter(3, "Id"), " AND Level = ", parameter(Level.ERROR))

    command = build_command(connection, statement, transaction=transaction, timeout=30)

    assert connection.commands == [command]
    assert command.text == "SELECT * FROM Log WHERE Id = @Id AND Level = @Parameter_2"
    assert command.transaction is transaction
    assert command.timeout == 30
    assert command.command_type is CommandType.TEXT
    assert command.parameters == [CommandParameter("@Id", 3), CommandParameter("@Parameter_2", "ERROR")]


def test_build_command_accepts_plain_code_and_stored_procedures(connection: Any) -> None:
    command = build_command(connection, "dbo.Cleanup", command_type=CommandType.STORED_PROCEDURE)

    assert command.text == "dbo.Cleanup"
    assert command.command_type is CommandType.STORED_PROCEDURE
    assert command.parameters == []
    assert command.timeout is None


@pytest.mark.parametrize(
    ("timeout", "expected"),
    [(datetime.timedelta(seconds=90, milliseconds=900), 90), (2.7, 2), (0, 0)],
    ids=["timedelta", "float", "zero"],
)
def test_build_command_timeout_whole_seconds(connection: Any, timeout: Any, expected: int) -> None:
    assert build_command(connection, "SELECT 1", timeout=timeout).timeout == expected


@pytest.mark.parametrize(
    "timeout", [-1, datetime.timedelta(seconds=-5), "30", True], ids=["negative", "negative_delta", "string", "bool"]
)
def test_build_command_rejects_invalid_timeouts(connection: Any, timeout: Any) -> None:
    with pytest.raises(InvalidArgumentError, match="timeout"):
        build_command(connection, "SELECT 1", timeout=timeout)


def test_build_command_requires_connection_and_statement(connection: Any) -> None:
    with pytest.raises(InvalidArgumentError, match="'connection'"):
        build_command(None, "SELECT 1")  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError, match="'statement'"):
        build_command(connection, None)


def test_build_command_leaves_temporary_tables_to_transport(connection: Any) -> None:
    ids = temporary_table([1, 2], name="ids")
    command = build_command(connection, SQLStatement.build("SELECT Value FROM ", ids))

    assert command.text == f"SELECT Value FROM {ids.name}"
    assert command.parameters == []


@pytest.mark.anyio
async def test_build_command_async(connection: Any) -> None:
    command = await build_command_async(connection, SQLStatement("SELECT @A", {"@A": 1}), timeout=5)

    assert command.text == "SELECT @A"
    assert command.timeout == 5
    assert command.parameters == [CommandParameter("@A", 1)]


def test_build_insert_command_assigns_slots_and_storage_shapes(connection: Any) -> None:
    metadata = get_entity_type_metadata(LogEntry)

    command, slots = build_insert_command(connection, None, metadata)

    assert command.text == metadata.insert_sql
    assert [slot.name for slot in slots] == ["attachment", "id", "level", "logged_at", "message"]
    assert [slot.db_type for slot in slots] == [DbType.BINARY, None, None, DbType.DATETIME2, None]
    assert list(command.parameters) == list(slots)


def test_build_update_command_then_populate(connection: Any) -> None:
    metadata = get_entity_type_metadata(LogEntry)
    entry = LogEntry(9, Level.DEBUG, datetime.datetime(2024, 3, 4, 5, 6), None, "started")

    command, slots = build_update_command(connection, "tx", metadata)
    populate_parameters(metadata, slots, entry, EnumSerializationMode.INTEGERS)

    assert command.text == metadata.update_sql
    assert command.transaction == "tx"
    assert {slot.name: slot.value for slot in command.parameters} == {
        "attachment": None,
        "id": 9,
        "level": 10,
        "logged_at": datetime.datetime(2024, 3, 4, 5, 6),
        "message": "started",
    }


def test_build_delete_command_binds_key_slot(connection: Any) -> None:
    metadata = get_entity_type_metadata(LogEntry)

    command, key_slot = build_delete_command(connection, None, metadata)
    populate_key_parameter(metadata, key_slot, LogEntry(4, Level.DEBUG, datetime.datetime(2024, 1, 1), None, ""))

    assert command.text == "DELETE FROM [LogEntry] WHERE [id] = @Key"
    assert command.parameters == [CommandParameter("Key", 4)]


def test_entity_builders_require_metadata(connection: Any) -> None:
    for builder in (build_insert_command, build_update_command, build_delete_command):
        with pytest.raises(InvalidArgumentError, match="'metadata'"):
            builder(connection, None, None)  # type: ignore[arg-type]


def test_command_factory_is_swappable(connection: Any) -> None:
    factory = RecordingFactory()
    set_command_factory(factory)

    build_command(connection, "SELECT 1")
    build_insert_command(connection, None, get_entity_type_metadata(LogEntry))

    assert get_command_factory() is factory
    assert factory.texts[0] == "SELECT 1"
    assert factory.texts[1].startswith("INSERT INTO [LogEntry]")

    set_command_factory(None)
    assert isinstance(get_command_factory(), DefaultCommandFactory)


def test_command_and_parameter_repr() -> None:
    command = Command()
    command.parameters.append(CommandParameter("@A", 1, DbType.BINARY))

    assert repr(command.parameters[0]) == "CommandParameter(name='@A', value=1, db_type=binary)"
    assert "Command(text=''" in repr(command)
