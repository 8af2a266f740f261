"""Command assembly against transport connections."""

from sqlconnplus.driver._command import (
    Command,
    CommandFactory,
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
