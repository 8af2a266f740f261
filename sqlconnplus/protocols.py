"""Runtime-checkable protocols for the transport collaborators.

The transport (connection, command execution, temporary table upload) lives outside this
package. Commands are assembled against these protocols so any driver exposing the same
attributes can be used.
"""

from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import MutableSequence

__all__ = ("CommandParameterProtocol", "CommandProtocol", "ConnectionProtocol")


@runtime_checkable
class CommandParameterProtocol(Protocol):
    """A named value bound to a command."""

    name: str
    value: Any
    db_type: Optional[Any]


@runtime_checkable
class CommandProtocol(Protocol):
    """An unexecuted command with its text, settings and parameters."""

    text: str
    command_type: Any
    timeout: Optional[int]
    transaction: Optional[Any]

    @property
    def parameters(self) -> "MutableSequence[Any]":
        """Ordered parameters attached to the command."""
        ...

    def create_parameter(self) -> CommandParameterProtocol:
        """Create a new, unattached parameter."""
        ...


@runtime_checkable
class ConnectionProtocol(Protocol):
    """A transport connection able to create commands."""

    def create_command(self) -> CommandProtocol:
        """Create a new command bound to this connection."""
        ...
