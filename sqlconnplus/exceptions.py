from typing import Any, Optional

__all__ = (
    "ImproperConfigurationError",
    "InvalidArgumentError",
    "InvalidConversionError",
    "SQLConnPlusError",
    "SQLParsingError",
    "UnsupportedError",
    "ensure_not_none",
)


class SQLConnPlusError(Exception):
    """Base exception class from which all SQLConnPlus exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLConnPlusError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class InvalidArgumentError(SQLConnPlusError, ValueError):
    """A required argument is missing or structurally unusable.

    Raised for absent metadata, slot sequences or entities, entity types without exactly one
    key member, and non-enum targets handed to enum coercion.
    """

    def __init__(self, message: str, argument: Optional[str] = None) -> None:
        self.argument = argument
        super().__init__(message)


class InvalidConversionError(SQLConnPlusError, TypeError):
    """A value could not be converted to the requested target type."""

    def __init__(self, message: str, value: Any = None, target_type: Any = None) -> None:
        self.value = value
        self.target_type = target_type
        super().__init__(message)


class UnsupportedError(SQLConnPlusError, NotImplementedError):
    """A recognized but unsupported option value was supplied."""


class ImproperConfigurationError(SQLConnPlusError):
    """Improper Configuration error.

    This exception is raised when a configuration value is invalid, for example an unknown
    enum serialization mode in the environment.
    """


class SQLParsingError(SQLConnPlusError):
    """Issues parsing SQL statements."""

    def __init__(self, message: Optional[str] = None, sql: Optional[str] = None) -> None:
        if message is None:
            message = "Issues parsing SQL statement."
        self.sql = sql
        super().__init__(message)


def ensure_not_none(value: Any, argument: str) -> None:
    """Raise :class:`InvalidArgumentError` when ``value`` is ``None``.

    Args:
        value: The argument value to check.
        argument: Name of the argument, used in the error message.

    Raises:
        InvalidArgumentError: If ``value`` is ``None``.
    """
    if value is None:
        msg = f"The argument '{argument}' must not be None."
        raise InvalidArgumentError(msg, argument=argument)
