import pytest

from sqlconnplus.exceptions import (
    ImproperConfigurationError,
    InvalidArgumentError,
    InvalidConversionError,
    SQLConnPlusError,
    SQLParsingError,
    UnsupportedError,
    ensure_not_none,
)


def test_exception_hierarchy():
    """Library errors derive from the base error and the matching builtin."""
    assert issubclass(InvalidArgumentError, SQLConnPlusError)
    assert issubclass(InvalidArgumentError, ValueError)
    assert issubclass(InvalidConversionError, TypeError)
    assert issubclass(UnsupportedError, NotImplementedError)
    assert issubclass(ImproperConfigurationError, SQLConnPlusError)
    assert issubclass(SQLParsingError, SQLConnPlusError)


def test_exception_messages():
    """Exceptions keep their message and structured attributes."""
    exc = InvalidConversionError("Cannot convert", value="x", target_type=int)
    assert str(exc) == "Cannot convert"
    assert exc.value == "x"
    assert exc.target_type is int

    parsing = SQLParsingError(sql="SELECT")
    assert str(parsing) == "Issues parsing SQL statement."
    assert parsing.sql == "SELECT"

    assert repr(UnsupportedError("nope")) == "UnsupportedError - nope"


def test_exception_chaining():
    """Exceptions support chaining with 'from'."""
    try:
        try:
            raise ValueError("Original error")
        except ValueError as e:
            raise InvalidConversionError("Mapped error") from e
    except InvalidConversionError as exc:
        assert isinstance(exc.__cause__, ValueError)


def test_ensure_not_none():
    ensure_not_none(0, "value")

    with pytest.raises(InvalidArgumentError, match="The argument 'connection' must not be None.") as exc_info:
        ensure_not_none(None, "connection")
    assert exc_info.value.argument == "connection"
