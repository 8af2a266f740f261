"""Logging helpers for SQLConnPlus.

Library loggers live under the ``sqlconnplus`` namespace and never get handlers from the
library itself. Applications either configure the ``sqlconnplus`` logger or call
:func:`configure_logging` for JSON lines.

Context fields (a correlation id and any values bound with :func:`log_context`) are kept in a
context variable, so they follow the current thread or task and show up on every record
formatted by :class:`StructuredFormatter`.
"""

import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any, Optional, TextIO

from sqlconnplus._serialization import encode_json

__all__ = (
    "ContextFieldsFilter",
    "StructuredFormatter",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "log_context",
    "log_with_context",
    "set_correlation_id",
)

NAMESPACE = "sqlconnplus"
CORRELATION_ID_FIELD = "correlation_id"
PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_EMPTY: "Mapping[str, Any]" = MappingProxyType({})
_context_fields: "ContextVar[Mapping[str, Any]]" = ContextVar("sqlconnplus_log_context", default=_EMPTY)


def _bind(fields: "Mapping[str, Any]") -> Any:
    merged = {**_context_fields.get(), **fields}
    return _context_fields.set(MappingProxyType(merged))


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Bind ``correlation_id`` to the current context. ``None`` removes it."""
    fields = dict(_context_fields.get())
    if correlation_id is None:
        fields.pop(CORRELATION_ID_FIELD, None)
    else:
        fields[CORRELATION_ID_FIELD] = correlation_id
    _context_fields.set(MappingProxyType(fields))


def get_correlation_id() -> Optional[str]:
    return _context_fields.get().get(CORRELATION_ID_FIELD)


@contextmanager
def log_context(**fields: Any) -> "Iterator[Mapping[str, Any]]":
    """Bind ``fields`` to every record logged inside the block.

    Example::

        with log_context(entity_type="Product"):
            get_entity_type_metadata(Product)

    Yields:
        The context fields in effect inside the block.
    """
    token = _bind(fields)
    try:
        yield _context_fields.get()
    finally:
        _context_fields.reset(token)


class ContextFieldsFilter(logging.Filter):
    """Copies the bound context fields onto each record as ``context_fields``."""

    def filter(self, record: logging.LogRecord) -> bool:
        fields = _context_fields.get()
        if fields:
            record.context_fields = dict(fields)  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """Formats records as one JSON object per line.

    Context fields bound when the record was created are included, followed by the record's own
    ``extra_fields`` (see :func:`log_with_context`), which win on conflicts.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(getattr(record, "context_fields", None) or _context_fields.get())
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger in the ``sqlconnplus`` namespace.

    Args:
        name: Dotted logger name. Names outside the namespace get ``sqlconnplus.`` prepended;
            ``None`` returns the namespace logger.

    Returns:
        The logger, with a :class:`ContextFieldsFilter` attached once.
    """
    if not name or name == NAMESPACE:
        qualified = NAMESPACE
    elif name.startswith(f"{NAMESPACE}."):
        qualified = name
    else:
        qualified = f"{NAMESPACE}.{name}"

    logger = logging.getLogger(qualified)
    if not any(isinstance(existing, ContextFieldsFilter) for existing in logger.filters):
        logger.addFilter(ContextFieldsFilter())
    return logger


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    stream: Optional[TextIO] = None,
    handlers: "Optional[list[logging.Handler]]" = None,
) -> logging.Logger:
    """Send ``sqlconnplus`` records to ``stream``, replacing previously installed handlers.

    Args:
        level: Level name such as ``"DEBUG"`` or ``"warning"``.
        format_style: ``"structured"`` for JSON lines, ``"plain"`` for classic text lines.
        stream: Target stream. Defaults to ``sys.stderr``.
        handlers: Further handlers to install next to the stream handler.

    Raises:
        ValueError: If ``level`` is not a known level name or ``format_style`` is unknown.

    Returns:
        The configured namespace logger.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        msg = f"Unknown logging level {level!r}."
        raise ValueError(msg)
    if format_style not in {"structured", "plain"}:
        msg = f"Unknown format style {format_style!r}. Use 'structured' or 'plain'."
        raise ValueError(msg)

    namespace_logger = get_logger()
    namespace_logger.setLevel(numeric_level)
    for existing in list(namespace_logger.handlers):
        namespace_logger.removeHandler(existing)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(StructuredFormatter() if format_style == "structured" else logging.Formatter(PLAIN_FORMAT))
    for handler in (stream_handler, *(handlers or ())):
        namespace_logger.addHandler(handler)
    namespace_logger.propagate = False

    namespace_logger.debug(
        "Logging configured",
        extra={"extra_fields": {"level": numeric_level, "format_style": format_style}},
    )
    return namespace_logger


def log_with_context(logger: logging.Logger, level: int, message: str, **extra_fields: Any) -> None:
    """Log ``message`` with ``extra_fields`` rendered as top-level keys by :class:`StructuredFormatter`."""
    logger.log(level, message, extra={"extra_fields": extra_fields})
