"""Process-wide configuration for SQLConnPlus.

Components:
- SQLConnPlusConfig: immutable settings (enum serialization mode, name length limits)
- ConfigManager: thread-safe holder of the current settings with change callbacks
- load_config_from_env: settings from ``SQLCONNPLUS_*`` environment variables

The enum serialization mode stored here is only the fallback used when a call site does not
pass an explicit mode. It is read at the moment a value is serialized.
"""

import os
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Final, Optional

from sqlconnplus.core.enums import EnumSerializationMode
from sqlconnplus.exceptions import ImproperConfigurationError
from sqlconnplus.utils.logging import get_logger

__all__ = (
    "DEFAULT_PARAMETER_NAME_MAX_LENGTH",
    "DEFAULT_TEMPORARY_TABLE_NAME_MAX_LENGTH",
    "ConfigManager",
    "SQLConnPlusConfig",
    "get_enum_serialization_mode",
    "get_global_config",
    "load_config_from_env",
    "reset_global_config",
    "set_enum_serialization_mode",
    "set_global_config",
    "update_global_config",
)

logger = get_logger("sqlconnplus.core.config")

DEFAULT_PARAMETER_NAME_MAX_LENGTH: Final = 128
DEFAULT_TEMPORARY_TABLE_NAME_MAX_LENGTH: Final = 84


@dataclass(frozen=True)
class SQLConnPlusConfig:
    """Immutable library settings.

    Attributes:
        enum_serialization_mode: Default mode for writing enum values into parameters.
        parameter_name_max_length: Maximum length of a parameter name inferred from an expression.
        temporary_table_name_max_length: Maximum length of a temporary table name inferred from
            an expression, before the unique suffix is appended.
    """

    enum_serialization_mode: EnumSerializationMode = EnumSerializationMode.STRINGS
    parameter_name_max_length: int = DEFAULT_PARAMETER_NAME_MAX_LENGTH
    temporary_table_name_max_length: int = DEFAULT_TEMPORARY_TABLE_NAME_MAX_LENGTH

    def validate(self) -> "list[str]":
        """Validate settings.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []
        if not isinstance(self.enum_serialization_mode, EnumSerializationMode):
            errors.append(f"enum_serialization_mode must be an EnumSerializationMode, got {self.enum_serialization_mode!r}")
        if self.parameter_name_max_length <= 0:
            errors.append("parameter_name_max_length must be positive")
        if self.temporary_table_name_max_length <= 0:
            errors.append("temporary_table_name_max_length must be positive")
        return errors

    def replace(self, **kwargs: Any) -> "SQLConnPlusConfig":
        return replace(self, **kwargs)


class ConfigManager:
    """Thread-safe holder of the global :class:`SQLConnPlusConfig`."""

    __slots__ = ("_change_callbacks", "_config", "_lock")

    def __init__(self, config: Optional[SQLConnPlusConfig] = None) -> None:
        self._config = config or SQLConnPlusConfig()
        self._lock = threading.RLock()
        self._change_callbacks: list[Callable[[SQLConnPlusConfig], None]] = []

    def get_config(self) -> SQLConnPlusConfig:
        return self._config

    def set_config(self, config: SQLConnPlusConfig) -> None:
        """Replace the global configuration and notify callbacks.

        Args:
            config: New configuration to set

        Raises:
            ImproperConfigurationError: If the configuration does not validate.
        """
        validation_errors = config.validate()
        if validation_errors:
            msg = f"Invalid configuration: {', '.join(validation_errors)}"
            raise ImproperConfigurationError(msg)

        with self._lock:
            self._config = config
            callbacks = list(self._change_callbacks)

        for callback in callbacks:
            callback(config)

        logger.info("Global configuration updated", extra={"extra_fields": {"config": repr(config)}})

    def update_config(self, **kwargs: Any) -> None:
        """Update current configuration with new values.

        Args:
            **kwargs: Configuration values to update
        """
        with self._lock:
            config = self._config.replace(**kwargs)
        self.set_config(config)

    def add_change_callback(self, callback: Callable[[SQLConnPlusConfig], None]) -> None:
        with self._lock:
            self._change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable[[SQLConnPlusConfig], None]) -> bool:
        """Remove configuration change callback.

        Returns:
            True if callback was found and removed, False otherwise
        """
        with self._lock:
            try:
                self._change_callbacks.remove(callback)
            except ValueError:
                return False
            return True

    def reload_from_env(self) -> None:
        self.set_config(load_config_from_env())

    def reset_to_defaults(self) -> None:
        self.set_config(SQLConnPlusConfig())


_config_manager: Optional[ConfigManager] = None
_config_lock = threading.Lock()


def _get_config_manager() -> ConfigManager:
    """Get or create the global configuration manager."""
    global _config_manager
    if _config_manager is None:
        with _config_lock:
            if _config_manager is None:
                _config_manager = ConfigManager()
    return _config_manager


def get_global_config() -> SQLConnPlusConfig:
    return _get_config_manager().get_config()


def set_global_config(config: SQLConnPlusConfig) -> None:
    _get_config_manager().set_config(config)


def update_global_config(**kwargs: Any) -> None:
    _get_config_manager().update_config(**kwargs)


def reset_global_config() -> None:
    _get_config_manager().reset_to_defaults()


def get_enum_serialization_mode() -> EnumSerializationMode:
    """Current process-wide enum serialization mode."""
    return get_global_config().enum_serialization_mode


def set_enum_serialization_mode(mode: "EnumSerializationMode | str") -> None:
    """Set the process-wide enum serialization mode.

    Args:
        mode: An :class:`EnumSerializationMode` member or its value (``"strings"``/``"integers"``).

    Raises:
        ImproperConfigurationError: If ``mode`` is not a serialization mode.
    """
    update_global_config(enum_serialization_mode=_parse_mode(mode, "mode"))


def load_config_from_env() -> SQLConnPlusConfig:
    """Load configuration from environment variables.

    Environment Variables Supported:
    - SQLCONNPLUS_ENUM_SERIALIZATION_MODE: ``strings`` or ``integers``
    - SQLCONNPLUS_PARAMETER_NAME_MAX_LENGTH: Maximum inferred parameter name length (integer)
    - SQLCONNPLUS_TEMPORARY_TABLE_NAME_MAX_LENGTH: Maximum inferred temporary table name length (integer)

    Returns:
        SQLConnPlusConfig loaded from environment variables
    """
    mode_value = os.getenv("SQLCONNPLUS_ENUM_SERIALIZATION_MODE")
    mode = (
        EnumSerializationMode.STRINGS
        if mode_value is None
        else _parse_mode(mode_value, "SQLCONNPLUS_ENUM_SERIALIZATION_MODE")
    )
    return SQLConnPlusConfig(
        enum_serialization_mode=mode,
        parameter_name_max_length=_env_int("SQLCONNPLUS_PARAMETER_NAME_MAX_LENGTH", DEFAULT_PARAMETER_NAME_MAX_LENGTH),
        temporary_table_name_max_length=_env_int(
            "SQLCONNPLUS_TEMPORARY_TABLE_NAME_MAX_LENGTH", DEFAULT_TEMPORARY_TABLE_NAME_MAX_LENGTH
        ),
    )


def _parse_mode(value: Any, source: str) -> EnumSerializationMode:
    if isinstance(value, str):
        value = value.strip().lower()
    try:
        return EnumSerializationMode(value)
    except ValueError as e:
        msg = f"Invalid enum serialization mode for {source}: {value!r}"
        raise ImproperConfigurationError(msg) from e


def _env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer value for %s: %s, using default %d", key, value, default)
        return default
