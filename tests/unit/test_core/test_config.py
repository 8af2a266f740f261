"""Tests for process-wide configuration."""

import threading

import pytest

from sqlconnplus.core.config import (
    ConfigManager,
    SQLConnPlusConfig,
    get_enum_serialization_mode,
    get_global_config,
    load_config_from_env,
    reset_global_config,
    set_enum_serialization_mode,
    set_global_config,
    update_global_config,
)
from sqlconnplus.core.enums import EnumSerializationMode
from sqlconnplus.exceptions import ImproperConfigurationError


def test_defaults() -> None:
    config = get_global_config()

    assert config.enum_serialization_mode is EnumSerializationMode.STRINGS
    assert config.parameter_name_max_length == 128
    assert config.temporary_table_name_max_length == 84
    assert config.validate() == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (EnumSerializationMode.INTEGERS, EnumSerializationMode.INTEGERS),
        ("integers", EnumSerializationMode.INTEGERS),
        (" Strings ", EnumSerializationMode.STRINGS),
    ],
    ids=["member", "value", "padded_mixed_case"],
)
def test_set_enum_serialization_mode(value: object, expected: EnumSerializationMode) -> None:
    set_enum_serialization_mode(value)  # type: ignore[arg-type]

    assert get_enum_serialization_mode() is expected


def test_set_enum_serialization_mode_rejects_unknown_modes() -> None:
    with pytest.raises(ImproperConfigurationError, match="Invalid enum serialization mode"):
        set_enum_serialization_mode("names")
    assert get_enum_serialization_mode() is EnumSerializationMode.STRINGS


def test_set_global_config_validates() -> None:
    with pytest.raises(ImproperConfigurationError, match="parameter_name_max_length must be positive"):
        set_global_config(SQLConnPlusConfig(parameter_name_max_length=0))
    with pytest.raises(ImproperConfigurationError, match="enum_serialization_mode"):
        set_global_config(SQLConnPlusConfig(enum_serialization_mode="strings"))  # type: ignore[arg-type]


def test_update_and_reset_global_config() -> None:
    update_global_config(temporary_table_name_max_length=10)
    assert get_global_config().temporary_table_name_max_length == 10

    reset_global_config()
    assert get_global_config() == SQLConnPlusConfig()


def test_change_callbacks() -> None:
    manager = ConfigManager()
    seen: list[SQLConnPlusConfig] = []

    manager.add_change_callback(seen.append)
    manager.update_config(enum_serialization_mode=EnumSerializationMode.INTEGERS)

    assert [config.enum_serialization_mode for config in seen] == [EnumSerializationMode.INTEGERS]
    assert manager.remove_change_callback(seen.append) is True
    assert manager.remove_change_callback(seen.append) is False

    manager.reset_to_defaults()
    assert len(seen) == 1


def test_update_config_runs_callbacks_without_holding_the_lock() -> None:
    """Callbacks may hand work to other threads that use the manager."""
    manager = ConfigManager()
    blocked: list[bool] = []

    def callback(config: SQLConnPlusConfig) -> None:
        worker = threading.Thread(target=manager.remove_change_callback, args=(callback,))
        worker.start()
        worker.join(timeout=2)
        blocked.append(worker.is_alive())

    manager.add_change_callback(callback)
    manager.update_config(parameter_name_max_length=64)

    assert blocked == [False]
    assert manager.remove_change_callback(callback) is False
    assert manager.get_config().parameter_name_max_length == 64


def test_load_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQLCONNPLUS_ENUM_SERIALIZATION_MODE", "INTEGERS")
    monkeypatch.setenv("SQLCONNPLUS_PARAMETER_NAME_MAX_LENGTH", "64")
    monkeypatch.setenv("SQLCONNPLUS_TEMPORARY_TABLE_NAME_MAX_LENGTH", "not-a-number")

    config = load_config_from_env()

    assert config.enum_serialization_mode is EnumSerializationMode.INTEGERS
    assert config.parameter_name_max_length == 64
    assert config.temporary_table_name_max_length == 84


def test_load_config_from_env_rejects_unknown_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQLCONNPLUS_ENUM_SERIALIZATION_MODE", "ordinal")

    with pytest.raises(ImproperConfigurationError, match="SQLCONNPLUS_ENUM_SERIALIZATION_MODE"):
        load_config_from_env()


def test_reload_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    manager = ConfigManager()
    monkeypatch.setenv("SQLCONNPLUS_ENUM_SERIALIZATION_MODE", "integers")

    manager.reload_from_env()

    assert manager.get_config().enum_serialization_mode is EnumSerializationMode.INTEGERS
