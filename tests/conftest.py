from __future__ import annotations

from collections.abc import Generator

import pytest

from sqlconnplus.core.cache import clear_all_caches
from sqlconnplus.core.config import reset_global_config
from sqlconnplus.driver import Command, set_command_factory


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Give every test default configuration, empty caches and the default command factory."""
    reset_global_config()
    clear_all_caches()
    set_command_factory(None)
    yield
    reset_global_config()
    clear_all_caches()
    set_command_factory(None)


class FakeConnection:
    """In-memory connection recording the commands it creates."""

    def __init__(self) -> None:
        self.commands: list[Command] = []

    def create_command(self) -> Command:
        command = Command(connection=self)
        self.commands.append(command)
        return command


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()
