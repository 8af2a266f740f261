"""SQLConnPlus: typed values to parameterized SQL and back."""

from sqlconnplus import core, driver, exceptions, typing, utils
from sqlconnplus.__metadata__ import __version__
from sqlconnplus.core.config import (
    SQLConnPlusConfig,
    get_enum_serialization_mode,
    get_global_config,
    set_enum_serialization_mode,
    set_global_config,
)
from sqlconnplus.core.entity import (
    EntityTypeMetadata,
    Key,
    NotMapped,
    get_entity_type_metadata,
    populate_key_parameter,
    populate_parameters,
    table,
)
from sqlconnplus.core.enums import EnumSerializationMode, coerce_enum, serialize_enum
from sqlconnplus.core.statement import Parameter, SQLStatement, TemporaryTable, parameter, temporary_table
from sqlconnplus.core.type_conversion import convert_value
from sqlconnplus.driver import (
    Command,
    CommandParameter,
    CommandType,
    DbType,
    build_command,
    build_command_async,
    build_delete_command,
    build_insert_command,
    build_update_command,
)
from sqlconnplus.exceptions import (
    InvalidArgumentError,
    InvalidConversionError,
    SQLConnPlusError,
    SQLParsingError,
    UnsupportedError,
)
from sqlconnplus.typing import Char

__all__ = (
    "Char",
    "Command",
    "CommandParameter",
    "CommandType",
    "DbType",
    "EntityTypeMetadata",
    "EnumSerializationMode",
    "InvalidArgumentError",
    "InvalidConversionError",
    "Key",
    "NotMapped",
    "Parameter",
    "SQLConnPlusConfig",
    "SQLConnPlusError",
    "SQLParsingError",
    "SQLStatement",
    "TemporaryTable",
    "UnsupportedError",
    "__version__",
    "build_command",
    "build_command_async",
    "build_delete_command",
    "build_insert_command",
    "build_update_command",
    "coerce_enum",
    "convert_value",
    "core",
    "driver",
    "exceptions",
    "get_enum_serialization_mode",
    "get_entity_type_metadata",
    "get_global_config",
    "parameter",
    "populate_key_parameter",
    "populate_parameters",
    "serialize_enum",
    "set_enum_serialization_mode",
    "set_global_config",
    "table",
    "temporary_table",
    "typing",
    "utils",
)
