"""SQLConnPlus core: value conversion, entity metadata and statement composition.

Architecture Overview:
- enums.py: enum coercion and serialization
- type_conversion.py: conversion of runtime values to target types
- cache.py: type-keyed caches for derived metadata
- config.py: process-wide settings
- entity.py: entity metadata and SQL templates
- statement.py: parameterized statement composition
"""

from sqlconnplus.core.cache import CacheStats, TypeCache
from sqlconnplus.core.config import SQLConnPlusConfig, get_global_config, set_global_config
from sqlconnplus.core.entity import EntityTypeMetadata, get_entity_type_metadata, populate_parameters
from sqlconnplus.core.enums import EnumSerializationMode, coerce_enum, serialize_enum
from sqlconnplus.core.statement import Parameter, SQLStatement, TemporaryTable, parameter, temporary_table
from sqlconnplus.core.type_conversion import convert_value

__all__ = (
    "CacheStats",
    "EntityTypeMetadata",
    "EnumSerializationMode",
    "Parameter",
    "SQLConnPlusConfig",
    "SQLStatement",
    "TemporaryTable",
    "TypeCache",
    "coerce_enum",
    "convert_value",
    "get_entity_type_metadata",
    "get_global_config",
    "parameter",
    "populate_parameters",
    "serialize_enum",
    "set_global_config",
    "temporary_table",
)
