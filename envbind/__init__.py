"""envbind: populate dataclasses and pydantic models from environment variables.

Fields opt in with an ``env`` tag; nested struct tags act as key prefixes.

Example:
    from dataclasses import dataclass
    from typing import List

    import envbind
    from envbind import Duration, env_field

    @dataclass
    class CassandraConfig:
        hosts: List[str] = env_field("CASSANDRA_HOSTS")
        port: int = env_field("CASSANDRA_PORT")
        timeout: Duration = env_field("CASSANDRA_TIMEOUT")

    config = envbind.load(CassandraConfig)

Logging goes through Loguru and is disabled until
``envbind.helpers.logging_helpers.enable_logging`` is called.
"""

from loguru import logger

from .core.descriptors import env_field
from .core.errors import (
    CustomUnmarshalFailure,
    ElementError,
    EnvError,
    InvalidFormat,
    MissingKey,
    NotStruct,
    Overflow,
    Unsettable,
    UnsupportedType,
)
from .core.kinds import (
    Duration,
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from .core.parser import DefaultParser
from .core.unmarshal import DefaultEnvMarshaler, EnvUnmarshaler, load, unmarshal
from .helpers.readers import (
    BaseEnvReader,
    DotenvReader,
    EnvReader,
    MappingEnvReader,
    OsEnvReader,
)

logger.disable("envbind")

__all__ = [
    "BaseEnvReader",
    "CustomUnmarshalFailure",
    "DefaultEnvMarshaler",
    "DefaultParser",
    "DotenvReader",
    "Duration",
    "ElementError",
    "EnvError",
    "EnvReader",
    "EnvUnmarshaler",
    "Float32",
    "Float64",
    "Int16",
    "Int32",
    "Int64",
    "Int8",
    "InvalidFormat",
    "MappingEnvReader",
    "MissingKey",
    "NotStruct",
    "OsEnvReader",
    "Overflow",
    "UInt",
    "UInt16",
    "UInt32",
    "UInt64",
    "UInt8",
    "Unsettable",
    "UnsupportedType",
    "env_field",
    "load",
    "unmarshal",
]
