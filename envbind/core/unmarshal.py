"""Populate dataclasses and pydantic models from environment variables.

Fields opt in with an ``env`` tag naming their variable. A tag on a nested
struct field is a prefix for the nested fields' tags; no separator is added,
so the prefix carries its own (``"DB_"``, not ``"DB"``).

Example:
    @dataclass
    class CassandraConfig:
        hosts: List[str] = env_field("CASSANDRA_HOSTS")
        port: int = env_field("CASSANDRA_PORT")
        consistency: str = env_field("CASSANDRA_CONSISTENCY")

    marshaler = DefaultEnvMarshaler(OsEnvReader())
    config = marshaler.load(CassandraConfig)

Every tagged field is required. Unmarshalling is not thread-safe.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Type, TypeVar, runtime_checkable

from loguru import logger

from envbind.core.descriptors import (
    DEFAULT_TAG,
    FieldDescriptor,
    Kind,
    StructDescriptor,
    TypeDescriptor,
    describe_struct,
    implements_unmarshaler,
    is_struct,
    type_name,
)
from envbind.core.errors import (
    CustomUnmarshalFailure,
    EnvError,
    InvalidFormat,
    MissingKey,
    NotStruct,
    Unsettable,
)
from envbind.core.parser import DefaultParser
from envbind.helpers.readers import EnvReader, OsEnvReader

T = TypeVar("T")


@runtime_checkable
class EnvUnmarshaler(Protocol):
    """A type that populates itself from an :class:`EnvReader`."""

    def unmarshal_env(self, reader: EnvReader) -> None:
        ...


class DefaultEnvMarshaler:
    """Unmarshals tagged structs using :class:`DefaultParser`.

    Args:
        environment: Where values are looked up.
        tag: Metadata key holding each field's variable name.
    """

    def __init__(self, environment: EnvReader, *, tag: str = DEFAULT_TAG) -> None:
        self.environment = environment
        self.tag = tag
        self.parser = DefaultParser()

    # ---------- public entry points ----------
    def unmarshal(self, target: Any) -> None:
        """Populate ``target`` in place.

        Nothing is written unless every tagged field parsed.

        Raises:
            Unsettable: ``target`` is a class, ``None`` or frozen.
            NotStruct: ``target`` is neither a struct nor an EnvUnmarshaler.
            MissingKey, InvalidFormat, Overflow, ElementError, UnsupportedType:
                a field could not be populated.
            CustomUnmarshalFailure: the target's own hook raised.
        """
        if target is None or isinstance(target, type):
            raise Unsettable(
                f"cannot unmarshal into {target!r}; pass an instance or use load()"
            )

        if implements_unmarshaler(type(target)):
            self._delegate(target)
            return

        desc = self._describe(type(target))
        if desc.frozen:
            raise Unsettable(f"cannot unmarshal into frozen type {desc.name}")

        built = self._unmarshal_struct(desc, "")
        self._assign(desc, target, built)

    def load(self, cls: Type[T]) -> T:
        """Build and return a populated instance of ``cls``.

        Unlike :meth:`unmarshal` this works for frozen dataclasses and models.
        """
        if not isinstance(cls, type):
            raise Unsettable(f"load() expects a class, got {cls!r}")

        if implements_unmarshaler(cls):
            instance = describe_struct(cls).build({}) if is_struct(cls) else cls()
            self._delegate(instance)
            return instance

        return self._unmarshal_struct(self._describe(cls), "")

    # ---------- field walk ----------
    def _describe(self, tp: type) -> StructDescriptor:
        if not is_struct(tp):
            raise NotStruct(
                f"cannot unmarshal non-struct, non-EnvUnmarshaler type {type_name(tp)}"
            )
        return describe_struct(tp, self.tag)

    def _delegate(self, target: Any) -> None:
        name = type_name(type(target))
        logger.debug(f"{name} unmarshals itself; skipping field walk.")
        try:
            target.unmarshal_env(self.environment)
        except Exception as e:
            raise CustomUnmarshalFailure(e) from e

    def _assign(self, desc: StructDescriptor, target: Any, built: Any) -> None:
        """Copy every field of ``built`` onto ``target``, all or nothing.

        Targets that validate on assignment (pydantic ``validate_assignment``)
        may reject a value; the fields written so far are then restored.
        """
        previous = {f.name: getattr(target, f.name) for f in desc.fields}
        for f in desc.fields:
            try:
                setattr(target, f.name, getattr(built, f.name))
            except (ValueError, TypeError) as e:
                logger.debug(f"{desc.name}.{f.name} rejected on assignment; restoring.")
                for name, value in previous.items():
                    object.__setattr__(target, name, value)
                err = InvalidFormat(f"{desc.name} rejected field {f.name}: {e}")
                err.add_field(f.name, f.tag or None)
                raise err.wrap(f"error unmarshaling field {f.name}") from e

    def _unmarshal_struct(self, desc: StructDescriptor, prefix: str) -> Any:
        values: Dict[str, Any] = {}
        for f in desc.fields:
            if not f.tag:
                continue
            key = prefix + f.tag
            logger.debug(f"Unmarshalling {desc.name}.{f.name} from '{key}'.")
            try:
                values[f.name] = self._unmarshal_field(f, key)
            except EnvError as e:
                logger.debug(
                    f"Failed to unmarshal {desc.name}.{f.name}: {type(e).__name__}"
                )
                e.add_field(f.name, key)
                e.wrap(f"error unmarshaling field {f.name}")
                raise
        return desc.build(values)

    def _unmarshal_field(self, f: FieldDescriptor, key: str) -> Any:
        td = f.type
        if td.kind is Kind.POINTER and td.elem.kind is Kind.STRUCT:
            return self._unmarshal_nested(td.elem, key)
        if td.kind is Kind.STRUCT:
            return self._unmarshal_nested(td, key)
        return self._unmarshal_value(td, key)

    def _unmarshal_nested(self, td: TypeDescriptor, prefix: str) -> Any:
        try:
            return self._unmarshal_struct(describe_struct(td.py_type, self.tag), prefix)
        except EnvError as e:
            e.wrap(f"cannot unmarshal {prefix} to type {td.name}")
            raise

    def _unmarshal_value(self, td: TypeDescriptor, key: str) -> Any:
        value, found = self.environment.lookup_env(key)
        if not found:
            raise MissingKey(key)
        try:
            return self.parser.parse(value, td)
        except EnvError as e:
            e.wrap(f"cannot unmarshal {key} to type {td.name}")
            raise


def unmarshal(target: Any, reader: Optional[EnvReader] = None) -> None:
    """Populate ``target`` from ``reader`` (the process environment by default)."""
    _default_marshaler(reader).unmarshal(target)


def load(cls: Type[T], reader: Optional[EnvReader] = None) -> T:
    """Build a ``cls`` from ``reader`` (the process environment by default)."""
    return _default_marshaler(reader).load(cls)


def _default_marshaler(reader: Optional[EnvReader]) -> DefaultEnvMarshaler:
    return DefaultEnvMarshaler(reader if reader is not None else OsEnvReader())
