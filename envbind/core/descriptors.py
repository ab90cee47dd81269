"""Type and field descriptors derived from Python type hints.

Descriptors are the metadata the parser and the marshaler dispatch on. They
are rebuilt on every call from the class itself: dataclass fields (tags in
``field(metadata={"env": ...})``) or pydantic ``model_fields`` (tags in
``Field(json_schema_extra={"env": ...})``).
"""

from __future__ import annotations

import collections.abc
import dataclasses
import inspect
import sys
import typing
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from types import UnionType
from typing import Annotated, Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel
from pydantic_core import PydanticUndefined

from envbind.core.errors import NotStruct, UnsupportedType
from envbind.core.kinds import Duration, FixedFloat, FixedInt

DEFAULT_TAG = "env"

_SEQUENCE_ORIGINS = (
    list,
    tuple,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
)

_UNION_ORIGINS = (Union, UnionType)


class Kind(str, Enum):
    """The kinds the parser and the marshaler know how to handle."""

    DURATION = "duration"
    POINTER = "pointer"
    STRING = "string"
    BOOL = "bool"
    UINT = "uint"
    INT = "int"
    FLOAT = "float"
    SEQUENCE = "sequence"
    STRUCT = "struct"
    TIME = "time"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class TypeDescriptor:
    """Kind, width and element information for one type hint."""

    kind: Kind
    py_type: Any
    elem: Optional["TypeDescriptor"] = None
    bits: int = 0
    container: type = list

    @property
    def name(self) -> str:
        """Readable name of the described type."""
        return type_name(self.py_type)


# Marks a field without a declared default; None is a valid default.
_MISSING: Any = object()


@dataclass(frozen=True)
class FieldDescriptor:
    """A struct field: name, type descriptor and env tag."""

    name: str
    type: TypeDescriptor
    tag: str = ""
    default: Any = _MISSING
    default_factory: Optional[Callable[[], Any]] = None

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING or self.default_factory is not None


@dataclass(frozen=True)
class StructDescriptor:
    """Ordered fields of a dataclass or pydantic model."""

    py_type: type
    fields: List[FieldDescriptor]
    is_pydantic: bool = False
    frozen: bool = False

    @property
    def name(self) -> str:
        return type_name(self.py_type)

    def build(self, values: Dict[str, Any]) -> Any:
        """Construct an instance from ``values``.

        Fields absent from ``values`` keep their declared default, or get the
        zero value of their kind when they declare none.
        """
        kwargs: Dict[str, Any] = {}
        for f in self.fields:
            if f.name in values:
                kwargs[f.name] = values[f.name]
            elif not f.has_default:
                kwargs[f.name] = zero_value(f.type)

        if self.is_pydantic:
            return self.py_type.model_construct(**kwargs)
        return self.py_type(**kwargs)


def type_name(tp: Any) -> str:
    """Best-effort readable name for a type or type hint."""
    return getattr(tp, "__name__", None) or str(tp)


def is_struct(tp: Any) -> bool:
    """Whether ``tp`` is a dataclass or a pydantic model class."""
    if not isinstance(tp, type):
        return False
    return dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel)


def implements_unmarshaler(tp: Any) -> bool:
    """Whether ``tp`` provides its own ``unmarshal_env`` hook."""
    return callable(getattr(tp, "unmarshal_env", None))


def describe_type(tp: Any) -> TypeDescriptor:
    """Build a :class:`TypeDescriptor` for a type hint."""
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is Annotated:
        return describe_type(args[0])

    if origin in _UNION_ORIGINS:
        # Optional[T] is the only union with a meaning: a nullable reference.
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1 and len(args) == 2:
            return TypeDescriptor(Kind.POINTER, tp, elem=describe_type(non_none[0]))
        return TypeDescriptor(Kind.UNSUPPORTED, tp)

    if origin in _SEQUENCE_ORIGINS:
        if origin is tuple:
            if len(args) != 2 or args[1] is not Ellipsis:
                return TypeDescriptor(Kind.UNSUPPORTED, tp)
            return TypeDescriptor(
                Kind.SEQUENCE, tp, elem=describe_type(args[0]), container=tuple
            )
        if len(args) != 1:
            return TypeDescriptor(Kind.UNSUPPORTED, tp)
        return TypeDescriptor(Kind.SEQUENCE, tp, elem=describe_type(args[0]))

    if not isinstance(tp, type) or origin is not None:
        return TypeDescriptor(Kind.UNSUPPORTED, tp)

    if issubclass(tp, (Duration, timedelta)):
        return TypeDescriptor(Kind.DURATION, tp, bits=64)
    if issubclass(tp, Enum):
        return TypeDescriptor(Kind.UNSUPPORTED, tp)
    if issubclass(tp, bool):
        return TypeDescriptor(Kind.BOOL, tp)
    if issubclass(tp, datetime):
        return TypeDescriptor(Kind.TIME, tp)
    if issubclass(tp, FixedInt):
        return TypeDescriptor(Kind.INT if tp.signed else Kind.UINT, tp, bits=tp.bits)
    if issubclass(tp, int):
        return TypeDescriptor(Kind.INT, tp, bits=64)
    if issubclass(tp, FixedFloat):
        return TypeDescriptor(Kind.FLOAT, tp, bits=tp.bits)
    if issubclass(tp, float):
        return TypeDescriptor(Kind.FLOAT, tp, bits=64)
    if issubclass(tp, str):
        return TypeDescriptor(Kind.STRING, tp)
    if is_struct(tp):
        return TypeDescriptor(Kind.STRUCT, tp)
    return TypeDescriptor(Kind.UNSUPPORTED, tp)


def describe_struct(tp: Any, tag_name: str = DEFAULT_TAG) -> StructDescriptor:
    """Build a :class:`StructDescriptor` for a dataclass or pydantic model.

    Raises:
        NotStruct: if ``tp`` is neither.
    """
    if not is_struct(tp):
        raise NotStruct(f"cannot unmarshal non-struct type {type_name(tp)}")

    if issubclass(tp, BaseModel):
        return _describe_model(tp, tag_name)
    return _describe_dataclass(tp, tag_name)


def _describe_dataclass(tp: type, tag_name: str) -> StructDescriptor:
    hints = _dataclass_hints(tp)

    fields = []
    for f in dataclasses.fields(tp):
        if not f.init:
            continue
        tag = f.metadata.get(tag_name) or ""
        default = _MISSING if f.default is dataclasses.MISSING else f.default
        default_factory = (
            None if f.default_factory is dataclasses.MISSING else f.default_factory
        )
        hint = hints.get(f.name, f.type)
        if isinstance(hint, str):
            # untagged fields with a default never need their type
            required = bool(tag) or (default is _MISSING and default_factory is None)
            hint = _resolve_annotation(tp, f.name, hint, strict=required)
        fields.append(
            FieldDescriptor(
                name=f.name,
                type=describe_type(hint),
                tag=tag,
                default=default,
                default_factory=default_factory,
            )
        )
    frozen = tp.__dataclass_params__.frozen  # type: ignore[attr-defined]
    return StructDescriptor(py_type=tp, fields=fields, frozen=frozen)


def _class_namespace(tp: type) -> Dict[str, Any]:
    namespace = dict(vars(tp))
    namespace.setdefault(tp.__name__, tp)
    return namespace


def _dataclass_hints(tp: type) -> Dict[str, Any]:
    """Resolved hints of every field, or ``{}`` if any of them dangles.

    Fields left out are resolved one at a time by :func:`_resolve_annotation`.
    """
    try:
        return typing.get_type_hints(
            tp, localns=_class_namespace(tp), include_extras=True
        )
    except NameError:
        return {}


def _resolve_annotation(tp: type, name: str, annotation: str, *, strict: bool) -> Any:
    """Evaluate one string annotation in the namespace of the class declaring it.

    Raises:
        UnsupportedType: if ``strict`` and the annotation names something that
            is not reachable from the module or the class, typically a class
            defined inside a function.
    """
    owner = next(
        (base for base in tp.__mro__ if name in inspect.get_annotations(base)),
        tp,
    )
    module = sys.modules.get(owner.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    try:
        return eval(annotation, globalns, _class_namespace(owner))  # noqa: S307
    except NameError as e:
        if not strict:
            return annotation
        raise UnsupportedType(
            f"cannot resolve annotation {annotation!r} of field "
            f"{type_name(tp)}.{name} ({e}); declare the referenced type at "
            f"module level"
        ) from e


def _describe_model(tp: type[BaseModel], tag_name: str) -> StructDescriptor:
    fields = []
    for name, info in tp.model_fields.items():
        extra = info.json_schema_extra
        if not isinstance(extra, dict):
            extra = {}
        fields.append(
            FieldDescriptor(
                name=name,
                type=describe_type(info.annotation),
                tag=str(extra.get(tag_name) or ""),
                default=_MISSING if info.default is PydanticUndefined else info.default,
                default_factory=info.default_factory,  # type: ignore[arg-type]
            )
        )
    frozen = bool(tp.model_config.get("frozen", False))
    return StructDescriptor(py_type=tp, fields=fields, is_pydantic=True, frozen=frozen)


def zero_value(td: TypeDescriptor) -> Any:
    """The value a field of this kind holds before anything is assigned."""
    if td.kind is Kind.STRING:
        return td.py_type("")
    if td.kind is Kind.BOOL:
        return False
    if td.kind in (Kind.INT, Kind.UINT):
        return td.py_type(0)
    if td.kind is Kind.FLOAT:
        return td.py_type(0.0)
    if td.kind is Kind.DURATION:
        return Duration(0) if issubclass(td.py_type, Duration) else timedelta(0)
    if td.kind is Kind.SEQUENCE:
        return td.container()
    if td.kind is Kind.TIME:
        return datetime.min
    if td.kind is Kind.STRUCT:
        return describe_struct(td.py_type).build({})
    return None


def env_field(tag: str, *, tag_name: str = DEFAULT_TAG, **kwargs: Any) -> Any:
    """``dataclasses.field`` carrying an env tag in its metadata.

    Example:
        @dataclass
        class CassandraConfig:
            hosts: List[str] = env_field("CASSANDRA_HOSTS")
            port: int = env_field("CASSANDRA_PORT")
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[tag_name] = tag
    return dataclasses.field(metadata=metadata, **kwargs)
