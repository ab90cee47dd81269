"""Tests for type and struct descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Annotated, List, Optional, Tuple

import pytest
from pydantic import BaseModel, ConfigDict, Field

import envbind
from envbind.core.descriptors import (
    FieldDescriptor,
    Kind,
    describe_struct,
    describe_type,
    env_field,
    implements_unmarshaler,
    zero_value,
)
from envbind.core.errors import NotStruct, UnsupportedType
from envbind.core.kinds import Duration, Float32, Int16, UInt8
from envbind.helpers.readers import MappingEnvReader


@dataclass
class Inner:
    name: str = env_field("NAME")


@dataclass
class Tagged:
    host: str = env_field("HOST")
    ports: List[int] = env_field("PORTS")
    inner: Inner = env_field("INNER_")
    maybe: Optional[Inner] = env_field("MAYBE_", default=None)
    untagged: int = 7
    scratch: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Frozen:
    value: int = env_field("VALUE", default=0)


class Model(BaseModel):
    host: str = Field(json_schema_extra={"env": "HOST"})
    retries: UInt8 = Field(default=UInt8(3), json_schema_extra={"env": "RETRIES"})
    note: str = "plain"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)
    host: str = Field(default="", json_schema_extra={"env": "HOST"})


class SelfLoading:
    def unmarshal_env(self, reader) -> None:
        pass


@pytest.mark.unit
def test_describe_scalar_kinds() -> None:
    """Should map Python hints onto parser kinds and widths."""
    assert describe_type(str).kind is Kind.STRING
    assert describe_type(bool).kind is Kind.BOOL
    assert describe_type(int).kind is Kind.INT
    assert describe_type(int).bits == 64
    assert describe_type(Int16).bits == 16
    assert describe_type(UInt8).kind is Kind.UINT
    assert describe_type(float).bits == 64
    assert describe_type(Float32).bits == 32
    assert describe_type(Duration).kind is Kind.DURATION
    assert describe_type(timedelta).kind is Kind.DURATION
    assert describe_type(datetime).kind is Kind.TIME
    assert describe_type(Annotated[int, "meta"]).kind is Kind.INT
    assert describe_type(dict).kind is Kind.UNSUPPORTED


@pytest.mark.unit
def test_describe_pointer_and_sequence() -> None:
    """Should expose element descriptors for Optional and sequences."""
    td = describe_type(Optional[List[UInt8]])
    assert td.kind is Kind.POINTER
    assert td.elem.kind is Kind.SEQUENCE
    assert td.elem.elem.kind is Kind.UINT

    td = describe_type(Tuple[str, ...])
    assert td.kind is Kind.SEQUENCE
    assert td.container is tuple

    assert describe_type(Optional[Inner]).elem.kind is Kind.STRUCT


@pytest.mark.unit
def test_describe_dataclass_fields_in_order() -> None:
    """Should list init fields in declaration order with their tags."""
    desc = describe_struct(Tagged)
    assert [f.name for f in desc.fields] == [
        "host",
        "ports",
        "inner",
        "maybe",
        "untagged",
        "scratch",
    ]
    assert [f.tag for f in desc.fields] == ["HOST", "PORTS", "INNER_", "MAYBE_", "", ""]
    assert desc.fields[2].type.kind is Kind.STRUCT
    assert desc.frozen is False
    assert describe_struct(Frozen).frozen is True


@pytest.mark.unit
def test_describe_pydantic_model() -> None:
    """Should read tags from json_schema_extra on pydantic fields."""
    desc = describe_struct(Model)
    assert desc.is_pydantic
    assert [(f.name, f.tag) for f in desc.fields] == [
        ("host", "HOST"),
        ("retries", "RETRIES"),
        ("note", ""),
    ]
    assert desc.fields[1].type.kind is Kind.UINT
    assert describe_struct(FrozenModel).frozen is True


@pytest.mark.unit
def test_custom_tag_name() -> None:
    """Should look tags up under the requested metadata key."""

    @dataclass
    class Alt:
        a: str = env_field("A_VAR", tag_name="secret")

    assert describe_struct(Alt, tag_name="secret").fields[0].tag == "A_VAR"
    assert describe_struct(Alt).fields[0].tag == ""


@pytest.mark.unit
def test_describe_struct_rejects_non_structs() -> None:
    """Should raise NotStruct for anything but dataclasses and models."""
    for tp in [int, str, dict, SelfLoading]:
        with pytest.raises(NotStruct):
            describe_struct(tp)


@pytest.mark.unit
def test_zero_values() -> None:
    """Should give every kind a usable empty value."""
    assert zero_value(describe_type(str)) == ""
    assert zero_value(describe_type(UInt8)) == 0
    assert type(zero_value(describe_type(UInt8))) is UInt8
    assert zero_value(describe_type(List[int])) == []
    assert zero_value(describe_type(Tuple[int, ...])) == ()
    assert zero_value(describe_type(Optional[int])) is None
    assert zero_value(describe_type(Duration)) == Duration(0)
    assert zero_value(describe_type(timedelta)) == timedelta(0)
    assert zero_value(describe_type(Inner)) == Inner(name="")


@pytest.mark.unit
def test_build_keeps_defaults_for_missing_values() -> None:
    """Should fill untagged fields from defaults, or zero values without one."""
    obj = describe_struct(Tagged).build({"host": "db"})
    assert obj.host == "db"
    assert obj.ports == []
    assert obj.inner == Inner(name="")
    assert obj.maybe is None
    assert obj.untagged == 7
    assert obj.scratch == []

    model = describe_struct(Model).build({})
    assert model.host == ""
    assert model.retries == 3
    assert model.note == "plain"


@pytest.mark.unit
def test_implements_unmarshaler() -> None:
    """Should detect the unmarshal_env hook."""
    assert implements_unmarshaler(SelfLoading)
    assert not implements_unmarshaler(Tagged)


@pytest.mark.unit
def test_field_descriptor_defaults() -> None:
    """Should tell a field without a default apart from one defaulting to None."""
    td = describe_type(int)
    assert not FieldDescriptor(name="port", type=td).has_default
    assert FieldDescriptor(name="port", type=td, default=None).has_default
    assert FieldDescriptor(name="ports", type=td, default_factory=list).has_default

    assert not describe_struct(Inner).fields[0].has_default
    maybe = describe_struct(Tagged).fields[3]
    assert maybe.has_default and maybe.default is None
    assert describe_struct(Tagged).fields[5].default_factory is list


@pytest.mark.unit
def test_string_annotations_of_local_classes() -> None:
    """Should resolve postponed hints of a class declared inside a function."""

    @dataclass
    class Local:
        inner: Inner = env_field("IN_")
        port: UInt8 = env_field("PORT")

    desc = describe_struct(Local)
    assert [f.type.kind for f in desc.fields] == [Kind.STRUCT, Kind.UINT]

    obj = envbind.load(Local, MappingEnvReader({"IN_NAME": "x", "PORT": "5"}))
    assert obj == Local(inner=Inner(name="x"), port=UInt8(5))


@pytest.mark.unit
def test_unresolvable_annotation_is_reported() -> None:
    """Should name a dangling forward reference instead of misreading the field."""

    @dataclass
    class LocalInner:
        b: int = env_field("B")

    @dataclass
    class Outer:
        inner: LocalInner = env_field("IN_")
        port: int = env_field("PORT")

    with pytest.raises(UnsupportedType) as exc:
        describe_struct(Outer)
    assert "'LocalInner'" in str(exc.value)
    assert "Outer.inner" in str(exc.value)

    with pytest.raises(UnsupportedType):
        envbind.load(Outer, MappingEnvReader({"IN_B": "3", "PORT": "5"}))


@pytest.mark.unit
def test_unresolvable_untagged_field_with_default_is_ignored() -> None:
    """Should still load when only an untagged, defaulted field dangles."""

    @dataclass
    class LocalInner:
        b: int = env_field("B")

    @dataclass
    class Loose:
        port: int = env_field("PORT")
        cache: Optional[LocalInner] = None

    kinds = [f.type.kind for f in describe_struct(Loose).fields]
    assert kinds == [Kind.INT, Kind.UNSUPPORTED]
    assert envbind.load(Loose, MappingEnvReader({"PORT": "5"})) == Loose(port=5)
