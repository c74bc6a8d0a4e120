import dataclasses
import enum
from typing import Any, NamedTuple, NewType, Optional

import attrs
import pytest

import propcodec
from propcodec.error import Error
from propcodec.shape import KEY_METADATA, Kind, shape_of


class Color(enum.Enum):
    RED = "red"
    GREEN = "green"


class Planet(enum.Enum):
    EARTH = (5.976e24, 6.37814e6)


class Level(enum.IntEnum):
    LOW = 1
    HIGH = 2


UserId = NewType("UserId", int)


class Point(NamedTuple):
    x: int
    y: int


@attrs.define
class Config:
    name: str
    port: propcodec.U16
    debug: bool = False
    user: str | None = None
    alias: str = propcodec.field(key="alias-name", default="x")


@dataclasses.dataclass
class Settings:
    tempo: float
    projectname: Optional[str]
    outfile: str = dataclasses.field(default="out.wav", metadata={KEY_METADATA: "out"})


@pytest.mark.parametrize(
    "tp, kind",
    [
        (bool, Kind.BOOL),
        (int, Kind.INT),
        (propcodec.I8, Kind.INT),
        (float, Kind.FLOAT),
        (str, Kind.STR),
        (Any, Kind.ANY),
        (None, Kind.UNIT),
        (type(None), Kind.UNIT),
        (str | None, Kind.OPTION),
        (Optional[int], Kind.OPTION),
        (dict[str, int], Kind.MAP),
        (dict, Kind.MAP),
        (Color, Kind.ENUM),
        (Level, Kind.ENUM),
        (Config, Kind.RECORD),
        (Settings, Kind.RECORD),
        (list[int], Kind.SEQ),
        (set, Kind.SEQ),
        (tuple[int, int], Kind.TUPLE),
        (Point, Kind.TUPLE_STRUCT),
        (bytes, Kind.BYTES),
        (propcodec.Char, Kind.CHAR),
        (UserId, Kind.NEWTYPE),
    ],
)
def test_shape_kind(tp, kind):
    assert shape_of(tp).kind is kind


def test_shape_union():
    with pytest.raises(Error, match="unsupported union"):
        shape_of(int | str)


def test_shape_int_range():
    width = shape_of(propcodec.U8).int_range

    assert width.name == "u8"
    assert width.expected == "unsigned integer"
    assert width.contains(255)
    assert not width.contains(256)
    assert not width.contains(-1)

    width = shape_of(propcodec.I8).int_range
    assert width.expected == "signed integer"
    assert width.contains(-128)
    assert not width.contains(128)

    # Plain ints are unbounded.
    assert shape_of(int).int_range.contains(2**100)


def test_shape_map():
    shape = shape_of(dict[str, int])

    assert shape.key.kind is Kind.STR
    assert shape.value.kind is Kind.INT

    # Untyped maps have string keys and raw values.
    shape = shape_of(dict)
    assert shape.key.kind is Kind.STR
    assert shape.value.kind is Kind.ANY


def test_shape_attrs_record():
    shape = shape_of(Config)

    assert [f.key for f in shape.fields] == ["name", "port", "debug", "user", "alias-name"]
    assert [f.required for f in shape.fields] == [True, True, False, False, False]

    port = shape.fields[1]
    assert port.shape.int_range.name == "u16"


def test_shape_dataclass_record():
    shape = shape_of(Settings)

    assert [f.key for f in shape.fields] == ["tempo", "projectname", "out"]

    # Optional fields without a default are not required.
    assert [f.required for f in shape.fields] == [True, False, False]


def test_shape_nested_record():
    @attrs.define
    class Outer:
        inner: Config

    field = shape_of(Outer).fields[0]

    assert field.shape.kind is Kind.RECORD
    assert field.shape.nested
    assert field.shape.fields == ()


def test_shape_enum_variants():
    shape = shape_of(Color)
    assert [v.name for v in shape.variants] == ["red", "green"]
    assert shape.variant("red").member is Color.RED
    assert shape.variant("RED") is None

    # Non-string values are named after the member.
    assert shape_of(Level).variant("LOW").member is Level.LOW

    # Tuple values carry data.
    assert shape_of(Planet).variant("EARTH").payload == "tuple variant"
