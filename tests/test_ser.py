import collections
import dataclasses
import enum
import io
from typing import BinaryIO, NewType

import attrs
import pytest

import propcodec
from propcodec import Error, Formatter
from propcodec.shape import IntRange


class Enum(enum.Enum):
    U0 = "u0"
    U1 = "u1"


class Planet(enum.Enum):
    EARTH = (5.976e24, 6.37814e6)


@attrs.define
class Value:
    unused0: str = propcodec.field(key="unused_0")
    unused1: str | None
    unused2: propcodec.I32
    unused3: propcodec.U32
    unused4: float
    unused5: Enum


@dataclasses.dataclass
class Server:
    host: str
    port: propcodec.U8 = 80


class ColonFormatter(Formatter):
    def end_key(self, writer: BinaryIO):
        writer.write(b": ")


class YesNoFormatter(Formatter):
    def write_bool(self, writer: BinaryIO, value: bool):
        writer.write(b"yes" if value else b"no")


class HexFormatter(Formatter):
    def write_int(self, writer: BinaryIO, value: int, width: IntRange | None = None):
        if width is not None and width.bits == 8:
            writer.write(f"0x{value:02x}".encode("ascii"))
        else:
            super().write_int(writer, value, width)


@attrs.define
class Pixel:
    red: propcodec.U8
    alpha: propcodec.U8 | None
    count: int
    offset: propcodec.I64


def test_to_string():
    v = Value(
        unused0="unused 0",
        unused1=None,
        unused2=2,
        unused3=3,
        unused4=4.4,
        unused5=Enum.U0,
    )

    assert (
        propcodec.to_string(v)
        == "unused_0=unused 0\nunused1=\nunused2=2\nunused3=3\nunused4=4.4\nunused5=u0"
    )


def test_map_order():
    assert propcodec.dumps({"a": 1, "b": "x"}) == "a=1\nb=x"
    assert propcodec.dumps({"b": "x", "a": 1}) == "b=x\na=1"


def test_empty_map():
    assert propcodec.dumps({}) == ""


def test_scalars():
    props = {"t": True, "f": False, "i": -12, "x": 0.1, "n": None, "e": Enum.U1}

    assert propcodec.dumps(props) == "t=true\nf=false\ni=-12\nx=0.1\nn=\ne=u1"


def test_enum_keys():
    assert propcodec.dumps({Enum.U0: 1}) == "u0=1"


def test_to_bytes():
    assert propcodec.to_bytes({"a": "あ"}) == "a=あ".encode("utf-8")


def test_dump():
    with io.BytesIO() as f:
        propcodec.dump(Server(host="localhost"), f)
        assert f.getvalue() == b"host=localhost\nport=80"


def test_formatter():
    props = {"a": True, "b": "x"}

    assert propcodec.dumps(props, ColonFormatter()) == "a: true\nb: x"
    assert propcodec.dumps(props, YesNoFormatter()) == "a=yes\nb=x"


def test_formatter_int_width():
    pixel = Pixel(red=255, alpha=16, count=3, offset=-1)

    assert (
        propcodec.dumps(pixel, HexFormatter())
        == "red=0xff\nalpha=0x10\ncount=3\noffset=-1"
    )

    # Untyped values have no declared width.
    assert propcodec.dumps({"red": 255}, HexFormatter()) == "red=255"


def test_formatter_output_reads_back():
    text = propcodec.dumps({"a": "1", "b": "x"}, ColonFormatter())

    assert propcodec.loads(text, dict[str, str]) == {"a": "1", "b": "x"}


def test_key_must_be_string():
    with pytest.raises(Error, match="key must be a string"):
        propcodec.dumps({1: "a"})


def test_int_width():
    with pytest.raises(Error, match="invalid value: integer `300`, expected u8"):
        propcodec.dumps(Server(host="localhost", port=300))


Point = collections.namedtuple("Point", ["x", "y"])


@pytest.mark.parametrize(
    "value, shape",
    [
        ({"a": [1, 2]}, "seq"),
        ({"a": {1, 2}}, "seq"),
        ({"a": (1, 2)}, "tuple"),
        ({"a": Point(1, 2)}, "tuple struct"),
        ({"a": b"x"}, "bytes"),
        ({"a": {"b": 1}}, "nested map"),
        ({"a": Server(host="localhost")}, "nested struct"),
        ({"a": Planet.EARTH}, "tuple variant"),
        ([1, 2], "seq"),
        (b"x", "bytes"),
    ],
)
def test_unsupported(value, shape):
    with pytest.raises(Error, match=f"unsupported {shape}"):
        propcodec.dumps(value)


def test_unsupported_record_fields():
    UserId = NewType("UserId", int)

    @attrs.define
    class User:
        id: UserId
        initial: propcodec.Char

    with pytest.raises(Error, match="unsupported newtype struct"):
        propcodec.dumps(User(id=UserId(1), initial="a"))


def test_writer_failure():
    class Broken(io.RawIOBase):
        def writable(self):
            return True

        def write(self, b):
            raise OSError("disk full")

    with pytest.raises(Error, match="disk full"):
        propcodec.to_writer(Broken(), {"a": 1})
