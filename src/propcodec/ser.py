"""Write typed values as properties text.

Rendering is delegated to a Formatter, so the structure of the output
(one entry per line) stays the same no matter how the values themselves look.
"""

import collections.abc
import dataclasses
import enum
import io
import logging
from typing import Any, BinaryIO

import attrs

from .error import Error
from .shape import IntRange, Kind, Shape, check_supported, shape_of

_log = logging.getLogger(__name__)


class Formatter:
    """How values and delimiters are written.

    Every method writes to a binary writer.
    Subclass and override methods to change how values are rendered.
    """

    def write_null(self, writer: BinaryIO):
        """Write an absent value. Nothing is written by default."""

    def write_bool(self, writer: BinaryIO, value: bool):
        writer.write(b"true" if value else b"false")

    def write_int(self, writer: BinaryIO, value: int, width: IntRange | None = None):
        """Write an integer.

        Args:
            writer: The writer to write to.
            value: The integer.
            width: The declared width of the integer (i.e. u8 or i64),
                or None if the value was not declared with a type.
        """

        writer.write(str(int(value)).encode("ascii"))

    def write_float(self, writer: BinaryIO, value: float):
        # repr() is the shortest text that reads back as the same float.
        writer.write(repr(float(value)).encode("ascii"))

    def write_str(self, writer: BinaryIO, value: str):
        writer.write(value.encode("utf-8"))

    def begin_key(self, writer: BinaryIO):
        """Write before every key except the first."""

        writer.write(b"\n")

    def end_key(self, writer: BinaryIO):
        """Write after every key."""

        writer.write(b"=")

    def begin_value(self, writer: BinaryIO):
        pass

    def end_value(self, writer: BinaryIO):
        pass


class CompactFormatter(Formatter):
    """The default formatter: `key=value` entries separated by newlines, with no padding."""


class Serializer:
    """A properties writer.

    The shape of the output is driven by the values themselves:
    maps and records become one entry per line, everything else is written as a single value.

    Attributes:
        writer: The binary writer to write to.
        formatter: How values and delimiters are rendered.
        depth: How many maps or records the current value is inside.

    Args:
        writer: See above.
        formatter: See above. Defaults to a CompactFormatter.
    """

    writer: BinaryIO
    formatter: Formatter
    depth: int

    def __init__(self, writer: BinaryIO, formatter: Formatter | None = None):
        self.writer = writer
        self.formatter = formatter or CompactFormatter()
        self.depth = 0

    def serialize(self, value: Any, shape: Shape | None = None):
        """Write a value.

        Args:
            value: The value to write.
            shape: The declared shape of the value, if known.

        Raises:
            Error: The value (or a part of it) can't be expressed as properties.
        """

        match value:
            case None:
                self.formatter.write_null(self.writer)
            case bool():
                self.formatter.write_bool(self.writer, value)
            # Enums go first, as IntEnum and StrEnum members are also ints and strings.
            case enum.Enum():
                self.serialize_enum(value)
            case int():
                self.formatter.write_int(self.writer, value, _int_range(shape))
            case float():
                self.formatter.write_float(self.writer, value)
            case str():
                self.formatter.write_str(self.writer, value)
            case bytes() | bytearray() | memoryview():
                raise Error.unsupported("bytes")
            case _ if attrs.has(type(value)) or dataclasses.is_dataclass(value):
                self.serialize_record(value)
            case collections.abc.Mapping():
                self.serialize_map(value)
            case tuple():
                raise Error.unsupported(
                    "tuple struct" if hasattr(value, "_fields") else "tuple"
                )
            case collections.abc.Iterable():
                raise Error.unsupported("seq")
            case _:
                raise Error.unsupported(f"type {type(value).__qualname__}")

    def serialize_enum(self, value: enum.Enum):
        shape = shape_of(type(value))

        for variant in shape.variants:
            if variant.member is value:
                if variant.payload is not None:
                    raise Error.unsupported(variant.payload)

                self.formatter.write_str(self.writer, variant.name)
                return

        # Aliases are not iterated over, but resolve to their canonical member anyway.
        raise Error.unknown_variant(str(value), [v.name for v in shape.variants])

    def serialize_map(self, value: collections.abc.Mapping):
        if self.depth:
            raise Error.unsupported("nested map")

        compound = Compound(self)
        for k, v in value.items():
            compound.serialize_entry(k, v)

        compound.end()

    def serialize_record(self, value: Any):
        if self.depth:
            raise Error.unsupported("nested struct")

        shape = shape_of(type(value))

        compound = Compound(self)
        for field in shape.fields:
            compound.serialize_entry(field.key, getattr(value, field.attr), field.shape)

        compound.end()


class Compound:
    """Writes the entries of a map or record.

    Attributes:
        ser: The serializer to write with.
        first: Whether or not the next entry is the first one, which has no delimiter before it.
    """

    ser: Serializer
    first: bool

    def __init__(self, ser: Serializer):
        self.ser = ser
        self.first = True

    def serialize_key(self, key: Any):
        """Write a key and the separator after it.

        Raises:
            Error: The key is not a string or enum member.
        """

        ser = self.ser

        if self.first:
            self.first = False
        else:
            ser.formatter.begin_key(ser.writer)

        match key:
            case enum.Enum():
                ser.serialize_enum(key)
            case str():
                ser.formatter.write_str(ser.writer, key)
            case _:
                raise Error.custom("key must be a string")

        ser.formatter.end_key(ser.writer)

    def serialize_value(self, value: Any, shape: Shape | None = None):
        """Write a value.

        Args:
            value: The value to write.
            shape: If not None, the declared shape of the value, which is checked against it.
        """

        ser = self.ser

        if shape is not None:
            _check(value, shape)

        ser.formatter.begin_value(ser.writer)

        ser.depth += 1
        try:
            ser.serialize(value, shape)
        finally:
            ser.depth -= 1

        ser.formatter.end_value(ser.writer)

    def serialize_entry(self, key: Any, value: Any, shape: Shape | None = None):
        self.serialize_key(key)
        self.serialize_value(value, shape)

    def end(self):
        pass


def _int_range(shape: Shape | None) -> IntRange | None:
    if shape is not None and shape.kind is Kind.OPTION:
        shape = shape.inner

    if shape is None or shape.kind is not Kind.INT:
        return None

    return shape.int_range


def _check(value: Any, shape: Shape):
    check_supported(shape)

    if shape.kind is Kind.OPTION:
        assert shape.inner is not None
        shape = shape.inner

    width = shape.int_range
    if (
        shape.kind is Kind.INT
        and width is not None
        and isinstance(value, int)
        and not width.contains(value)
    ):
        raise Error.invalid_value(f"integer `{value}`", width.name)


def to_writer(writer: BinaryIO, value: Any, formatter: Formatter | None = None):
    """Write a value as properties to a binary writer.

    Args:
        writer: The writer to write to.
        value: The value to write, usually an attrs class instance or dict.
        formatter: How to render values. Defaults to a CompactFormatter.

    Raises:
        Error: The value can't be written as properties, or the writer failed.
    """

    ser = Serializer(writer, formatter)

    try:
        ser.serialize(value)
    except OSError as e:
        raise Error.custom(e) from e

    _log.debug("wrote %s", type(value).__qualname__)


def to_bytes(value: Any, formatter: Formatter | None = None) -> bytes:
    """Write a value as properties encoded in UTF-8.

    See to_writer().
    """

    with io.BytesIO() as buf:
        to_writer(buf, value, formatter)
        return buf.getvalue()


def to_string(value: Any, formatter: Formatter | None = None) -> str:
    """Write a value as properties text.

    See to_writer().
    """

    return to_bytes(value, formatter).decode("utf-8")


def dumps(value: Any, formatter: Formatter | None = None) -> str:
    """Serialize a value as properties text. See to_writer()."""

    return to_string(value, formatter)


def dump(value: Any, file: BinaryIO, formatter: Formatter | None = None):
    """Serialize a value as properties to a binary file. See to_writer()."""

    to_writer(file, value, formatter)
