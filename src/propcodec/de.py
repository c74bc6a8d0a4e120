"""Read typed values from properties text.

The document is read in a single forward pass with one byte of lookahead.
Entries are extracted one at a time into a reusable token buffer and converted
to whatever type the target asks for, so the whole document is never held in memory as a map.
"""

import enum
import logging
import re
from typing import Any, BinaryIO, Self, TypeVar

from .error import Error
from .read import Read, SliceRead, StrRead
from .shape import UNSUPPORTED, IntRange, Kind, Shape, check_supported, shape_of

_log = logging.getLogger(__name__)

T = TypeVar("T")

_WHITESPACE = b" \n\t\r"
_TERMINATORS = b"\n\t\r"
_COMMENTS = b"#!"
_SEPARATORS = b"=:"
_SPACE = ord(" ")

# Only plain ASCII numbers: no digit separators, padding or non-ASCII digits.
RE_INT = re.compile(r"[+-]?[0-9]+")
RE_FLOAT = re.compile(
    r"[+-]?(inf|infinity|nan|([0-9]+\.?[0-9]*|\.[0-9]+)(e[+-]?[0-9]+)?)",
    flags=re.IGNORECASE,
)


class _End(enum.Enum):
    END = enum.auto()


# Returned by MapAccess.next_key() when there are no more entries.
END = _End.END


class Deserializer:
    """A properties reader over a byte cursor.

    A deserializer must only be driven by one decode at a time:
    the cursor and token buffer are shared by every nested call.

    Attributes:
        read: The cursor over the source.
        scratch: The text of the most recently extracted key or value.

    Args:
        read: The cursor to read from.
    """

    read: Read
    scratch: bytearray

    def __init__(self, read: Read):
        self.read = read
        self.scratch = bytearray()

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> Self:
        return cls(SliceRead(data))

    @classmethod
    def from_str(cls, text: str) -> Self:
        return cls(StrRead(text))

    def end(self):
        """Check that the source has been fully consumed.

        Raises:
            Error: There are bytes left over.
        """

        if self.read.peek() is not None:
            raise Error.trailing_data(self.read.byte_offset())

    def parse_whitespace(self) -> int | None:
        """Consume whitespace and return the first other byte (consumed), or None at the end."""

        while (ch := self.read.next()) is not None:
            if ch not in _WHITESPACE:
                return ch

        return None

    def parse_comment(self) -> int | None:
        """Consume whitespace and comment lines and return the first byte of real content.

        Returns:
            The byte (already consumed), or None at the end of input.
        """

        while (ch := self.parse_whitespace()) is not None:
            if ch not in _COMMENTS:
                return ch

            self.skip_line()

        return None

    def skip_line(self):
        """Consume the rest of the current line, including its terminator."""

        while (ch := self.read.next()) is not None and ch not in _TERMINATORS:
            pass

    def parse_key(self) -> bool:
        """Extract the next key into the token buffer.

        Leading whitespace and comments are skipped, then bytes are taken verbatim up to
        the first separator ('=' or ':'), which is consumed but not kept.
        Spaces inside a key are kept, but a key continues across line breaks and comments:
        `garbage\\na=1` has the key `garbagea`.

        Returns:
            Whether or not a key was found. At the end of input this is False, even if a
            separator-less key was partially read.
        """

        self.scratch.clear()
        ch = self.parse_comment()

        while ch is not None:
            if ch in _SEPARATORS:
                return True

            if ch in _COMMENTS:
                self.skip_line()
                ch = self.parse_comment()
            elif ch in _TERMINATORS:
                ch = self.parse_comment()
            else:
                self.scratch.append(ch)
                ch = self.read.next()

        return False

    def parse_value(self):
        """Extract the rest of the line into the token buffer.

        A single space after the separator is not part of the value.
        """

        if self.read.peek() == _SPACE:
            self.read.discard()

        self.scratch.clear()

        while (ch := self.read.next()) is not None and ch not in _TERMINATORS:
            self.scratch.append(ch)

    def parse_str(self) -> str:
        """The token buffer as text.

        Raises:
            Error: The token is not valid UTF-8.
        """

        try:
            return self.scratch.decode("utf-8")
        except UnicodeDecodeError:
            raise Error.custom(
                f"invalid utf-8 sequence in {bytes(self.scratch)!r}"
            ) from None

    def deserialize(self, shape: Shape) -> Any:
        """Convert the current token (or, for maps and records, the rest of the source).

        Args:
            shape: The shape of the value to read.

        Returns:
            The value.

        Raises:
            Error: The value could not be read as the shape.
        """

        match shape.kind:
            case Kind.BOOL:
                return self.deserialize_bool()
            case Kind.INT:
                return self.deserialize_int(shape.int_range or IntRange("int"))
            case Kind.FLOAT:
                return self.deserialize_float()
            case Kind.STR:
                return self.deserialize_str()
            case Kind.ANY:
                return self.parse_str()
            case Kind.OPTION:
                return self.deserialize_option(shape)
            case Kind.UNIT:
                return self.deserialize_unit()
            case Kind.ENUM:
                return self.deserialize_enum(shape)
            case Kind.MAP:
                return self.deserialize_map(shape)
            case Kind.RECORD:
                return self.deserialize_record(shape)

        assert shape.kind in UNSUPPORTED
        raise Error.unsupported(shape.kind.value)

    def deserialize_bool(self) -> bool:
        text = self.parse_str()

        match text:
            case "true":
                return True
            case "false":
                return False

        raise Error.invalid_value(f'string "{text}"', "boolean")

    def deserialize_int(self, width: IntRange) -> int:
        text = self.parse_str()

        if not RE_INT.fullmatch(text) or (not width.signed and text.startswith("-")):
            raise Error.invalid_value(f'string "{text}"', width.expected)

        value = int(text)

        if width.bits is not None:
            # Anything outside 64 bits doesn't parse as an integer at all.
            if not IntRange(width.name, width.signed, 64).contains(value):
                raise Error.invalid_value(f'string "{text}"', width.expected)

            if not width.contains(value):
                raise Error.invalid_value(f"integer `{value}`", width.name)

        return value

    def deserialize_float(self) -> float:
        text = self.parse_str()

        if not RE_FLOAT.fullmatch(text):
            raise Error.invalid_value(f'string "{text}"', "float")

        return float(text)

    def deserialize_str(self) -> str:
        if not self.scratch:
            raise Error.invalid_length(0, "length > 0")

        return self.parse_str()

    def deserialize_option(self, shape: Shape) -> Any:
        # An empty token means the value is absent.
        if not self.scratch:
            return None

        assert shape.inner is not None
        return self.deserialize(shape.inner)

    def deserialize_unit(self) -> None:
        if self.scratch:
            raise Error.invalid_type(f'string "{self.parse_str()}"', "unit")

        return None

    def deserialize_enum(self, shape: Shape) -> enum.Enum:
        """Read a unit variant by name.

        Raises:
            Error: The name is empty or unknown, or the variant carries data.
        """

        if not self.scratch:
            raise Error.invalid_length(0, "length > 0")

        name = self.parse_str()

        variant = shape.variant(name)
        if variant is None:
            raise Error.unknown_variant(name, [v.name for v in shape.variants])

        if variant.payload is not None:
            raise Error.invalid_type("unit variant", variant.payload)

        return variant.member

    def deserialize_map(self, shape: Shape) -> dict:
        if shape.nested:
            raise Error.unsupported("nested map")

        assert shape.key is not None and shape.value is not None

        check_supported(shape.key)
        check_supported(shape.value)

        access = MapAccess(self)
        entries = {}

        while (key := access.next_key(shape.key)) is not END:
            entries[key] = access.next_value(shape.value)

        _log.debug("read %d entries into %s", len(entries), shape.name)

        return entries

    def deserialize_record(self, shape: Shape) -> Any:
        if shape.nested:
            raise Error.unsupported("nested struct")

        for field in shape.fields:
            check_supported(field.shape)

        fields = {f.key: f for f in shape.fields}
        values: dict[str, Any] = {}

        access = MapAccess(self)
        key_shape = Shape(Kind.STR, "string")

        while (key := access.next_key(key_shape)) is not END:
            field = fields.get(key)

            if field is None:
                _log.debug("ignoring unknown key %r for %s", key, shape.name)
                access.skip_value()
                continue

            if field.arg in values:
                raise Error.duplicate_field(field.key)

            values[field.arg] = access.next_value(field.shape)

        for field in shape.fields:
            if field.arg in values or field.default:
                continue

            if field.required:
                raise Error.missing_field(field.key)

            values[field.arg] = None

        _log.debug("read %d fields into %s", len(values), shape.name)

        return shape.tp(**values)


class MapAccess:
    """Hands out the entries of a map one at a time.

    Each call to next_key() must be followed by next_value() or skip_value()
    before the next key is requested.

    Attributes:
        de: The deserializer the entries are read from.
    """

    de: Deserializer

    def __init__(self, de: Deserializer):
        self.de = de

    def next_key(self, shape: Shape) -> Any:
        """Read the next key.

        Returns:
            The key, or END if there are no more entries.
        """

        if not self.de.parse_key():
            return END

        return self.de.deserialize(shape)

    def next_value(self, shape: Shape) -> Any:
        """Read the value of the current entry."""

        self.de.parse_value()
        return self.de.deserialize(shape)

    def skip_value(self):
        """Consume the value of the current entry without converting it."""

        self.de.parse_value()


def _from_read(read: Read, cls: Any) -> Any:
    de = Deserializer(read)
    value = de.deserialize(shape_of(cls))

    de.end()
    return value


def from_bytes(data: bytes | bytearray | memoryview, cls: type[T]) -> T:
    """Read a value from properties encoded as UTF-8.

    Args:
        data: The properties to read.
        cls: The type of the value, usually an attrs class or dict.

    Returns:
        The value.

    Raises:
        Error: The properties could not be read as the type.
    """

    return _from_read(SliceRead(data), cls)


def from_str(text: str, cls: type[T]) -> T:
    """Read a value from properties text.

    See from_bytes().
    """

    return _from_read(StrRead(text), cls)


def loads(data: str | bytes, cls: type[T]) -> T:
    """Read a value from properties text or bytes.

    See from_bytes().
    """

    if isinstance(data, str):
        return from_str(data, cls)

    return from_bytes(data, cls)


def load(file: BinaryIO, cls: type[T]) -> T:
    """Read a value from a binary file of properties.

    The whole file is read before decoding starts.

    Args:
        file: The file to read from.
        cls: The type of the value.

    Returns:
        The value.
    """

    return from_bytes(file.read(), cls)
