"""Classify Python types into the shapes the properties format understands.

A target type announces its shape through its annotations:

* `bool`, `int`, `float` and `str` are scalars.
* `X | None` (or `Optional[X]`) is optional, and `None` itself is the unit type.
* `dict[K, V]` (or any `Mapping`) is a map of keys to values.
* attrs classes and dataclasses are records, with one entry per field.
* `enum.Enum` subclasses are enumerations of unit variants.

Everything else that the format cannot express (sequences, tuples, bytes, characters, newtypes)
is still classified, so that the codec can reject it with a precise message.
"""

import collections.abc
import dataclasses
import enum
import functools
import logging
import types
import typing
from typing import Annotated, Any, NewType, Union

import attrs

from .error import Error

_log = logging.getLogger(__name__)

# Metadata key used to rename a record field on the wire.
KEY_METADATA = "propcodec.key"


class Kind(enum.Enum):
    """The tag of a shape. The value is the name used in error messages."""

    BOOL = "bool"
    INT = "integer"
    FLOAT = "float"
    STR = "string"
    ANY = "any"
    UNIT = "unit"
    OPTION = "option"
    MAP = "map"
    RECORD = "struct"
    ENUM = "enum"
    CHAR = "char"
    BYTES = "bytes"
    NEWTYPE = "newtype struct"
    SEQ = "seq"
    TUPLE = "tuple"
    TUPLE_STRUCT = "tuple struct"


# Shapes that can never be read or written.
UNSUPPORTED = frozenset(
    [Kind.CHAR, Kind.BYTES, Kind.NEWTYPE, Kind.SEQ, Kind.TUPLE, Kind.TUPLE_STRUCT]
)


@attrs.frozen
class IntRange:
    """The width of an integer type.

    Attributes:
        name: The type name, i.e. 'u8'.
        signed: Whether or not negative values are allowed.
        bits: The width in bits. If None, the integer is unbounded.
    """

    name: str
    signed: bool = True
    bits: int | None = None

    @property
    def expected(self) -> str:
        """The name of the expected type when the token does not parse."""

        return "signed integer" if self.signed else "unsigned integer"

    @property
    def min(self) -> int | None:
        if self.bits is None:
            return None

        return -(2 ** (self.bits - 1)) if self.signed else 0

    @property
    def max(self) -> int | None:
        if self.bits is None:
            return None

        return 2 ** (self.bits - 1) - 1 if self.signed else 2**self.bits - 1

    def contains(self, value: int) -> bool:
        lo, hi = self.min, self.max
        return (lo is None or value >= lo) and (hi is None or value <= hi)


@attrs.frozen
class Marker:
    """Annotation metadata that forces a shape onto the annotated type."""

    kind: Kind


I8 = Annotated[int, IntRange("i8", True, 8)]
I16 = Annotated[int, IntRange("i16", True, 16)]
I32 = Annotated[int, IntRange("i32", True, 32)]
I64 = Annotated[int, IntRange("i64", True, 64)]
U8 = Annotated[int, IntRange("u8", False, 8)]
U16 = Annotated[int, IntRange("u16", False, 16)]
U32 = Annotated[int, IntRange("u32", False, 32)]
U64 = Annotated[int, IntRange("u64", False, 64)]

# A single character. Python has no character type, so this only exists to be rejected.
Char = Annotated[str, Marker(Kind.CHAR)]

_INT = IntRange("int")


@attrs.frozen
class Field:
    """A record field.

    Attributes:
        attr: The attribute name on instances.
        arg: The keyword used to pass the field to the constructor.
        key: The key of the field on the wire.
        shape: The shape of the field's value.
        default: Whether or not the field has a default value.
    """

    attr: str
    arg: str
    key: str
    shape: "Shape"
    default: bool = False

    @property
    def required(self) -> bool:
        """Whether or not decoding fails if the key is absent.

        Optional fields without a default are filled in with None.
        """

        return not self.default and self.shape.kind is not Kind.OPTION


@attrs.frozen
class Variant:
    """An enumeration member.

    Attributes:
        name: The name of the variant on the wire.
        member: The enum member.
        payload: None for unit variants, otherwise the kind of data the variant carries.
    """

    name: str
    member: enum.Enum
    payload: str | None = None


@attrs.frozen
class Shape:
    """The shape of a type, as far as the properties format is concerned.

    Attributes:
        kind: The tag of the shape.
        name: A readable name of the type.
        tp: The type the shape was derived from.
        inner: The wrapped shape of an option.
        key: The key shape of a map.
        value: The value shape of a map.
        fields: The fields of a record.
        variants: The variants of an enumeration.
        int_range: The width of an integer.
        nested: Whether or not the shape is in value position, so fields/variants of containers
            are not derived.
    """

    kind: Kind
    name: str
    tp: Any = None
    inner: "Shape | None" = None
    key: "Shape | None" = None
    value: "Shape | None" = None
    fields: tuple[Field, ...] = ()
    variants: tuple[Variant, ...] = ()
    int_range: IntRange | None = None
    nested: bool = False

    def variant(self, name: str) -> Variant | None:
        """Look up a variant by its wire name."""

        for v in self.variants:
            if v.name == name:
                return v

        return None


def check_supported(shape: Shape):
    """Check that values of a shape can appear inside a map or record.

    Args:
        shape: The shape of the value.

    Raises:
        Error: The shape is a structure the format can't express.
    """

    if shape.kind is Kind.OPTION:
        assert shape.inner is not None
        shape = shape.inner

    if shape.kind in UNSUPPORTED:
        raise Error.unsupported(shape.kind.value)

    if shape.nested and shape.kind in (Kind.MAP, Kind.RECORD):
        raise Error.unsupported(f"nested {shape.kind.value}")


def field(*, key: str | None = None, **kwargs) -> Any:
    """Declare an attrs field, optionally renamed on the wire.

    Args:
        key: The key to read and write the field as. Defaults to the field's name.
        **kwargs: Passed to attrs.field().
    """

    metadata = dict(kwargs.pop("metadata", None) or {})
    if key is not None:
        metadata[KEY_METADATA] = key

    return attrs.field(metadata=metadata, **kwargs)


def shape_of(tp: Any) -> Shape:
    """Derive the shape of a top-level type.

    Args:
        tp: The type (or type annotation) to classify.

    Returns:
        The shape.

    Raises:
        Error: The type cannot be classified at all, i.e. a union of several types.
    """

    return _shape_of(tp, False)


def nested_shape_of(tp: Any) -> Shape:
    """Derive the shape of a type in value position (inside a map or record)."""

    return _shape_of(tp, True)


def _shape_of(tp: Any, nested: bool) -> Shape:
    try:
        return _cached(tp, nested)
    except TypeError:
        # Unhashable annotations can't be cached.
        return _derive(tp, nested)


@functools.cache
def _cached(tp: Any, nested: bool) -> Shape:
    shape = _derive(tp, nested)
    _log.debug("derived %s shape for %r", shape.kind.value, tp)
    return shape


def _name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)


def _derive(tp: Any, nested: bool) -> Shape:
    if tp is Any or tp is object:
        return Shape(Kind.ANY, "any", tp)

    if tp is None or tp is types.NoneType:
        return Shape(Kind.UNIT, "unit", tp)

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is Annotated:
        base, *metadata = args

        for meta in metadata:
            if isinstance(meta, Marker):
                return Shape(meta.kind, meta.kind.value, tp)

            if isinstance(meta, IntRange) and base is int:
                return Shape(Kind.INT, meta.name, tp, int_range=meta)

        return _derive(base, nested)

    if origin is Union or origin is types.UnionType:
        rest = [a for a in args if a is not types.NoneType]

        if len(rest) == 1 and len(rest) != len(args):
            inner = _derive(rest[0], nested)
            return Shape(Kind.OPTION, f"option of {inner.name}", tp, inner=inner)

        raise Error.unsupported(f"union {tp!r}")

    if isinstance(tp, NewType):
        return Shape(Kind.NEWTYPE, tp.__name__, tp)

    if origin is not None:
        if origin is tuple:
            return Shape(Kind.TUPLE, "tuple", tp)

        if isinstance(origin, type):
            if issubclass(origin, collections.abc.Mapping):
                return _map(tp, args, nested)

            if issubclass(origin, collections.abc.Iterable):
                return Shape(Kind.SEQ, "seq", tp)

        raise Error.unsupported(f"type {tp!r}")

    if isinstance(tp, type):
        return _derive_class(tp, nested)

    raise Error.unsupported(f"type {tp!r}")


def _derive_class(tp: type, nested: bool) -> Shape:
    # Order matters: bool and enum.IntEnum are both ints.
    if issubclass(tp, bool):
        return Shape(Kind.BOOL, "boolean", tp)

    if issubclass(tp, enum.Enum):
        return _enum(tp)

    if issubclass(tp, int):
        return Shape(Kind.INT, "integer", tp, int_range=_INT)

    if issubclass(tp, float):
        return Shape(Kind.FLOAT, "float", tp)

    if issubclass(tp, str):
        return Shape(Kind.STR, "string", tp)

    if issubclass(tp, (bytes, bytearray, memoryview)):
        return Shape(Kind.BYTES, "bytes", tp)

    if attrs.has(tp) or dataclasses.is_dataclass(tp):
        if nested:
            return Shape(Kind.RECORD, tp.__qualname__, tp, nested=True)

        return Shape(Kind.RECORD, tp.__qualname__, tp, fields=_record_fields(tp))

    if issubclass(tp, tuple):
        # Named tuples have fields, plain tuples don't.
        kind = Kind.TUPLE_STRUCT if hasattr(tp, "_fields") else Kind.TUPLE
        return Shape(kind, tp.__qualname__, tp)

    if issubclass(tp, collections.abc.Mapping):
        return _map(tp, (), nested)

    if issubclass(tp, collections.abc.Iterable):
        return Shape(Kind.SEQ, tp.__qualname__, tp)

    raise Error.unsupported(f"type {_name(tp)}")


def _map(tp: Any, args: tuple, nested: bool) -> Shape:
    if nested:
        return Shape(Kind.MAP, "map", tp, nested=True)

    key, value = args if len(args) == 2 else (str, Any)

    return Shape(
        Kind.MAP,
        "map",
        tp,
        key=_derive(key, True),
        value=_derive(value, True),
    )


def _enum(tp: type[enum.Enum]) -> Shape:
    variants = []

    for member in tp:
        value = member.value

        if isinstance(value, str):
            variants.append(Variant(value, member))
        elif isinstance(value, tuple):
            variants.append(Variant(member.name, member, "tuple variant"))
        elif isinstance(value, collections.abc.Mapping):
            variants.append(Variant(member.name, member, "struct variant"))
        else:
            variants.append(Variant(member.name, member))

    return Shape(Kind.ENUM, tp.__qualname__, tp, variants=tuple(variants))


def _record_fields(cls: type) -> tuple[Field, ...]:
    # Resolve string annotations (i.e. from `from __future__ import annotations`).
    hints = typing.get_type_hints(cls, include_extras=True)
    fields = []

    if attrs.has(cls):
        for f in attrs.fields(cls):
            if not f.init:
                continue

            shape = _derive(hints.get(f.name, Any), True)
            fields.append(
                Field(
                    attr=f.name,
                    arg=f.alias or f.name,
                    key=f.metadata.get(KEY_METADATA, f.name),
                    shape=shape,
                    default=f.default is not attrs.NOTHING,
                )
            )

    else:
        for f in dataclasses.fields(cls):
            if not f.init:
                continue

            shape = _derive(hints.get(f.name, Any), True)
            has_default = (
                f.default is not dataclasses.MISSING
                or f.default_factory is not dataclasses.MISSING
            )
            fields.append(
                Field(
                    attr=f.name,
                    arg=f.name,
                    key=f.metadata.get(KEY_METADATA, f.name),
                    shape=shape,
                    default=has_default,
                )
            )

    return tuple(fields)
