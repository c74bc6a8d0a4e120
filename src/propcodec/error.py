from typing import Any, Iterable, Self


class Error(ValueError):
    """A failure while reading or writing properties.

    There is a single error type; the message is the only payload.
    Use the classmethods below to build the standard messages.
    """

    @classmethod
    def custom(cls, msg: Any) -> Self:
        return cls(str(msg))

    @classmethod
    def invalid_value(cls, unexpected: str, expected: str) -> Self:
        """The token parsed but is not a valid value of the expected type.

        Args:
            unexpected: A description of what was found, i.e. 'string "abc"'.
            expected: What was expected instead.
        """

        return cls(f"invalid value: {unexpected}, expected {expected}")

    @classmethod
    def invalid_type(cls, unexpected: str, expected: str) -> Self:
        return cls(f"invalid type: {unexpected}, expected {expected}")

    @classmethod
    def invalid_length(cls, length: int, expected: str) -> Self:
        return cls(f"invalid length {length}, expected {expected}")

    @classmethod
    def unknown_variant(cls, variant: str, expected: Iterable[str]) -> Self:
        names = ", ".join(f"`{e}`" for e in expected)
        if not names:
            return cls(f"unknown variant `{variant}`, there are no variants")

        return cls(f"unknown variant `{variant}`, expected one of {names}")

    @classmethod
    def missing_field(cls, field: str) -> Self:
        return cls(f"missing field `{field}`")

    @classmethod
    def duplicate_field(cls, field: str) -> Self:
        return cls(f"duplicate field `{field}`")

    @classmethod
    def unsupported(cls, shape: str) -> Self:
        """The type needs a structure that the format cannot express."""

        return cls(f"unsupported {shape}")

    @classmethod
    def trailing_data(cls, offset: int) -> Self:
        return cls(f"trailing data at byte offset {offset}")
