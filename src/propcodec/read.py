"""Forward-only byte cursors over an in-memory source."""

from typing import Protocol


class Read(Protocol):
    """A cursor that yields one byte at a time and never moves backwards.

    End of input is signalled by None, never by an exception.
    """

    def next(self) -> int | None:
        """Return the next byte and advance past it."""
        ...

    def peek(self) -> int | None:
        """Return the next byte without advancing."""
        ...

    def discard(self):
        """Advance past a byte already seen through peek()."""
        ...

    def byte_offset(self) -> int:
        """The number of bytes consumed so far."""
        ...


class SliceRead:
    """A cursor over a contiguous byte buffer.

    Attributes:
        data: The buffer being read.
        index: The offset of the next unread byte.
    """

    __slots__ = ("data", "index")

    data: memoryview
    index: int

    def __init__(self, data: bytes | bytearray | memoryview):
        self.data = memoryview(data).cast("B")
        self.index = 0

    def next(self) -> int | None:
        if self.index < len(self.data):
            ch = self.data[self.index]
            self.index += 1
            return ch

        return None

    def peek(self) -> int | None:
        if self.index < len(self.data):
            return self.data[self.index]

        return None

    def discard(self):
        # Discarding at the end of input must not push the offset past it.
        if self.index < len(self.data):
            self.index += 1

    def byte_offset(self) -> int:
        return self.index


class StrRead:
    """A cursor over the UTF-8 encoding of a string."""

    __slots__ = ("delegate",)

    delegate: SliceRead

    def __init__(self, text: str):
        self.delegate = SliceRead(text.encode("utf-8"))

    def next(self) -> int | None:
        return self.delegate.next()

    def peek(self) -> int | None:
        return self.delegate.peek()

    def discard(self):
        self.delegate.discard()

    def byte_offset(self) -> int:
        return self.delegate.byte_offset()
