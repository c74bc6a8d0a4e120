import pytest

from propcodec.read import SliceRead, StrRead


def test_slice_read():
    read = SliceRead(b"ab")

    assert read.byte_offset() == 0
    assert read.peek() == ord("a")
    assert read.byte_offset() == 0

    assert read.next() == ord("a")
    assert read.byte_offset() == 1

    assert read.peek() == ord("b")
    read.discard()
    assert read.byte_offset() == 2


def test_slice_read_end():
    read = SliceRead(b"")

    assert read.peek() is None
    assert read.next() is None

    # The offset never moves past the end.
    read.discard()
    assert read.byte_offset() == 0


def test_str_read_is_utf8():
    read = StrRead("あ")

    assert [read.next(), read.next(), read.next()] == list("あ".encode("utf-8"))
    assert read.next() is None
    assert read.byte_offset() == 3


@pytest.mark.parametrize("source", [b"key=value", bytearray(b"key=value")])
def test_slice_read_buffers(source):
    read = SliceRead(source)

    data = []
    while (ch := read.next()) is not None:
        data.append(ch)

    assert bytes(data) == b"key=value"
