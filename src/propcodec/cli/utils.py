import logging
import pathlib
from collections.abc import Iterable

import chardet

_log = logging.getLogger(__name__)

UNITS = ["B", "KiB", "MiB"]

# Properties files are traditionally ISO-8859-1, which can decode any byte sequence.
FALLBACK_ENCODING = "iso-8859-1"


def bytes_to_unit(size: int) -> str:
    """Format a human-readable representation of the size in bytes

    Args:
        size: The size in bytes.

    Returns:
        The human-readable representation.
    """

    num = float(size)

    # https://stackoverflow.com/a/1094933
    for unit in UNITS:
        if abs(num) < 1024:
            return f"{num:.2f} {unit}"

        num /= 1024

    return f"{num:.2f} GiB"


def detect_encoding(lines: Iterable[bytes]) -> str | None:
    """Determine the encoding of a binary file.

    Args:
        lines: The lines of the file to detect the encoding of.

    Returns:
        The encoding if detected successfully, otherwise None.
    """

    detector = chardet.UniversalDetector()

    for line in lines:
        if not detector.done:
            detector.feed(line)
        else:
            break

    result = detector.close()

    if encoding := result["encoding"]:
        return encoding.lower()

    return None


def read_text(path: pathlib.Path, encoding: str | None = None) -> str:
    """Read a properties file as text.

    Args:
        path: The file to read.
        encoding: The file encoding. If None, encoding detection is attempted.

    Returns:
        The decoded text.

    Raises:
        LookupError: The encoding is unknown.
        UnicodeDecodeError: The file is not valid in the encoding.
    """

    data = path.read_bytes()

    if encoding is None:
        encoding = detect_encoding(data.splitlines(keepends=True))

        if encoding is None:
            encoding = FALLBACK_ENCODING

        _log.info("detected encoding of %s as %s", path, encoding)

    return data.decode(encoding)
