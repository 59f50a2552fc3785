"""
Percent-encoding of raw bytes for URL query parameters.

Unreserved bytes are alphanumerics plus ``-``, ``.`` and ``_``; ``~`` is only
unreserved in raw mode. Outside raw mode a space becomes ``+``. Everything
else is written as ``%XX`` with uppercase hex digits.
"""

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

_HEX = b"0123456789ABCDEF"


def _is_unreserved(c: int, raw: bool) -> bool:
    if 0x30 <= c <= 0x39 or 0x41 <= c <= 0x5A or 0x61 <= c <= 0x7A:
        return True
    if c in (0x2D, 0x2E, 0x5F):  # - . _
        return True
    return raw and c == 0x7E  # ~


def _build_table(raw: bool) -> tuple:
    table = []
    for c in range(256):
        if not raw and c == 0x20:
            table.append(b"+")
        elif _is_unreserved(c, raw):
            table.append(bytes((c,)))
        else:
            table.append(bytes((0x25, _HEX[c >> 4], _HEX[c & 15])))
    return tuple(table)


_TABLES = {False: _build_table(False), True: _build_table(True)}


def encoded_size(length: int) -> int:
    """Worst-case buffer size for encoding ``length`` bytes, terminator included."""
    return length * 3 + 1


def urlencode_into(buf: bytearray, offset: int, data: BytesLike, raw: bool = False) -> int:
    """Encode ``data`` into ``buf`` starting at ``offset``.

    ``buf`` must have at least ``3 * len(data) + 1`` bytes available from
    ``offset``. A NUL terminator is written after the encoded run.

    Returns:
        Offset just past the encoded bytes (the terminator position).
    """
    data = memoryview(data).cast("B")
    needed = encoded_size(len(data))
    if offset < 0 or len(buf) - offset < needed:
        raise ValueError(
            f"Destination too small: need {needed} bytes at offset {offset}, "
            f"have {len(buf) - offset}"
        )

    encoded = b"".join([_TABLES[raw][c] for c in data])
    end = offset + len(encoded)
    buf[offset:end] = encoded
    buf[end] = 0
    return end


def urlencode(data: BytesLike, raw: bool = False) -> bytes:
    """Encode ``data`` into a freshly allocated buffer."""
    data = memoryview(data).cast("B")
    buf = bytearray(encoded_size(len(data)))
    end = urlencode_into(buf, 0, data, raw)
    return bytes(buf[:end])
