"""
Ownership variants for the text a session translates.

``Borrowed`` keeps a view of the caller's buffer and is only valid while that
buffer lives. ``Owned`` keeps a private copy that the session releases before
replacing it.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import AllocationError, ConfigurationError

TextInput = Union[str, bytes, bytearray, memoryview]


def _as_view(text: TextInput) -> memoryview:
    if text is None:
        raise ConfigurationError("Text cannot be None")
    if isinstance(text, str):
        text = text.encode("utf-8")
    return memoryview(text).cast("B")


def terminated_length(view: memoryview) -> int:
    """Length up to the first NUL byte, or the whole view when there is none."""
    index = view.tobytes().find(b"\0") if view.nbytes else -1
    return index if index >= 0 else len(view)


def _checked_length(view: memoryview, length: Optional[int]) -> int:
    if length is None:
        return terminated_length(view)
    if length < 0 or length > len(view):
        raise ConfigurationError(
            f"Text length {length} does not fit a buffer of {len(view)} bytes"
        )
    return length


@dataclass(frozen=True)
class Borrowed:
    """A view of the caller's buffer.

    The view pins a ``bytearray``'s size: while it is held, resizing the
    buffer (``extend``, ``del buf[...]``) raises ``BufferError``. In-place
    writes are fine and show up in ``data()``. Use ``Owned`` when the buffer
    has to grow or shrink after it is handed over.
    """

    view: memoryview
    length: int

    @classmethod
    def of(cls, text: TextInput, length: Optional[int] = None) -> "Borrowed":
        view = _as_view(text)
        return cls(view=view, length=_checked_length(view, length))

    def data(self) -> memoryview:
        return self.view[:self.length]

    def release(self):
        """Nothing to free: the caller owns the bytes."""


@dataclass
class Owned:
    buffer: Optional[bytes]
    released: bool = field(default=False)

    @classmethod
    def of(cls, text: TextInput, length: Optional[int] = None) -> "Owned":
        view = _as_view(text)
        length = _checked_length(view, length)
        try:
            return cls(buffer=bytes(view[:length]))
        except MemoryError as e:
            raise AllocationError(f"Cannot copy {length} bytes of text") from e

    @property
    def length(self) -> int:
        return len(self.buffer) if self.buffer is not None else 0

    def data(self) -> memoryview:
        return memoryview(self.buffer if self.buffer is not None else b"")

    def release(self):
        self.buffer = None
        self.released = True


TextSource = Union[Borrowed, Owned]

EMPTY_TEXT = Borrowed(view=memoryview(b""), length=0)
