"""
Growable response buffer fed by the streaming write callback.
"""

from typing import Optional, Union

import structlog

from .errors import AllocationError

logger = structlog.get_logger(__name__)

DEFAULT_INITIAL_CAPACITY = 8192


class ResponseBuffer:
    """Append-only byte buffer with amortized doubling growth.

    ``capacity`` always exceeds ``length`` by at least one byte so the data is
    kept NUL-terminated. ``length`` is the authoritative size; the terminator
    only exists for callers that want a C-style view of the bytes.
    """

    def __init__(
        self,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
        max_capacity: Optional[int] = None,
        lazy: bool = False,
    ):
        if initial_capacity < 1:
            raise ValueError("initial_capacity must be at least 1")
        self.initial_capacity = initial_capacity
        self.max_capacity = max_capacity
        self._data: Optional[bytearray] = None
        self._length = 0
        if not lazy:
            self.allocate()

    @property
    def length(self) -> int:
        return self._length

    @property
    def capacity(self) -> int:
        return len(self._data) if self._data is not None else 0

    @property
    def allocated(self) -> bool:
        return self._data is not None

    def __len__(self) -> int:
        return self._length

    def allocate(self):
        """Allocate the initial storage if that has not happened yet."""
        if self._data is not None:
            return
        capacity = self.initial_capacity
        if self.max_capacity is not None:
            capacity = max(1, min(capacity, self.max_capacity))
        try:
            self._data = bytearray(capacity)
        except MemoryError as e:
            raise AllocationError(f"Cannot allocate {capacity} bytes") from e

    def _check_limit(self, capacity: int):
        if self.max_capacity is not None and capacity > self.max_capacity:
            raise AllocationError(
                f"Response too large: {capacity} bytes > {self.max_capacity} bytes"
            )

    def _grown_capacity(self, required: int) -> int:
        capacity = self.capacity
        while capacity < required:
            capacity = capacity * 2 + 1
        return capacity

    def reserve(self, min_capacity: int):
        """Make sure at least ``min_capacity`` bytes are allocated."""
        self.allocate()
        if min_capacity <= self.capacity:
            return

        new_capacity = self._grown_capacity(min_capacity)
        self._check_limit(min_capacity)
        if self.max_capacity is not None:
            new_capacity = min(new_capacity, self.max_capacity)

        try:
            grown = bytearray(new_capacity)
        except MemoryError as e:
            raise AllocationError(f"Cannot grow response buffer to {new_capacity} bytes") from e

        grown[:self._length + 1] = self._data[:self._length + 1]
        logger.debug("response_buffer_grown", old_capacity=self.capacity, new_capacity=new_capacity)
        self._data = grown

    def append(self, data: Union[bytes, bytearray, memoryview]) -> int:
        """Append ``data`` and return the number of bytes accepted.

        Raises AllocationError when the buffer cannot grow; the existing
        contents are left untouched in that case.
        """
        added = len(data)
        self.allocate()
        new_length = self._length + added
        if new_length + 1 > self.capacity:
            self.reserve(new_length + 1)

        self._data[self._length:new_length] = data
        self._data[new_length] = 0
        self._length = new_length
        return added

    def reset(self):
        """Forget the contents but keep the allocation for the next request."""
        self._length = 0
        if self._data is not None:
            self._data[0] = 0

    def release(self):
        self._data = None
        self._length = 0

    def view(self) -> memoryview:
        if self._data is None:
            return memoryview(b"")
        return memoryview(self._data)[:self._length]

    def raw(self) -> bytearray:
        """The underlying storage; only ``raw()[:length]`` is meaningful."""
        self.allocate()
        return self._data

    def getvalue(self) -> bytes:
        return bytes(self.view())
