"""
Pulls the translated text out of the mobile translate page.

This is a bounded substring scan, not an HTML parser: the result is the run of
bytes between the result container's opening tag and the next ``<``.
"""

from typing import Optional, Union

import structlog

from .errors import MalformedResponseError

logger = structlog.get_logger(__name__)

RESULT_MARKER = b'<div class="result-container">'
TAG_OPEN = b"<"

NOT_FOUND_MESSAGE = "Cannot find translated result"


def find_result_span(response: Union[bytes, bytearray], length: int) -> Optional[tuple]:
    """Return ``(start, end)`` of the translated text, or None when absent.

    Neither search looks at bytes at or beyond ``length``.
    """
    marker_at = response.find(RESULT_MARKER, 0, length)
    if marker_at < 0:
        return None

    start = marker_at + len(RESULT_MARKER)
    end = response.find(TAG_OPEN, start, length)
    if end < 0:
        return None
    return start, end


def extract(response: Union[bytes, bytearray, memoryview], length: Optional[int] = None) -> bytes:
    """Extract the translated text from ``response[:length]``.

    Returns an independent copy, since the response buffer is reused by the
    next request. An empty result container yields ``b""``.

    Raises:
        MalformedResponseError: marker missing, or no tag after it before ``length``.
    """
    if isinstance(response, memoryview):
        response = bytes(response)
    if length is None:
        length = len(response)
    if length < 0 or length > len(response):
        raise ValueError(f"length {length} outside response of {len(response)} bytes")

    span = find_result_span(response, length)
    if span is None:
        logger.warning("result_not_found", response_size=length)
        raise MalformedResponseError(NOT_FOUND_MESSAGE)

    start, end = span
    return bytes(response[start:end])
