"""
Google Translate mobile page scraper.
"""

from .errors import (
    AllocationError,
    ConfigurationError,
    MalformedResponseError,
    SessionClosedError,
    TranslateError,
    TransportError,
)
from .fetcher import global_close, global_init
from .session import SessionState, TranslateSession, create_session

__all__ = [
    "AllocationError",
    "ConfigurationError",
    "MalformedResponseError",
    "SessionClosedError",
    "SessionState",
    "TranslateError",
    "TranslateSession",
    "TransportError",
    "create_session",
    "global_close",
    "global_init",
]
