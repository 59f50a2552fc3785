"""
Error kinds raised by the translate session and its collaborators.
"""


class TranslateError(Exception):
    """Base class for every error raised by gtranslate."""


class ConfigurationError(TranslateError):
    """Missing target language, invalid directory or inconsistent text length."""


class SessionClosedError(ConfigurationError):
    """Raised when a closed session is used again."""


class AllocationError(TranslateError):
    """A buffer could not grow or a copy could not be made."""


class TransportError(TranslateError):
    """The HTTP request failed (network, TLS, DNS, timeout, HTTP status)."""


class MalformedResponseError(TranslateError):
    """The response body did not contain a complete translated result."""
