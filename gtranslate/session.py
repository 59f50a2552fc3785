"""
Translate session: holds languages, text, directories and the response
buffer, and drives URL building, the HTTP request and result extraction.

A session is not thread-safe. Use one session per thread, or guard it with an
external lock.
"""

import os
from enum import Enum
from typing import Dict, Optional, Union

import structlog

from .buffer import DEFAULT_INITIAL_CAPACITY, ResponseBuffer
from .config import Config, config as default_config
from .errors import (
    AllocationError,
    ConfigurationError,
    SessionClosedError,
    TranslateError,
)
from .extractor import extract
from .fetcher import COOKIE_FILE_NAME, DEFAULT_USER_AGENT, FetchResult, HTTPXTransport, Transport
from .paths import validate_directory
from .text_source import EMPTY_TEXT, Borrowed, Owned, TextInput, TextSource
from .url_builder import ENDPOINT, LANG_MAX_BYTES, build_url

logger = structlog.get_logger(__name__)

AUTO_LANG = b"auto"

LangInput = Union[str, bytes, None]


class SessionState(str, Enum):
    CREATED = "CREATED"
    CONFIGURED = "CONFIGURED"
    EXECUTED = "EXECUTED"
    DESTROYED = "DESTROYED"


def _short_lang(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        value = value.encode("utf-8")
    value = bytes(value)
    # Cut at an embedded NUL first, then at the short-string limit.
    return value.split(b"\0", 1)[0][:LANG_MAX_BYTES]


class TranslateSession:
    def __init__(
        self,
        transport: Optional[Transport] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        endpoint: str = ENDPOINT,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
        max_response_size: Optional[int] = None,
        owns_transport: Optional[bool] = None,
    ):
        """Create an empty session.

        Args:
            transport: HTTP collaborator; an HTTPXTransport on the shared pool
                       when omitted.
            user_agent: User-Agent header sent with every request.
            endpoint: URL prefix the query parameters are appended to.
            initial_capacity: First allocation of the response buffer.
            max_response_size: Largest response body accepted, in bytes.
            owns_transport: Whether close() also closes the transport;
                            defaults to true only for the implicit one.
        """
        self._owns_transport = transport is None if owns_transport is None else owns_transport
        self._transport: Transport = transport or HTTPXTransport()
        self.user_agent = user_agent
        self.endpoint = endpoint

        self._state = SessionState.CREATED
        self._source_lang = AUTO_LANG
        self._target_lang: Optional[bytes] = None
        self._text: TextSource = EMPTY_TEXT
        self._cache_dir: Optional[str] = None
        self._cookie_dir: Optional[str] = None
        self._last_error: Optional[str] = None
        self._result: Optional[bytes] = None
        self._buffer = ResponseBuffer(
            initial_capacity=initial_capacity,
            max_capacity=max_response_size + 1 if max_response_size is not None else None,
            lazy=True,
        )
        self.last_fetch: Optional[FetchResult] = None

    def __enter__(self) -> "TranslateSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state == SessionState.DESTROYED

    @property
    def source_lang(self) -> str:
        return self._source_lang.decode("utf-8", errors="replace")

    @property
    def target_lang(self) -> Optional[str]:
        if self._target_lang is None:
            return None
        return self._target_lang.decode("utf-8", errors="replace")

    @property
    def text(self) -> bytes:
        return bytes(self._text.data())

    @property
    def text_source(self) -> TextSource:
        return self._text

    @property
    def cache_dir(self) -> Optional[str]:
        return self._cache_dir

    @property
    def cookie_dir(self) -> Optional[str]:
        return self._cookie_dir

    @property
    def cookie_file(self) -> Optional[str]:
        if self._cookie_dir is None:
            return None
        return os.path.join(self._cookie_dir, COOKIE_FILE_NAME)

    @property
    def buffer(self) -> ResponseBuffer:
        return self._buffer

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def get_error(self) -> Optional[str]:
        return self._last_error

    def _fail(self, exc: TranslateError) -> TranslateError:
        self._last_error = str(exc)
        return exc

    def _ensure_open(self):
        if self._state == SessionState.DESTROYED:
            raise self._fail(SessionClosedError("Session is closed"))

    def _mark_configured(self):
        if self._target_lang is not None and self._state != SessionState.DESTROYED:
            self._state = SessionState.CONFIGURED

    def set_cache_dir(self, cache_dir: Union[str, os.PathLike]):
        self._ensure_open()
        try:
            self._cache_dir = validate_directory(cache_dir)
        except ConfigurationError as e:
            raise self._fail(e)

    def set_cookie_dir(self, cookie_dir: Union[str, os.PathLike]):
        self._ensure_open()
        try:
            self._cookie_dir = validate_directory(cookie_dir)
        except ConfigurationError as e:
            raise self._fail(e)

    def set_lang(self, source: LangInput, target: LangInput):
        """Set the language pair. ``source`` falls back to ``auto``.

        An empty or missing target is rejected and leaves both languages as
        they were.
        """
        self._ensure_open()
        target_lang = _short_lang(target) if target is not None else b""
        if not target_lang:
            raise self._fail(ConfigurationError("Target language cannot be empty"))

        source_lang = _short_lang(source) if source is not None else b""
        self._source_lang = source_lang or AUTO_LANG
        self._target_lang = target_lang
        self._mark_configured()

    def _replace_text(self, source: TextSource):
        previous = self._text
        self._text = source
        if previous is not source:
            previous.release()
        self._mark_configured()

    def set_text_ref_len(self, text: TextInput, length: int):
        """Borrow ``length`` bytes of the caller's buffer without copying."""
        self._ensure_open()
        try:
            source = Borrowed.of(text, length)
        except TranslateError as e:
            raise self._fail(e)
        self._replace_text(source)

    def set_text_ref(self, text: TextInput):
        """Borrow the caller's buffer up to its first NUL byte."""
        self._ensure_open()
        try:
            source = Borrowed.of(text)
        except TranslateError as e:
            raise self._fail(e)
        self._replace_text(source)

    def set_text_copy_len(self, text: TextInput, length: int):
        """Store a private copy of the first ``length`` bytes."""
        self._ensure_open()
        try:
            source = Owned.of(text, length)
        except TranslateError as e:
            raise self._fail(e)
        self._replace_text(source)

    def set_text_copy(self, text: TextInput):
        """Store a private copy of the text up to its first NUL byte."""
        self._ensure_open()
        try:
            source = Owned.of(text)
        except TranslateError as e:
            raise self._fail(e)
        self._replace_text(source)

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent}

    def build_url(self) -> str:
        if self._target_lang is None:
            raise self._fail(ConfigurationError("Target language is not set"))
        return build_url(self._source_lang, self._target_lang, self._text.data(), base=self.endpoint)

    def execute(self) -> bytes:
        """Run one translation and return the extracted text.

        The previous result is only replaced when the new one was extracted
        successfully.

        Raises:
            ConfigurationError: no target language, or the session is closed.
            AllocationError: the response buffer could not grow.
            TransportError: the HTTP request failed.
            MalformedResponseError: the page did not contain a result.
        """
        self._ensure_open()
        url = self.build_url()

        try:
            self._buffer.allocate()
        except AllocationError as e:
            raise self._fail(e)
        self._buffer.reset()

        logger.debug("translation_request", url=url, text_length=self._text.length)
        try:
            self.last_fetch = self._transport.perform(
                url,
                self._headers(),
                self.cookie_file,
                self.cookie_file,
                self._buffer.append,
            )
        except TranslateError as e:
            logger.warning("translation_fetch_failed", url=url, error=str(e))
            raise self._fail(e)

        try:
            result = extract(self._buffer.raw(), self._buffer.length)
        except TranslateError as e:
            logger.warning("translation_extract_failed", url=url, response_size=self._buffer.length)
            raise self._fail(e)

        self._result = result
        self._state = SessionState.EXECUTED
        logger.info(
            "translation_executed",
            source_lang=self.source_lang,
            target_lang=self.target_lang,
            response_size=self._buffer.length,
            result_size=len(result),
        )
        return result

    def get_result(self) -> Optional[bytes]:
        """The last extracted result, still owned by the session."""
        return self._result

    def detach_result(self) -> Optional[bytes]:
        """Hand the last result over to the caller and forget it."""
        result = self._result
        self._result = None
        return result

    def close(self):
        """Release the buffer, result, owned text and transport."""
        if self._state == SessionState.DESTROYED:
            return
        self._buffer.release()
        self._result = None
        self._replace_text(EMPTY_TEXT)
        if self._owns_transport:
            self._transport.close()
        self._state = SessionState.DESTROYED


def create_session(cfg: Optional[Config] = None, transport: Optional[Transport] = None) -> TranslateSession:
    """Create a TranslateSession from configuration defaults."""
    cfg = cfg or default_config

    fetcher_cfg = cfg.fetcher
    session_cfg = cfg.session

    max_response_size = fetcher_cfg.get('max_response_size')
    if max_response_size is not None:
        try:
            max_response_size = int(max_response_size)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid max_response_size: {max_response_size!r}") from e

    owns_transport = transport is None
    if owns_transport:
        transport = HTTPXTransport(
            timeout=float(fetcher_cfg.get('timeout', 30.0)),
            max_redirects=int(fetcher_cfg.get('max_redirects', 5)),
            chunk_size=int(fetcher_cfg.get('chunk_size', 8192)),
        )

    session = TranslateSession(
        transport=transport,
        user_agent=fetcher_cfg.get('user_agent', DEFAULT_USER_AGENT),
        endpoint=fetcher_cfg.get('endpoint', ENDPOINT),
        initial_capacity=int(cfg.buffer.get('initial_capacity', DEFAULT_INITIAL_CAPACITY)),
        max_response_size=max_response_size,
        owns_transport=owns_transport,
    )

    try:
        if session_cfg.get('cache_dir'):
            session.set_cache_dir(session_cfg['cache_dir'])
        if session_cfg.get('cookie_dir'):
            session.set_cookie_dir(session_cfg['cookie_dir'])
        if session_cfg.get('target_lang'):
            session.set_lang(session_cfg.get('source_lang'), session_cfg['target_lang'])
    except TranslateError:
        session.close()
        raise

    return session
