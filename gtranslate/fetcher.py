"""
HTTP transport for the translate session.

Streams the response body into a caller-supplied sink, persists cookies in a
Netscape-format jar, and owns the process-wide connection pool that
``global_init`` / ``global_close`` set up and tear down.
"""

import threading
import time
from datetime import datetime, timezone
from http.cookiejar import LoadError, MozillaCookieJar
from typing import Callable, Dict, Optional, Protocol

import httpx
import structlog

from .errors import AllocationError, TransportError

logger = structlog.get_logger(__name__)

Sink = Callable[[bytes], int]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (S60; SymbOS; Opera Mobi/SYB-1103211396; U; es-LA; rv:1.9.1.6) "
    "Gecko/20091201 Firefox/3.5.6 Opera 11.00"
)
DEFAULT_TIMEOUT = 30.0
DEFAULT_CHUNK_SIZE = 8192
COOKIE_FILE_NAME = "gtranslate.cookie"


_init_lock = threading.Lock()
_pool: Optional[httpx.HTTPTransport] = None


def global_init():
    """Create the shared connection pool. Repeated calls are no-ops."""
    global _pool
    with _init_lock:
        if _pool is None:
            _pool = httpx.HTTPTransport(
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10)
            )
            logger.debug("transport_initialized")


def global_close():
    """Close the shared connection pool if it is open."""
    global _pool
    with _init_lock:
        if _pool is not None:
            _pool.close()
            _pool = None
            logger.debug("transport_closed")


def is_initialized() -> bool:
    with _init_lock:
        return _pool is not None


class _SharedPoolTransport(httpx.BaseTransport):
    """Routes a client's requests through the process-wide pool."""

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        with _init_lock:
            pool = _pool
        if pool is None:
            raise TransportError("Transport is not initialized, call global_init() first")
        return pool.handle_request(request)

    def close(self):
        # The pool outlives individual clients; global_close() releases it.
        pass


class FetchResult:
    def __init__(
        self,
        url: str,
        status_code: int,
        size: int = 0,
        headers: Dict[str, str] = None,
        final_url: str = None,
        fetch_time: float = 0.0,
        content_type: str = None,
    ):
        """Metadata of a completed fetch; the body went to the sink."""
        self.url = url
        self.status_code = status_code
        self.size = size
        self.headers = headers or {}
        self.final_url = final_url or url
        self.fetch_time = fetch_time
        self.content_type = content_type
        self.timestamp = datetime.now(timezone.utc)

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    def perform(
        self,
        url: str,
        headers: Dict[str, str],
        cookie_file: Optional[str],
        cookie_jar: Optional[str],
        sink: Sink,
    ) -> FetchResult: ...

    def close(self) -> None: ...


class HTTPXTransport:
    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_redirects: int = 5,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """HTTP transport backed by an httpx client.

        Args:
            timeout: Seconds before connect/read/write/pool operations give up.
            max_redirects: Redirects followed before failing.
            chunk_size: Size of the chunks handed to the sink.
            transport: httpx transport to use instead of the shared pool.
        """
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.chunk_size = chunk_size
        self._client = httpx.Client(
            transport=transport or _SharedPoolTransport(),
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            max_redirects=self.max_redirects,
        )

    def perform(
        self,
        url: str,
        headers: Dict[str, str],
        cookie_file: Optional[str],
        cookie_jar: Optional[str],
        sink: Sink,
    ) -> FetchResult:
        """GET ``url`` and feed the body to ``sink`` chunk by chunk.

        Cookies are read from ``cookie_file`` before the request and written to
        ``cookie_jar`` after it, when those are given.

        Raises:
            TransportError: on network, TLS, timeout or HTTP status failures.
            AllocationError: when the sink cannot store a chunk.
        """
        jar = self._load_cookies(cookie_file, cookie_jar)
        if jar is not None:
            self._client.cookies = jar
        start_time = time.time()
        size = 0

        try:
            with self._client.stream("GET", url, headers=headers) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes(chunk_size=self.chunk_size):
                    size += sink(chunk)

                result = FetchResult(
                    url=url,
                    status_code=response.status_code,
                    size=size,
                    headers=dict(response.headers),
                    final_url=str(response.url),
                    fetch_time=time.time() - start_time,
                    content_type=response.headers.get("content-type", "").lower(),
                )
        except httpx.TimeoutException as e:
            logger.warning("fetch_timeout", url=url, timeout=self.timeout, error=str(e))
            raise TransportError(f"Timeout after {self.timeout}s: {e}") from e

        except httpx.ConnectError as e:
            logger.warning("fetch_connect_error", url=url, error=str(e))
            raise TransportError(f"Connection error: {e}") from e

        except httpx.HTTPStatusError as e:
            logger.warning("fetch_http_status", url=url, status_code=e.response.status_code)
            raise TransportError(f"HTTP {e.response.status_code}") from e

        except httpx.HTTPError as e:
            logger.warning("fetch_error", url=url, error=str(e))
            raise TransportError(f"HTTP error: {e}") from e

        except (httpx.InvalidURL, httpx.StreamError, httpx.CookieConflict) as e:
            logger.warning("fetch_request_invalid", url_length=len(url), error=str(e))
            raise TransportError(f"Invalid request: {e}") from e

        except AllocationError:
            logger.warning("fetch_sink_failed", url=url, received=size)
            raise

        self._save_cookies(jar, cookie_jar)
        logger.debug(
            "fetch_completed",
            url=url,
            status_code=result.status_code,
            size=result.size,
            fetch_time=result.fetch_time,
        )
        return result

    def _load_cookies(self, cookie_file: Optional[str], cookie_jar: Optional[str]) -> Optional[MozillaCookieJar]:
        if not cookie_file and not cookie_jar:
            return None
        jar = MozillaCookieJar(cookie_jar or cookie_file)
        if cookie_file:
            try:
                jar.load(cookie_file, ignore_discard=True, ignore_expires=True)
            except FileNotFoundError:
                pass
            except (LoadError, OSError) as e:
                logger.warning("cookie_load_failed", path=cookie_file, error=str(e))
        return jar

    def _save_cookies(self, jar: Optional[MozillaCookieJar], cookie_jar: Optional[str]):
        if jar is None or not cookie_jar:
            return
        try:
            jar.save(cookie_jar, ignore_discard=True, ignore_expires=True)
        except OSError as e:
            raise TransportError(f"Cannot write cookie jar {cookie_jar}: {e.strerror}") from e

    def close(self):
        self._client.close()

