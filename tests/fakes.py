"""Test doubles shared by the session and CLI tests."""

from gtranslate.fetcher import FetchResult

JA_PAGE = (
    '<html><body><div class="main">'
    '<div class="result-container">おはよう</div>'
    '</div></body></html>'
).encode("utf-8")


class FakeTransport:
    def __init__(self, chunks=None, error=None):
        self.chunks = list(chunks) if chunks is not None else [JA_PAGE]
        self.error = error
        self.calls = []
        self.closed = False

    def perform(self, url, headers, cookie_file, cookie_jar, sink):
        self.calls.append({
            "url": url,
            "headers": dict(headers),
            "cookie_file": cookie_file,
            "cookie_jar": cookie_jar,
        })
        if self.error is not None:
            raise self.error
        size = 0
        for chunk in self.chunks:
            size += sink(chunk)
        return FetchResult(url=url, status_code=200, size=size)

    def close(self):
        self.closed = True
