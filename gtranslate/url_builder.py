"""
Builds the translate endpoint URL from the session's languages and text.
"""

from .encoder import BytesLike, urlencode_into

ENDPOINT = "https://translate.google.com/m?"

# Language codes are short strings, never longer than this many bytes.
LANG_MAX_BYTES = 7

_SOURCE_PARAM = b"sl="
_TARGET_PARAM = b"&tl="
_QUERY_PARAM = b"&hl=en&q="


def url_overhead(base: str = ENDPOINT) -> int:
    """Bytes needed for everything except the encoded text."""
    return (
        len(base.encode("ascii"))
        + len(_SOURCE_PARAM)
        + len(_TARGET_PARAM)
        + len(_QUERY_PARAM)
        + 2 * LANG_MAX_BYTES * 3
        + 1
    )


def _write(buf: bytearray, offset: int, chunk: bytes) -> int:
    end = offset + len(chunk)
    buf[offset:end] = chunk
    return end


def build_url(source_lang: BytesLike, target_lang: BytesLike, text: BytesLike, base: str = ENDPOINT) -> str:
    """Compose ``base + sl=..&tl=..&hl=en&q=..`` with every value percent-encoded.

    The whole URL is written into one buffer of ``len(text) * 3 + overhead``
    bytes; language codes longer than ``LANG_MAX_BYTES`` are rejected.
    """
    for name, lang in (("source", source_lang), ("target", target_lang)):
        if len(lang) > LANG_MAX_BYTES:
            raise ValueError(f"{name} language longer than {LANG_MAX_BYTES} bytes: {bytes(lang)!r}")

    text = memoryview(text).cast("B")
    buf = bytearray(len(text) * 3 + url_overhead(base))

    pos = _write(buf, 0, base.encode("ascii"))
    pos = _write(buf, pos, _SOURCE_PARAM)
    pos = urlencode_into(buf, pos, source_lang)
    pos = _write(buf, pos, _TARGET_PARAM)
    pos = urlencode_into(buf, pos, target_lang)
    pos = _write(buf, pos, _QUERY_PARAM)
    pos = urlencode_into(buf, pos, text)

    return buf[:pos].decode("ascii")
