import httpx
import pytest

from fakes import JA_PAGE, FakeTransport
from gtranslate.errors import (
    AllocationError,
    ConfigurationError,
    MalformedResponseError,
    SessionClosedError,
    TransportError,
)
from gtranslate.fetcher import HTTPXTransport
from gtranslate.session import SessionState, TranslateSession


def _session(transport=None, **kwargs):
    return TranslateSession(transport=transport or FakeTransport(), **kwargs)


def _page(text: str) -> bytes:
    return f'<div class="result-container">{text}</div>'.encode("utf-8")


def test_good_morning_end_to_end():
    transport = FakeTransport()
    session = _session(transport)
    session.set_lang("en", "ja")
    session.set_text_ref("Good morning")

    result = session.execute()

    assert result == "おはよう".encode("utf-8")
    assert session.get_result() == result
    assert transport.calls[0]["url"] == (
        "https://translate.google.com/m?sl=en&tl=ja&hl=en&q=Good+morning"
    )
    assert "Mozilla/5.0" in transport.calls[0]["headers"]["User-Agent"]


def test_response_split_across_chunks():
    chunks = [JA_PAGE[i:i + 7] for i in range(0, len(JA_PAGE), 7)]
    session = _session(FakeTransport(chunks=chunks))
    session.set_lang("en", "ja")
    session.set_text_copy("Good morning")

    assert session.execute().decode("utf-8") == "おはよう"


def test_state_transitions():
    session = _session()
    assert session.state == SessionState.CREATED

    session.set_lang("en", "ja")
    assert session.state == SessionState.CONFIGURED

    session.execute()
    assert session.state == SessionState.EXECUTED

    session.set_lang("ja", "en")
    assert session.state == SessionState.CONFIGURED

    session.close()
    assert session.state == SessionState.DESTROYED


@pytest.mark.parametrize("target", [None, "", b""])
def test_missing_target_keeps_previous_languages(target):
    session = _session()
    session.set_lang("en", "ja")

    with pytest.raises(ConfigurationError):
        session.set_lang("fr", target)

    assert session.source_lang == "en"
    assert session.target_lang == "ja"
    assert session.last_error == "Target language cannot be empty"


def test_source_defaults_to_auto():
    session = _session()
    session.set_lang(None, "ja")
    assert session.source_lang == "auto"

    session.set_lang("", "de")
    assert session.source_lang == "auto"


def test_languages_are_truncated_to_short_string():
    session = _session()
    session.set_lang("abcdefghij", "zh-TWxyz")

    assert session.source_lang == "abcdefg"
    assert session.target_lang == "zh-TWxy"


def test_execute_without_target():
    transport = FakeTransport()
    session = _session(transport)
    session.set_text_copy("hi")

    with pytest.raises(ConfigurationError):
        session.execute()

    assert transport.calls == []


def test_copy_then_reference_releases_copy():
    session = _session()
    session.set_text_copy("first")
    owned = session.text_source

    session.set_text_ref("second")

    assert owned.released
    assert session.text == b"second"


def test_copy_then_copy_releases_previous_copy():
    session = _session()
    session.set_text_copy("first")
    owned = session.text_source

    session.set_text_copy_len(b"second", 3)

    assert owned.released
    assert session.text == b"sec"


def test_reference_mode_follows_caller_buffer():
    buf = bytearray(b"hello")
    session = _session()
    session.set_text_ref_len(buf, 5)

    buf[0:1] = b"j"

    assert session.text == b"jello"


def test_copy_mode_is_isolated():
    buf = bytearray(b"hello")
    session = _session()
    session.set_text_copy_len(buf, 5)

    buf[0:1] = b"j"

    assert session.text == b"hello"


def test_inferred_length_stops_at_nul():
    session = _session()
    session.set_text_ref(b"abc\0def")

    assert session.text == b"abc"


def test_bad_text_length_changes_nothing():
    session = _session()
    session.set_text_copy("keep")
    owned = session.text_source

    with pytest.raises(ConfigurationError):
        session.set_text_ref_len(b"abc", 10)

    assert session.text_source is owned
    assert not owned.released
    assert session.text == b"keep"


def test_empty_text_produces_empty_query():
    transport = FakeTransport()
    session = _session(transport)
    session.set_lang("en", "ja")
    session.set_text_ref_len(b"ignored", 0)

    session.execute()

    assert transport.calls[0]["url"].endswith("&hl=en&q=")


def test_detach_result():
    session = _session()
    session.set_lang("en", "ja")
    session.execute()

    detached = session.detach_result()

    assert detached == "おはよう".encode("utf-8")
    assert session.get_result() is None
    assert session.detach_result() is None


def test_transport_failure_keeps_previous_result():
    transport = FakeTransport()
    session = _session(transport)
    session.set_lang("en", "ja")
    previous = session.execute()

    transport.error = TransportError("Connection error: boom")
    with pytest.raises(TransportError):
        session.execute()

    assert session.get_result() == previous
    assert session.last_error == "Connection error: boom"


def test_malformed_response_keeps_previous_result():
    transport = FakeTransport()
    session = _session(transport)
    session.set_lang("en", "ja")
    previous = session.execute()

    transport.chunks = [b"<html>captcha</html>"]
    with pytest.raises(MalformedResponseError):
        session.execute()

    assert session.get_result() == previous
    assert session.last_error == "Cannot find translated result"


def test_oversized_response_is_an_allocation_error():
    transport = FakeTransport()
    session = _session(transport, max_response_size=40)
    session.set_lang("en", "ja")

    transport.chunks = [_page("ok")]
    previous = session.execute()

    transport.chunks = [_page("x" * 100)]
    with pytest.raises(AllocationError):
        session.execute()

    assert session.get_result() == previous == b"ok"

    transport.chunks = [_page("yes")]
    assert session.execute() == b"yes"


def test_buffer_is_reused_between_executions():
    transport = FakeTransport(chunks=[_page("a" * 100)])
    session = _session(transport, initial_capacity=16)
    session.set_lang("en", "ja")

    session.execute()
    capacity = session.buffer.capacity
    session.execute()

    assert session.buffer.capacity == capacity
    assert session.buffer.length == len(_page("a" * 100))


def test_each_execution_replaces_result():
    transport = FakeTransport(chunks=[_page("one")])
    session = _session(transport)
    session.set_lang("en", "ja")
    session.execute()

    transport.chunks = [_page("two")]

    assert session.execute() == b"two"
    assert session.get_result() == b"two"


def test_directories(tmp_path):
    transport = FakeTransport()
    session = _session(transport)
    session.set_cache_dir(tmp_path)
    session.set_cookie_dir(str(tmp_path))
    session.set_lang("en", "ja")

    session.execute()

    assert session.cache_dir == str(tmp_path)
    assert transport.calls[0]["cookie_file"] == str(tmp_path / "gtranslate.cookie")
    assert transport.calls[0]["cookie_jar"] == str(tmp_path / "gtranslate.cookie")


def test_invalid_directory_keeps_previous(tmp_path):
    session = _session()
    session.set_cache_dir(tmp_path)

    with pytest.raises(ConfigurationError):
        session.set_cache_dir(tmp_path / "missing")

    assert session.cache_dir == str(tmp_path)
    assert session.get_error()


def test_no_cookie_dir_means_no_cookie_file():
    transport = FakeTransport()
    session = _session(transport)
    session.set_lang("en", "ja")
    session.execute()

    assert transport.calls[0]["cookie_file"] is None


def test_close_releases_everything():
    transport = FakeTransport()
    session = _session(transport)
    session.set_lang("en", "ja")
    session.set_text_copy("hi")
    owned = session.text_source
    session.execute()

    session.close()

    assert session.closed
    assert owned.released
    assert session.get_result() is None
    assert not session.buffer.allocated
    assert not transport.closed

    with pytest.raises(SessionClosedError):
        session.execute()
    with pytest.raises(SessionClosedError):
        session.set_lang("en", "ja")


def test_close_closes_owned_transport():
    transport = FakeTransport()

    with TranslateSession(transport=transport, owns_transport=True) as session:
        session.set_lang("en", "ja")
        session.execute()

    assert transport.closed
    assert session.closed


def test_setting_text_after_execute_reconfigures():
    session = _session()
    session.set_lang("en", "ja")
    session.execute()

    session.set_text_copy("again")

    assert session.state == SessionState.CONFIGURED


def test_overlong_url_is_a_transport_error():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, content=JA_PAGE)

    transport = HTTPXTransport(transport=httpx.MockTransport(handler))
    session = _session(transport)
    session.set_lang("en", "ja")
    session.set_text_copy("あ" * 8000)

    with pytest.raises(TransportError):
        session.execute()

    assert requests == []
    assert session.last_error.startswith("Invalid request")
    assert session.get_result() is None
