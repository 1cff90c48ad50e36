import pytest

from streamlit_ui.api_client import ChatApiClient, ChatApiError
from streamlit_ui.stream_client import ContentEvent, DoneEvent, ErrorEvent


class FakeResponse:
    def __init__(self, status_code=200, payload=None, chunks=None, reason="OK"):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = reason
        self._payload = payload
        self._chunks = chunks or []
        self.text = ""

    def json(self):
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload

    def iter_content(self, chunk_size=None):
        yield from self._chunks

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def _record(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.response

    def get(self, url, **kwargs):
        return self._record("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._record("POST", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._record("DELETE", url, **kwargs)


def _client(response):
    session = FakeSession(response)
    return ChatApiClient("http://api.local/", timeout=5, session=session), session


def test_create_session_posts_title():
    client, session = _client(FakeResponse(payload={"id": "s1", "title": "T"}))

    assert client.create_session("T") == {"id": "s1", "title": "T"}
    assert session.calls == [
        ("POST", "http://api.local/api/sessions", {"json": {"title": "T"}, "timeout": 5})
    ]


def test_fetch_messages_uses_session_query_param():
    client, session = _client(
        FakeResponse(payload={"messages": [{"role": "user", "content": "hi"}], "count": 1})
    )

    assert client.fetch_messages("s1") == [{"role": "user", "content": "hi"}]
    _, url, kwargs = session.calls[0]
    assert url == "http://api.local/api/messages"
    assert kwargs["params"] == {"sessionId": "s1"}


def test_error_body_is_raised():
    client, _ = _client(
        FakeResponse(status_code=404, payload={"error": "Session not found"}, reason="Not Found")
    )

    with pytest.raises(ChatApiError) as exc_info:
        list(client.stream_chat("missing", "hi"))

    assert exc_info.value.status_code == 404
    assert exc_info.value.error == "Session not found"


def test_error_without_json_body():
    response = FakeResponse(status_code=502, reason="Bad Gateway")
    response.text = "upstream down"
    client, _ = _client(response)

    with pytest.raises(ChatApiError) as exc_info:
        client.list_sessions()

    assert exc_info.value.error == "Bad Gateway"
    assert exc_info.value.details == "upstream down"


def test_stream_chat_yields_events():
    chunks = [
        b'data: {"content": "He',
        b'llo"}\n\ndata: {"done": true, "timestamp": "t"}\n\n',
    ]
    client, session = _client(FakeResponse(chunks=chunks))

    events = list(
        client.stream_chat("s1", "hi", options={"temperature": 0.5, "model": None})
    )

    assert events[0] == ContentEvent(delta="Hello", text="Hello")
    assert isinstance(events[1], DoneEvent)
    _, url, kwargs = session.calls[0]
    assert url == "http://api.local/api/chat"
    assert kwargs["json"] == {"message": "hi", "sessionId": "s1", "temperature": 0.5}
    assert kwargs["stream"] is True


def test_stream_chat_truncated_body():
    client, _ = _client(FakeResponse(chunks=[b'data: {"content": "He']))

    events = list(client.stream_chat("s1", "hi"))

    assert events == [ErrorEvent(error="Stream ended before completion")]


def test_stream_chat_malformed_frame_is_an_error_event():
    chunks = [b'data: {"content": "a"}\n\n', b"data: {oops\n\n"]
    client, _ = _client(FakeResponse(chunks=chunks))

    events = list(client.stream_chat("s1", "hi"))

    assert events[0] == ContentEvent(delta="a", text="a")
    assert isinstance(events[1], ErrorEvent)
    assert events[1].error == "Malformed frame"
    assert len(events) == 2
