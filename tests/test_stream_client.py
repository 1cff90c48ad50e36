import pytest

from streamlit_ui.stream_client import (
    MALFORMED_FRAME,
    STREAM_ENDED_EARLY,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    FinalMessage,
    FrameDecodeError,
    FrameParser,
    StreamClient,
)

BODY = (
    'data: {"content": "Grüß "}\n\n'
    'data: {"content": "dich 🌍"}\n\n'
    'data: {"done": true, "timestamp": "2024-01-01T00:00:00+00:00"}\n\n'
).encode("utf-8")


def _events(chunks):
    return list(StreamClient(chunks).consume())


def test_whole_body():
    events = _events([BODY])

    assert events[:2] == [
        ContentEvent(delta="Grüß ", text="Grüß "),
        ContentEvent(delta="dich 🌍", text="Grüß dich 🌍"),
    ]
    assert len(events) == 3
    done = events[-1]
    assert isinstance(done, DoneEvent)
    assert isinstance(done.message, FinalMessage)
    assert done.message.role == "assistant"
    assert done.message.content == "Grüß dich 🌍"
    assert done.message.timestamp == "2024-01-01T00:00:00+00:00"


def test_events_do_not_depend_on_chunk_boundaries():
    expected = _events([BODY])

    for offset in range(1, len(BODY)):
        assert _events([BODY[:offset], BODY[offset:]]) == expected, offset


def test_one_byte_at_a_time():
    chunks = [BODY[i:i + 1] for i in range(len(BODY))]

    assert _events(chunks) == _events([BODY])


def test_lines_without_data_prefix_are_ignored():
    body = (
        b": keep-alive\n\n"
        b"event: message\n"
        b'data: {"content": "a"}\n\n'
        b"\n\n"
        b'data: {"done": true, "timestamp": "t"}\n\n'
    )

    events = _events([body])

    assert [type(e) for e in events] == [ContentEvent, DoneEvent]
    assert events[-1].message.content == "a"


def test_crlf_line_endings():
    body = b'data: {"content": "a"}\r\n\r\ndata: {"done": true, "timestamp": "t"}\r\n\r\n'

    events = _events([body])

    assert events[0] == ContentEvent(delta="a", text="a")
    assert isinstance(events[1], DoneEvent)


def test_stops_at_error_frame():
    body = (
        b'data: {"content": "par"}\n\n'
        b'data: {"error": "Failed to process message", "details": "boom"}\n\n'
        b'data: {"content": "ignored"}\n\n'
    )

    events = _events([body])

    assert events == [
        ContentEvent(delta="par", text="par"),
        ErrorEvent(error="Failed to process message", details="boom"),
    ]


def test_stops_at_done_frame():
    body = BODY + b'data: {"content": "late"}\n\n'

    events = _events([body])

    assert isinstance(events[-1], DoneEvent)
    assert len(events) == 3


def test_final_frame_without_trailing_newline():
    body = b'data: {"content": "a"}\n\ndata: {"done": true, "timestamp": "t"}'

    events = _events([body])

    assert isinstance(events[-1], DoneEvent)
    assert events[-1].message.content == "a"


def test_stream_without_terminal_frame():
    events = _events([b'data: {"content": "a"}\n\n'])

    assert events[-1] == ErrorEvent(error=STREAM_ENDED_EARLY)


def test_malformed_payload_ends_the_stream():
    body = b'data: {"content": "a"}\n\ndata: {oops\n\ndata: {"content": "b"}\n\n'

    events = _events([body[:24], body[24:]])

    assert events[0] == ContentEvent(delta="a", text="a")
    assert len(events) == 2
    assert events[1].error == MALFORMED_FRAME
    assert "{oops" in events[1].details


def test_non_object_payload_ends_the_stream():
    events = _events([b"data: [1, 2]\n"])

    assert len(events) == 1
    assert events[0].error == MALFORMED_FRAME


def test_invalid_utf8_ends_the_stream():
    events = _events([b'data: {"content": "\xff"}\n\n'])

    assert len(events) == 1
    assert isinstance(events[0], ErrorEvent)
    assert events[0].error == MALFORMED_FRAME
    assert "utf-8" in events[0].details


def test_parser_rejects_malformed_payload():
    with pytest.raises(FrameDecodeError):
        FrameParser().feed(b"data: {not json}\n\n")


@pytest.mark.anyio
async def test_async_consume_malformed_payload(anyio_backend):
    async def chunks():
        yield b"data: {oops\n\n"

    events = [e async for e in StreamClient(chunks()).aconsume()]

    assert [e.error for e in events] == [MALFORMED_FRAME]


def test_partial_line_is_buffered():
    parser = FrameParser()

    assert parser.feed(b'data: {"conte') == []
    assert parser.feed(b'nt": "x"}\n') == [ContentEvent(delta="x", text="x")]
    assert parser.text == "x"


def test_client_is_single_use():
    client = StreamClient([BODY])
    list(client.consume())

    with pytest.raises(RuntimeError):
        list(client.consume())


@pytest.mark.anyio
async def test_async_consume(anyio_backend):
    async def chunks():
        for i in range(0, len(BODY), 7):
            yield BODY[i:i + 7]

    events = [e async for e in StreamClient(chunks()).aconsume()]

    assert events == _events([BODY])
