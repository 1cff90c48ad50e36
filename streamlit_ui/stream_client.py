"""Incremental parser for the chat relay's framed event stream.

The relay writes ``data: <json>\\n\\n`` frames, but the transport may deliver
them in arbitrary pieces: a frame can be split anywhere, including inside the
JSON payload or inside a multi-byte UTF-8 character. The parser keeps the
trailing partial line between reads and only ever decodes complete lines.
"""
import codecs
import json
from dataclasses import dataclass
from typing import AsyncIterable, Iterable, Iterator, AsyncIterator, List, Optional, Union

DATA_PREFIX = "data: "
STREAM_ENDED_EARLY = "Stream ended before completion"
MALFORMED_FRAME = "Malformed frame"


@dataclass(frozen=True)
class FinalMessage:
    role: str
    content: str
    timestamp: Optional[str] = None


@dataclass(frozen=True)
class ContentEvent:
    """A delta arrived; ``text`` is everything received so far (not final)."""

    delta: str
    text: str


@dataclass(frozen=True)
class DoneEvent:
    """The assistant turn finished and was committed server-side."""

    message: FinalMessage


@dataclass(frozen=True)
class ErrorEvent:
    error: str
    details: Optional[str] = None


ParsedEvent = Union[ContentEvent, DoneEvent, ErrorEvent]
TERMINAL_EVENTS = (DoneEvent, ErrorEvent)


class FrameDecodeError(ValueError):
    """A complete frame line carried a payload that is not a JSON object."""


class FrameParser:
    """Turns raw byte chunks into parsed events, keeping the running text."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def feed(self, data: Union[bytes, str]) -> List[ParsedEvent]:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> List[ParsedEvent]:
        """Parse whatever is left once the byte stream has ended.

        An unterminated last line is parsed if it holds a whole frame and
        dropped if the body was cut off inside it.
        """
        tail, self._buffer = self._buffer, ""
        try:
            tail += self._decoder.decode(b"", final=True)
            return self._parse_lines([tail])
        except (UnicodeDecodeError, FrameDecodeError):
            return []

    def _parse_lines(self, lines: List[str]) -> List[ParsedEvent]:
        events = []
        for line in lines:
            event = self._parse_line(line.rstrip("\r"))
            if event is not None:
                events.append(event)
        return events

    def _parse_line(self, line: str) -> Optional[ParsedEvent]:
        if not line.startswith(DATA_PREFIX):
            return None
        raw = line[len(DATA_PREFIX):]
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise FrameDecodeError(f"Malformed frame payload: {raw[:80]!r}") from e
        if not isinstance(payload, dict):
            raise FrameDecodeError(f"Frame payload is not an object: {raw[:80]!r}")

        if "error" in payload:
            details = payload.get("details")
            return ErrorEvent(
                error=str(payload["error"]),
                details=str(details) if details is not None else None,
            )
        if payload.get("done"):
            message = FinalMessage(
                role="assistant", content=self._text, timestamp=payload.get("timestamp")
            )
            self._text = ""
            return DoneEvent(message=message)
        if "content" in payload:
            delta = str(payload["content"])
            self._text += delta
            return ContentEvent(delta=delta, text=self._text)
        return None


class StreamClient:
    """Consumes one relay response body and yields parsed events.

    Iteration stops at the first terminal event (done or error). A body that
    ends without one, or that carries an undecodable frame, yields a
    synthetic ``ErrorEvent``. A client can be consumed once.
    """

    def __init__(self, chunks: Union[Iterable[bytes], AsyncIterable[bytes]]):
        self._chunks = chunks
        self._parser = FrameParser()
        self._started = False

    def _start(self) -> None:
        if self._started:
            raise RuntimeError("StreamClient can only be consumed once")
        self._started = True

    def _feed(self, chunk: Union[bytes, str]) -> List[ParsedEvent]:
        try:
            return self._parser.feed(chunk)
        except (FrameDecodeError, UnicodeDecodeError) as e:
            # Events parsed earlier in the same chunk are lost with the stream
            return [ErrorEvent(error=MALFORMED_FRAME, details=str(e))]

    def consume(self) -> Iterator[ParsedEvent]:
        self._start()
        for chunk in self._chunks:
            for event in self._feed(chunk):
                yield event
                if isinstance(event, TERMINAL_EVENTS):
                    return
        for event in self._parser.flush():
            yield event
            if isinstance(event, TERMINAL_EVENTS):
                return
        yield ErrorEvent(error=STREAM_ENDED_EARLY)

    async def aconsume(self) -> AsyncIterator[ParsedEvent]:
        self._start()
        async for chunk in self._chunks:
            for event in self._feed(chunk):
                yield event
                if isinstance(event, TERMINAL_EVENTS):
                    return
        for event in self._parser.flush():
            yield event
            if isinstance(event, TERMINAL_EVENTS):
                return
        yield ErrorEvent(error=STREAM_ENDED_EARLY)
