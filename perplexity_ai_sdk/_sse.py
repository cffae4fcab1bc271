"""Server-Sent Events decoding.

Implements the ``text/event-stream`` line protocol on top of any iterable of
byte chunks, typically ``requests.Response.iter_content(chunk_size=None)``.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional

from ._exceptions import APIDecodeError

DONE_MARKER = "[DONE]"


@dataclass
class Event:
    event: str = "message"
    data: str = ""
    id: Optional[str] = None
    retry: Optional[int] = None

    def is_done(self) -> bool:
        return self.data.startswith(DONE_MARKER)

    def is_error(self) -> bool:
        return self.event == "error"

    def json(self) -> Any:
        if not self.data:
            raise APIDecodeError("event data is empty")
        try:
            return json.loads(self.data)
        except ValueError as exc:
            raise APIDecodeError(f"invalid JSON in event data: {exc}", cause=exc) from exc

    def encode(self) -> str:
        lines = []
        if self.event and self.event != "message":
            lines.append(f"event: {self.event}")
        if self.id:
            lines.append(f"id: {self.id}")
        if self.retry is not None:
            lines.append(f"retry: {self.retry}")
        for line in self.data.split("\n"):
            lines.append(f"data: {line}")
        return "\n".join(lines) + "\n\n"


class SSEDecoder:
    """Pulls one :class:`Event` at a time out of a byte stream.

    The decoder keeps no state between events other than the unread bytes of
    the underlying source.
    """

    def __init__(self, source: Iterable[bytes]):
        self._chunks = iter(source)
        self._buffer = b""
        self._exhausted = False

    def _read_line(self) -> Optional[str]:
        while True:
            newline = self._buffer.find(b"\n")
            if newline != -1:
                raw = self._buffer[:newline]
                self._buffer = self._buffer[newline + 1:]
                return self._decode_line(raw)
            if self._exhausted:
                if not self._buffer:
                    return None
                # Unterminated last line.
                raw, self._buffer = self._buffer, b""
                return self._decode_line(raw)
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._exhausted = True
                continue
            if chunk:
                self._buffer += chunk

    @staticmethod
    def _decode_line(raw: bytes) -> str:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise APIDecodeError(f"invalid UTF-8 in event stream: {exc}", cause=exc) from exc

    def decode(self) -> Optional[Event]:
        """Return the next event, or None once the stream has ended."""
        event = Event()
        data_lines: List[str] = []
        seen_field = False

        while True:
            line = self._read_line()
            if line is None:
                if data_lines:
                    event.data = "\n".join(data_lines)
                    return event
                return None

            if line == "":
                if seen_field:
                    event.data = "\n".join(data_lines)
                    return event
                continue

            if line.startswith(":"):
                continue

            field, sep, value = line.partition(":")
            if not sep:
                continue
            if value.startswith(" "):
                value = value[1:]

            if field == "event":
                event.event = value
                seen_field = True
            elif field == "data":
                data_lines.append(value)
                seen_field = True
            elif field == "id":
                event.id = value
                seen_field = True
            elif field == "retry":
                if value.isascii() and value.isdigit():
                    event.retry = int(value)

    def decode_all(self) -> List[Event]:
        events = []
        while True:
            event = self.decode()
            if event is None:
                return events
            events.append(event)

    def __iter__(self) -> Iterator[Event]:
        while True:
            event = self.decode()
            if event is None:
                return
            yield event
