"""Streaming chat completions.

A :class:`Stream` owns one open HTTP response and turns its SSE events into
``StreamChunk`` dicts. Once the stream ends, gracefully or with an error, the
outcome is recorded and every later read repeats it.

Each stream runs under its own child of the caller's cancellation token.
Cancelling closes the response, which unblocks a read stuck on the network;
closing the stream cancels that child token without touching the caller's.
"""

import logging
import threading
from typing import Iterator, Optional

import requests

from ._cancellation import CancellationToken, ensure_token
from ._client import StreamResponse
from ._exceptions import APIConnectionError, APIDecodeError, APIError, APITimeoutError, StreamError
from ._sse import SSEDecoder
from ._types import StreamChunk, delta_text

logger = logging.getLogger(__name__)

STREAM_CLOSED = "stream closed"

_EMPTY = object()


class Stream:
    def __init__(self, response: StreamResponse, cancel: CancellationToken = None):
        self.response = response
        self.cancel = ensure_token(cancel).child()
        self._decoder = SSEDecoder(response.iter_bytes())
        self._done = False
        self._error: Optional[APIError] = None
        self._closed = False
        self._close_lock = threading.Lock()
        self._read_lock = threading.Lock()
        self.cancel.add_callback(self.close)

    @property
    def request_id(self) -> Optional[str]:
        return self.response.request_id

    @property
    def done(self) -> bool:
        """True once the stream has terminated, gracefully or not."""
        return self._done or self._error is not None

    @property
    def error(self) -> Optional[APIError]:
        return self._error

    def _fail(self, error: APIError) -> APIError:
        if error.request_id is None:
            error.request_id = self.request_id
        self._error = error
        logger.debug("Stream %s terminated with error: %s", self.request_id, error)
        return error

    def _next_event(self):
        try:
            return self._decoder.decode()
        except APIError:
            raise
        except requests.Timeout as exc:
            raise APITimeoutError(f"stream read timed out: {exc}", cause=exc) from exc
        except requests.RequestException as exc:
            raise APIConnectionError(f"stream read failed: {exc}", cause=exc) from exc
        except (OSError, ValueError) as exc:
            # The response was closed under a blocked read.
            if not self._closed:
                raise
            raise APIConnectionError(f"stream closed during read: {exc}", cause=exc) from exc

    def __iter__(self) -> "Stream":
        return self

    def __next__(self) -> StreamChunk:
        with self._read_lock:
            if self._error is not None:
                raise self._error.with_traceback(None)
            if self._done:
                raise StopIteration

            if self.cancel.cancelled:
                raise self._fail(self.cancel.error())

            try:
                event = self._next_event()
            except APIError as exc:
                if self.cancel.cancelled:
                    raise self._fail(self.cancel.error()) from exc
                raise self._fail(exc)

            if event is None or event.is_done():
                self._done = True
                raise StopIteration

            if event.is_error():
                raise self._fail(StreamError(f"stream error: {event.data}"))

            try:
                chunk = event.json()
            except APIDecodeError as exc:
                raise self._fail(exc)
            if not isinstance(chunk, dict):
                raise self._fail(APIDecodeError(f"expected a JSON object in event data, got {type(chunk).__name__}"))
            return chunk

    def recv(self) -> Optional[StreamChunk]:
        """Return the next chunk, or None once the stream has ended gracefully."""
        try:
            return next(self)
        except StopIteration:
            return None

    def text(self) -> str:
        """Drain the stream and join the text of every chunk."""
        return "".join(delta_text(chunk) for chunk in self)

    def iter(self) -> "ChunkChannel":
        """Read the stream on a background thread and hand chunks over one at a time."""
        return ChunkChannel(self)

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        logger.debug("Closing stream %s", self.request_id)
        self.cancel.cancel(STREAM_CLOSED)
        self.response.close()

    def __enter__(self) -> "Stream":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ChunkChannel:
    """Push-style view of a :class:`Stream`.

    A single producer thread calls ``next(stream)`` and hands each chunk over
    through a one-slot handoff guarded by a condition variable. The producer
    stops when the stream terminates, when the stream's cancellation token
    fires, or when the consumer calls :meth:`close`, which also closes the
    stream; in every case the channel then ends.
    """

    def __init__(self, stream: Stream):
        self._stream = stream
        self._cond = threading.Condition()
        self._slot = _EMPTY
        self._ended = False
        self._stopped = False
        self._thread = threading.Thread(target=self._produce, name="perplexity-stream", daemon=True)
        stream.cancel.add_callback(self._wake)
        self._thread.start()

    @property
    def error(self) -> Optional[APIError]:
        return self._stream.error

    def _wake(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def _offer(self, chunk: StreamChunk) -> bool:
        with self._cond:
            while self._slot is not _EMPTY and not self._stopped and not self._stream.cancel.cancelled:
                self._cond.wait()
            if self._stopped or self._stream.cancel.cancelled:
                return False
            self._slot = chunk
            self._cond.notify_all()
            return True

    def _produce(self) -> None:
        try:
            while True:
                # Cancellation is observed by the stream itself, which records it.
                try:
                    chunk = next(self._stream)
                except (StopIteration, APIError):
                    break
                if not self._offer(chunk):
                    if self._stream.cancel.cancelled and not self._stream.done:
                        self._stream._fail(self._stream.cancel.error())
                    break
        finally:
            with self._cond:
                self._ended = True
                self._cond.notify_all()

    def __iter__(self) -> Iterator[StreamChunk]:
        return self

    def __next__(self) -> StreamChunk:
        with self._cond:
            while self._slot is _EMPTY and not self._ended and not self._stopped:
                self._cond.wait()
            if self._slot is _EMPTY or self._stopped:
                raise StopIteration
            chunk, self._slot = self._slot, _EMPTY
            self._cond.notify_all()
            return chunk

    def close(self, timeout: float = None) -> None:
        """Stop the producer, close the stream and wait for the producer to exit."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        self._stream.close()
        self._thread.join(timeout)

    def __enter__(self) -> "ChunkChannel":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
