import io
import json
import threading

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from perplexity_ai_sdk import Backoff, HttpClient, Perplexity, Stream, StreamResponse


class TrackingResponse(requests.Response):
    def __init__(self):
        super().__init__()
        self.close_calls = 0

    def close(self):
        self.close_calls += 1
        super().close()


def make_response(status=200, body=b"", headers=None) -> TrackingResponse:
    """A real ``requests.Response`` whose body is served from memory."""
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode("utf-8")
    elif isinstance(body, str):
        body = body.encode("utf-8")
    response = TrackingResponse()
    response.status_code = status
    response.headers = CaseInsensitiveDict(headers or {})
    response.raw = io.BytesIO(body)
    response.encoding = "utf-8"
    return response


class BlockingResponse(TrackingResponse):
    """Serves ``first`` and then hangs like an idle connection until closed.

    Closing fails the pending read the way a shut-down socket does.
    """

    def __init__(self, first: bytes):
        super().__init__()
        self.status_code = 200
        self.raw = io.BytesIO()
        self.first = first
        self.reading = threading.Event()
        self.released = threading.Event()

    def iter_content(self, chunk_size=1, decode_unicode=False):
        yield self.first
        self.reading.set()
        self.released.wait(10)
        raise requests.exceptions.ChunkedEncodingError("connection closed")

    def close(self):
        self.released.set()
        super().close()


class FakeSession:
    """Stands in for ``requests.Session``.

    Each call consumes the next scripted outcome; the last one repeats. An
    outcome is a response, an exception to raise, or a callable taking the
    recorded call and returning either.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def request(self, method, url, data=None, headers=None, timeout=None, stream=False):
        call = {
            "method": method,
            "url": url,
            "data": data,
            "json": json.loads(data) if data else None,
            "headers": dict(headers or {}),
            "timeout": timeout,
            "stream": stream,
        }
        self.calls.append(call)
        if not self.outcomes:
            raise AssertionError(f"unexpected request {method} {url}")
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if callable(outcome):
            outcome = outcome(call)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def sse(*events) -> str:
    return "".join(f"data: {event}\n\n" for event in events)


def chunk_json(content, chunk_id="test-1", finish_reason=None, **extra) -> str:
    chunk = {
        "id": chunk_id,
        "model": "sonar",
        "created": 1234567890,
        "choices": [
            {"index": 0, "delta": {"role": "assistant", "content": content}, "finish_reason": finish_reason}
        ],
    }
    chunk.update(extra)
    return json.dumps(chunk)


@pytest.fixture
def fast_backoff():
    return Backoff(initial=0.001, maximum=0.002)


@pytest.fixture
def make_http_client(fast_backoff):
    def factory(session, max_retries=2, **kwargs):
        return HttpClient(
            base_url="https://api.test",
            api_key="test-api-key",
            max_retries=max_retries,
            user_agent="test-agent",
            session=session,
            backoff=fast_backoff,
            **kwargs
        )

    return factory


@pytest.fixture
def make_client(fast_backoff):
    def factory(session, **kwargs):
        return Perplexity(
            api_key="test-api-key",
            base_url="https://api.test",
            session=session,
            backoff=fast_backoff,
            **kwargs
        )

    return factory


@pytest.fixture
def make_stream():
    def factory(body, cancel=None, request_id="req-1"):
        response = make_response(200, body, {"Content-Type": "text/event-stream", "X-Request-Id": request_id})
        return Stream(StreamResponse(200, response.headers, response, request_id), cancel=cancel)

    return factory


@pytest.fixture
def make_blocking_stream():
    def factory(first, cancel=None, request_id="req-1"):
        response = BlockingResponse(first.encode("utf-8"))
        return Stream(StreamResponse(200, response.headers, response, request_id), cancel=cancel)

    return factory
