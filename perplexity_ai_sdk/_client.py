import json
import logging
import socket
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

import requests

from ._backoff import DEFAULT_BACKOFF, Backoff
from ._cancellation import CancellationToken, ensure_token
from ._config import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, ClientConfig
from ._exceptions import (
    APIConnectionError,
    APIDecodeError,
    APIError,
    APITimeoutError,
    ValidationError,
    error_from_status,
    is_retryable_status,
)

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Accept": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@dataclass(frozen=True)
class Request:
    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers or {})))


@dataclass(frozen=True)
class Response:
    status_code: int
    headers: Mapping[str, str]
    body: bytes
    request_id: Optional[str] = None

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise APIDecodeError(
                f"failed to parse response: {exc}",
                status_code=self.status_code,
                body=self.body,
                request_id=self.request_id,
                cause=exc,
            ) from exc


@dataclass(frozen=True)
class StreamResponse:
    """A successful response whose body has not been read yet.

    Whoever holds it owns the connection and must call :meth:`close`.
    """

    status_code: int
    headers: Mapping[str, str]
    response: requests.Response
    request_id: Optional[str] = None

    def iter_bytes(self) -> Iterator[bytes]:
        return self.response.iter_content(chunk_size=None)

    def close(self) -> None:
        """Close the connection, waking any thread blocked reading the body."""
        _shutdown_socket(self.response)
        self.response.close()


def _shutdown_socket(response: requests.Response) -> None:
    # Closing the socket alone does not interrupt a recv() running in another thread.
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as exc:
        logger.debug("Socket shutdown failed: %s", exc)


def request_id_from(headers: Mapping[str, str]) -> Optional[str]:
    return headers.get("X-Request-Id") or headers.get("X-Request-ID") or None


class HttpClient:
    """Sends requests to the API, retrying transient failures with backoff.

    ``execute`` retries transport errors and retryable statuses up to
    ``max_retries`` extra attempts. ``execute_stream`` makes exactly one
    attempt: a stream that has been partially consumed cannot be replayed.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        default_headers: Dict[str, str] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session = None,
        backoff: Backoff = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_retries = max_retries
        self.default_headers = dict(default_headers or {})
        self.user_agent = user_agent
        self.timeout = timeout
        self.backoff = backoff or DEFAULT_BACKOFF
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

    @classmethod
    def from_config(cls, config: ClientConfig, session: requests.Session = None, backoff: Backoff = None) -> "HttpClient":
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            max_retries=config.max_retries,
            default_headers=dict(config.default_headers),
            user_agent=config.user_agent,
            timeout=config.timeout,
            session=session,
            backoff=backoff,
        )

    def _build_url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    def _build_headers(self, request: Request, stream: bool = False) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if stream:
            headers.update(STREAM_HEADERS)
        headers.update(self.default_headers)
        headers.update(request.headers)
        return headers

    @staticmethod
    def _encode_body(request: Request) -> Optional[bytes]:
        if request.body is None:
            return None
        try:
            return json.dumps(request.body).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"failed to serialize request body: {exc}", cause=exc) from exc

    def _timeout_for(self, cancel: CancellationToken) -> float:
        remaining = cancel.remaining()
        if remaining is None:
            return self.timeout
        return max(0.001, min(self.timeout, remaining))

    def _send(
        self,
        request: Request,
        data: Optional[bytes],
        cancel: CancellationToken,
        stream: bool,
    ) -> requests.Response:
        try:
            return self.session.request(
                request.method,
                self._build_url(request.path),
                data=data,
                headers=self._build_headers(request, stream=stream),
                timeout=self._timeout_for(cancel),
                stream=stream,
            )
        except requests.Timeout as exc:
            raise APITimeoutError(f"request timed out: {exc}", cause=exc) from exc
        except requests.RequestException as exc:
            raise APIConnectionError(f"request failed: {exc}", cause=exc) from exc

    def _read(self, http_response: requests.Response) -> Response:
        try:
            body = http_response.content
        except requests.Timeout as exc:
            raise APITimeoutError(f"timed out reading response body: {exc}", cause=exc) from exc
        except requests.RequestException as exc:
            raise APIConnectionError(f"failed to read response body: {exc}", cause=exc) from exc
        finally:
            http_response.close()
        return Response(
            status_code=http_response.status_code,
            headers=http_response.headers,
            body=body,
            request_id=request_id_from(http_response.headers),
        )

    def execute(self, request: Request, cancel: CancellationToken = None) -> Response:
        cancel = ensure_token(cancel)
        data = self._encode_body(request)
        last_error: Optional[APIError] = None

        for attempt in range(self.max_retries + 1):
            cancel.raise_if_cancelled()
            if attempt > 0:
                delay = self.backoff.delay(attempt)
                logger.warning(
                    "Retrying %s %s in %.2fs (attempt %d/%d): %s",
                    request.method, request.path, delay, attempt + 1, self.max_retries + 1, last_error,
                )
                if cancel.wait(delay):
                    raise cancel.error()

            try:
                response = self._read(self._send(request, data, cancel, stream=False))
            except APIConnectionError as exc:
                # Every transport failure counts as transient.
                logger.debug("%s %s attempt %d failed: %s", request.method, request.path, attempt + 1, exc)
                last_error = exc
                continue

            logger.debug(
                "%s %s attempt %d -> %d (request_id=%s)",
                request.method, request.path, attempt + 1, response.status_code, response.request_id,
            )
            if response.status_code < 400:
                return response

            error = error_from_status(
                response.status_code, body=response.body, request_id=response.request_id
            )
            if not is_retryable_status(response.status_code):
                raise error
            last_error = error

        raise last_error

    def execute_stream(self, request: Request, cancel: CancellationToken = None) -> StreamResponse:
        cancel = ensure_token(cancel)
        cancel.raise_if_cancelled()
        data = self._encode_body(request)

        http_response = self._send(request, data, cancel, stream=True)
        request_id = request_id_from(http_response.headers)
        if http_response.status_code >= 400:
            try:
                body = self._read(http_response).body
            except APIConnectionError:
                body = None
            raise error_from_status(http_response.status_code, body=body, request_id=request_id)

        logger.debug(
            "%s %s opened stream -> %d (request_id=%s)",
            request.method, request.path, http_response.status_code, request_id,
        )
        return StreamResponse(
            status_code=http_response.status_code,
            headers=http_response.headers,
            response=http_response,
            request_id=request_id,
        )

    def post(
        self,
        endpoint: str,
        data: Dict[str, Any] = None,
        headers: Dict[str, str] = None,
        cancel: CancellationToken = None,
    ) -> Any:
        return self.execute(Request("POST", endpoint, headers or {}, data), cancel=cancel).json()

    def get(
        self,
        endpoint: str,
        headers: Dict[str, str] = None,
        cancel: CancellationToken = None,
    ) -> Any:
        return self.execute(Request("GET", endpoint, headers or {}), cancel=cancel).json()

    def post_stream(
        self,
        endpoint: str,
        data: Dict[str, Any] = None,
        headers: Dict[str, str] = None,
        cancel: CancellationToken = None,
    ) -> StreamResponse:
        return self.execute_stream(Request("POST", endpoint, headers or {}, data), cancel=cancel)

    def close(self):
        if self._owns_session:
            self.session.close()
