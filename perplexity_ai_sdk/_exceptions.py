import json
from enum import Enum
from typing import Optional, Type


class ErrorKind(str, Enum):
    API = "api_error"
    BAD_REQUEST = "bad_request"
    AUTHENTICATION = "authentication"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNPROCESSABLE_ENTITY = "unprocessable_entity"
    RATE_LIMIT = "rate_limit"
    INTERNAL_SERVER = "internal_server"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    DECODE = "decode"
    STREAM = "stream"
    CANCELLED = "cancelled"
    VALIDATION = "validation"


class APIError(Exception):
    """Base error for everything the SDK raises.

    ``kind`` and ``retryable`` are fixed per class, so whether an error may be
    retried never depends on the instance.
    """

    kind = ErrorKind.API
    retryable = False

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        body: bytes = None,
        request_id: str = None,
        cause: BaseException = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body
        self.request_id = request_id or None
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.request_id:
            return f"perplexity: {self.message} (status: {self.status_code}, request_id: {self.request_id})"
        return f"perplexity: {self.message} (status: {self.status_code})"


class BadRequestError(APIError):
    kind = ErrorKind.BAD_REQUEST


class AuthenticationError(APIError):
    kind = ErrorKind.AUTHENTICATION


class PermissionDeniedError(APIError):
    kind = ErrorKind.PERMISSION_DENIED


class NotFoundError(APIError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(APIError):
    kind = ErrorKind.CONFLICT
    retryable = True


class UnprocessableEntityError(APIError):
    kind = ErrorKind.UNPROCESSABLE_ENTITY


class RateLimitError(APIError):
    kind = ErrorKind.RATE_LIMIT
    retryable = True


class InternalServerError(APIError):
    kind = ErrorKind.INTERNAL_SERVER
    retryable = True


class APIConnectionError(APIError):
    kind = ErrorKind.CONNECTION
    retryable = True


class APITimeoutError(APIConnectionError):
    kind = ErrorKind.TIMEOUT


class APIDecodeError(APIError):
    kind = ErrorKind.DECODE


class StreamError(APIError):
    """An ``error`` event sent by the server in the middle of a stream."""

    kind = ErrorKind.STREAM


class CancelledError(APIError):
    kind = ErrorKind.CANCELLED


class DeadlineExceededError(CancelledError):
    pass


class ValidationError(APIError, ValueError):
    kind = ErrorKind.VALIDATION


_STATUS_ERRORS = {
    400: BadRequestError,
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    408: APITimeoutError,
    409: ConflictError,
    422: UnprocessableEntityError,
    429: RateLimitError,
}


def error_class_for_status(status_code: int) -> Type[APIError]:
    if status_code in _STATUS_ERRORS:
        return _STATUS_ERRORS[status_code]
    if status_code >= 500:
        return InternalServerError
    return APIError


def is_retryable_status(status_code: int) -> bool:
    return error_class_for_status(status_code).retryable


def error_message(status_code: int, body: Optional[bytes]) -> str:
    """Pull a human message out of an error body, falling back to ``HTTP {status}``."""
    fallback = f"HTTP {status_code}"
    if not body:
        return fallback
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return fallback
    if not isinstance(data, dict):
        return fallback

    message = data.get("message")
    if isinstance(message, str) and message:
        return message
    error = data.get("error")
    if isinstance(error, str) and error:
        return error
    # {"error": {"message": "...", "type": "...", "code": 400}}
    if isinstance(error, dict):
        nested = error.get("message")
        if isinstance(nested, str) and nested:
            return nested
    return fallback


def error_from_status(
    status_code: int,
    message: str = None,
    body: bytes = None,
    request_id: str = None,
) -> APIError:
    if message is None:
        message = error_message(status_code, body)
    error_class = error_class_for_status(status_code)
    return error_class(message, status_code=status_code, body=body, request_id=request_id)


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, APIError) and error.retryable


def is_rate_limit_error(error: BaseException) -> bool:
    return isinstance(error, RateLimitError)


def is_authentication_error(error: BaseException) -> bool:
    return isinstance(error, AuthenticationError)


def is_timeout_error(error: BaseException) -> bool:
    return isinstance(error, APITimeoutError)


def is_cancelled(error: BaseException) -> bool:
    return isinstance(error, CancelledError)
