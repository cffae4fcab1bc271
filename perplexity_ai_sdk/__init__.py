import logging

from ._perplexity import Perplexity
from ._version import __version__
from ._backoff import Backoff
from ._cancellation import CancellationToken
from ._client import HttpClient, Request, Response, StreamResponse
from ._config import ClientConfig
from ._sse import Event, SSEDecoder
from ._streaming import Stream, ChunkChannel
from ._exceptions import (
    ErrorKind, APIError, BadRequestError, AuthenticationError, PermissionDeniedError,
    NotFoundError, ConflictError, UnprocessableEntityError, RateLimitError,
    InternalServerError, APIConnectionError, APITimeoutError, APIDecodeError,
    StreamError, CancelledError, DeadlineExceededError, ValidationError,
    is_retryable, is_rate_limit_error, is_authentication_error, is_timeout_error, is_cancelled,
)
from ._types import (
    Message, ContentChunk, Tool, ToolFunction, ToolCall, ToolCallFunction, Tools, ToolChoice,
    StreamChunk, ChatCompletion, Choice, Usage, Cost, SearchResult, SearchResponse,
    AsyncCompletion, AsyncCompletionList,
    system_message, user_message, assistant_message, tool_message,
    text_chunk, image_chunk, file_chunk, pdf_chunk, video_chunk, delta_text,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Perplexity",
    "Backoff",
    "CancellationToken",
    "HttpClient",
    "Request",
    "Response",
    "StreamResponse",
    "ClientConfig",
    "Event",
    "SSEDecoder",
    "Stream",
    "ChunkChannel",
    "ErrorKind",
    "APIError",
    "BadRequestError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "UnprocessableEntityError",
    "RateLimitError",
    "InternalServerError",
    "APIConnectionError",
    "APITimeoutError",
    "APIDecodeError",
    "StreamError",
    "CancelledError",
    "DeadlineExceededError",
    "ValidationError",
    "is_retryable",
    "is_rate_limit_error",
    "is_authentication_error",
    "is_timeout_error",
    "is_cancelled",
    "Message",
    "ContentChunk",
    "Tool",
    "ToolFunction",
    "ToolCall",
    "ToolCallFunction",
    "Tools",
    "ToolChoice",
    "StreamChunk",
    "ChatCompletion",
    "Choice",
    "Usage",
    "Cost",
    "SearchResult",
    "SearchResponse",
    "AsyncCompletion",
    "AsyncCompletionList",
    "system_message",
    "user_message",
    "assistant_message",
    "tool_message",
    "text_chunk",
    "image_chunk",
    "file_chunk",
    "pdf_chunk",
    "video_chunk",
    "delta_text",
]
