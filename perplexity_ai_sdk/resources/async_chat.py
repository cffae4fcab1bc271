from typing import Dict, Any
from urllib.parse import quote, urlencode

from ._base import BaseResource
from .._cancellation import CancellationToken
from .._exceptions import ValidationError
from .._types import AsyncCompletion, AsyncCompletionList

ASYNC_CHAT_COMPLETIONS_PATH = "/async/chat/completions"

# keyword argument -> request header
_GET_HEADERS = {
    "client_env": "x-client-env",
    "client_name": "x-client-name",
    "created_at_epoch_seconds": "x-created-at-epoch-seconds",
    "request_time": "x-request-time",
    "usage_tier": "x-usage-tier",
    "user_id": "x-user-id",
}


class AsyncChat(BaseResource):
    """Chat completions that run server-side and are polled for their result."""

    def create(
        self,
        request: Dict[str, Any],
        idempotency_key: str = None,
        cancel: CancellationToken = None,
    ) -> AsyncCompletion:
        if not request:
            raise ValidationError("request is required")
        nested = dict(request)
        nested["messages"] = self._normalize_messages(nested.get("messages"))
        self._require_model(nested.get("model"))
        if nested.get("stream"):
            raise ValidationError("async completions cannot be streamed")

        payload = self._build_payload({"request": nested}, {"idempotency_key": idempotency_key}, {})
        return self._client.post(ASYNC_CHAT_COMPLETIONS_PATH, data=payload, cancel=cancel)

    def list(self, cancel: CancellationToken = None) -> AsyncCompletionList:
        return self._client.get(ASYNC_CHAT_COMPLETIONS_PATH, cancel=cancel)

    def get(
        self,
        api_request: str,
        local_mode: bool = None,
        cancel: CancellationToken = None,
        **header_values: str
    ) -> AsyncCompletion:
        if not api_request:
            raise ValidationError("api_request is required")
        unknown = set(header_values) - set(_GET_HEADERS)
        if unknown:
            raise ValidationError(f"unexpected arguments: {', '.join(sorted(unknown))}")

        path = f"{ASYNC_CHAT_COMPLETIONS_PATH}/{quote(api_request, safe='')}"
        if local_mode is not None:
            path += "?" + urlencode({"local_mode": "true" if local_mode else "false"})

        headers = {
            _GET_HEADERS[name]: value
            for name, value in header_values.items()
            if value is not None
        }
        return self._client.get(path, headers=headers, cancel=cancel)
