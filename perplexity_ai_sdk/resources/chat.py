from typing import List, Dict, Any, Union

from ._base import BaseResource
from .._cancellation import CancellationToken
from .._exceptions import ValidationError
from .._streaming import Stream
from .._types import Message, ChatCompletion, Tools, ToolChoice

CHAT_COMPLETIONS_PATH = "/chat/completions"


class Chat(BaseResource):
    """Chat completions, buffered or streamed over Server-Sent Events."""

    def _completion_payload(
        self,
        messages: Union[str, List[Message]],
        model: str,
        tools: Tools,
        tool_choice: ToolChoice,
        temperature: float,
        max_tokens: int,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        return self._build_payload(
            {
                "model": self._require_model(model),
                "messages": self._normalize_messages(messages),
            },
            {
                "tools": tools,
                "tool_choice": tool_choice,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            params,
        )

    def create(
        self,
        messages: Union[str, List[Message]],
        model: str,
        tools: Tools = None,
        tool_choice: ToolChoice = None,
        temperature: float = None,
        max_tokens: int = None,
        cancel: CancellationToken = None,
        extra_headers: Dict[str, str] = None,
        **params
    ) -> ChatCompletion:
        if params.get("stream"):
            raise ValidationError("use create_stream for streaming responses")

        payload = self._completion_payload(messages, model, tools, tool_choice, temperature, max_tokens, params)
        return self._client.post(CHAT_COMPLETIONS_PATH, data=payload, headers=extra_headers, cancel=cancel)

    def create_stream(
        self,
        messages: Union[str, List[Message]],
        model: str,
        tools: Tools = None,
        tool_choice: ToolChoice = None,
        temperature: float = None,
        max_tokens: int = None,
        cancel: CancellationToken = None,
        extra_headers: Dict[str, str] = None,
        **params
    ) -> Stream:
        """Start a streaming completion.

        The returned :class:`Stream` holds the connection open; close it (or
        use it as a context manager) when done. ``cancel`` governs the whole
        lifetime of the stream, not just the initial request.
        """
        payload = self._completion_payload(messages, model, tools, tool_choice, temperature, max_tokens, params)
        payload["stream"] = True
        response = self._client.post_stream(CHAT_COMPLETIONS_PATH, data=payload, headers=extra_headers, cancel=cancel)
        return Stream(response, cancel=cancel)
