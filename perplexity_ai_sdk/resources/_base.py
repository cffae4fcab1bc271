from typing import List, Dict, Any, Union

from .._client import HttpClient
from .._exceptions import ValidationError
from .._types import Message, validate_content


class BaseResource:
    def __init__(self, client: HttpClient):
        self._client = client

    def _normalize_messages(self, messages: Union[str, List[Message]]) -> List[Message]:
        if isinstance(messages, str):
            if not messages:
                raise ValidationError("messages are required")
            return [{"role": "user", "content": messages}]
        if not messages:
            raise ValidationError("messages are required")

        normalized = []
        for index, message in enumerate(messages):
            if not isinstance(message, dict):
                raise ValidationError(f"messages[{index}] must be an object")
            if not message.get("role"):
                raise ValidationError(f"messages[{index}].role is required")
            if "content" in message and message["content"] is not None:
                validate_content(message["content"])
            normalized.append(message)
        return normalized

    @staticmethod
    def _require_model(model: str) -> str:
        if not model:
            raise ValidationError("model is required")
        return model

    @staticmethod
    def _build_payload(required: Dict[str, Any], optional: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(required)
        for key, value in optional.items():
            if value is not None:
                payload[key] = value
        payload.update(extra)
        return payload
