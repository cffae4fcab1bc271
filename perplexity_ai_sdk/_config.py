import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping

from ._exceptions import ValidationError
from ._version import __version__

DEFAULT_BASE_URL = "https://api.perplexity.ai"
DEFAULT_TIMEOUT = 15 * 60.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_USER_AGENT = f"perplexity-ai-sdk/{__version__}"

API_KEY_ENV = "PERPLEXITY_API_KEY"
BASE_URL_ENV = "PERPLEXITY_BASE_URL"


@dataclass(frozen=True)
class ClientConfig:
    """Immutable client settings, validated once when built."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    max_retries: int = DEFAULT_MAX_RETRIES
    timeout: float = DEFAULT_TIMEOUT
    default_headers: Mapping[str, str] = field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self):
        if not self.api_key:
            raise ValidationError(
                f"API key is required (provide it as a parameter or via the {API_KEY_ENV} environment variable)"
            )
        if not self.base_url:
            raise ValidationError("base_url cannot be empty")
        if self.max_retries < 0:
            raise ValidationError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout <= 0:
            raise ValidationError(f"timeout must be positive, got {self.timeout}")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        object.__setattr__(self, "default_headers", MappingProxyType(dict(self.default_headers)))

    @classmethod
    def from_env(
        cls,
        api_key: str = None,
        base_url: str = None,
        max_retries: int = None,
        timeout: float = None,
        default_headers: Dict[str, str] = None,
        user_agent: str = None,
    ) -> "ClientConfig":
        """Build a config, filling ``api_key`` and ``base_url`` from the environment.

        Explicit arguments always win over environment variables.
        """
        return cls(
            api_key=api_key or os.getenv(API_KEY_ENV, ""),
            base_url=base_url or os.getenv(BASE_URL_ENV) or DEFAULT_BASE_URL,
            max_retries=DEFAULT_MAX_RETRIES if max_retries is None else max_retries,
            timeout=DEFAULT_TIMEOUT if timeout is None else timeout,
            default_headers=default_headers or {},
            user_agent=user_agent or DEFAULT_USER_AGENT,
        )
