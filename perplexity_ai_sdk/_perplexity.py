from typing import Dict

import requests

from ._backoff import Backoff
from ._client import HttpClient
from ._config import ClientConfig
from ._version import __version__
from .resources import AsyncChat, Chat, Search


class Perplexity:
    """Client for the Perplexity API.

    ``api_key`` and ``base_url`` fall back to the ``PERPLEXITY_API_KEY`` and
    ``PERPLEXITY_BASE_URL`` environment variables. Pass ``session`` to share a
    connection pool; the client only closes sessions it created itself.
    """

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        max_retries: int = None,
        timeout: float = None,
        default_headers: Dict[str, str] = None,
        user_agent: str = None,
        session: requests.Session = None,
        backoff: Backoff = None,
    ):
        self.config = ClientConfig.from_env(
            api_key=api_key,
            base_url=base_url,
            max_retries=max_retries,
            timeout=timeout,
            default_headers=default_headers,
            user_agent=user_agent,
        )
        self._client = HttpClient.from_config(self.config, session=session, backoff=backoff)

        self.chat = Chat(self._client)
        self.search = Search(self._client)
        self.async_chat = AsyncChat(self._client)

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def version(self) -> str:
        return __version__

    def close(self):
        self._client.close()

    def __enter__(self) -> "Perplexity":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
