from .chat import Chat
from .search import Search
from .async_chat import AsyncChat

__all__ = ["Chat", "Search", "AsyncChat"]
