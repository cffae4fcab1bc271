from typing import List, Dict

from ._base import BaseResource
from .._cancellation import CancellationToken
from .._exceptions import ValidationError
from .._types import SearchMode, SearchQuery, SearchRecencyFilter, SearchResponse

SEARCH_PATH = "/search"


def validate_query(query: SearchQuery) -> SearchQuery:
    """A query is one non-empty string or a non-empty list of non-empty strings."""
    if query is None:
        raise ValidationError("query is required")
    if isinstance(query, str):
        if not query:
            raise ValidationError("query cannot be empty")
        return query
    if isinstance(query, (list, tuple)):
        if not query:
            raise ValidationError("query cannot be empty")
        for index, item in enumerate(query):
            if not isinstance(item, str):
                raise ValidationError(f"query[{index}] must be a string, got {type(item).__name__}")
            if not item:
                raise ValidationError(f"query[{index}] cannot be empty")
        return list(query)
    raise ValidationError(f"query must be a string or a list of strings, got {type(query).__name__}")


class Search(BaseResource):
    def create(
        self,
        query: SearchQuery,
        max_results: int = None,
        max_tokens: int = None,
        max_tokens_per_page: int = None,
        country: str = None,
        search_mode: SearchMode = None,
        search_recency_filter: SearchRecencyFilter = None,
        search_domain_filter: List[str] = None,
        search_language_filter: List[str] = None,
        cancel: CancellationToken = None,
        extra_headers: Dict[str, str] = None,
        **params
    ) -> SearchResponse:
        payload = self._build_payload(
            {"query": validate_query(query)},
            {
                "max_results": max_results,
                "max_tokens": max_tokens,
                "max_tokens_per_page": max_tokens_per_page,
                "country": country,
                "search_mode": search_mode,
                "search_recency_filter": search_recency_filter,
                "search_domain_filter": search_domain_filter,
                "search_language_filter": search_language_filter,
            },
            params,
        )
        return self._client.post(SEARCH_PATH, data=payload, headers=extra_headers, cancel=cancel)
