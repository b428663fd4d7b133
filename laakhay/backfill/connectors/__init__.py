"""Transport connectors implementing the QueryClient protocol."""

from .http import HTTPClient, parse_retry_after, raise_for_status
from .rest import QueryHint, RESTQueryClient, build_sort, build_where

__all__ = [
    "HTTPClient",
    "QueryHint",
    "RESTQueryClient",
    "build_sort",
    "build_where",
    "parse_retry_after",
    "raise_for_status",
]
