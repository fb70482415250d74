from .client import HttpxNewznabClient, build_search_params, build_search_url
from .parser import detect_feed_error, parse_newznab_feed

__all__ = [
    "HttpxNewznabClient",
    "build_search_params",
    "build_search_url",
    "detect_feed_error",
    "parse_newznab_feed",
]
