"""Core domain layer."""

from corpus_refresh.core.entities import (
    ITEM_TYPES,
    Article,
    ContentItem,
    FetchFailure,
    ItemKind,
    ItemPage,
    Joke,
    RefreshOutcome,
    RefreshPriority,
    RefreshRequest,
    RefreshResult,
    Thumbnail,
)
from corpus_refresh.core.errors import (
    ConfigError,
    CorpusRefreshError,
    InvalidRequestError,
    ShuttingDownError,
    StoreUnavailableError,
    TransportUnavailableError,
)
from corpus_refresh.core.interfaces import CorpusStore, EventTransport, ItemFetcher
from corpus_refresh.core.rate_limiter import RateLimiter, pause

__all__ = [
    "ITEM_TYPES",
    "Article",
    "ContentItem",
    "FetchFailure",
    "ItemKind",
    "ItemPage",
    "Joke",
    "RefreshOutcome",
    "RefreshPriority",
    "RefreshRequest",
    "RefreshResult",
    "Thumbnail",
    "ConfigError",
    "CorpusRefreshError",
    "InvalidRequestError",
    "ShuttingDownError",
    "StoreUnavailableError",
    "TransportUnavailableError",
    "CorpusStore",
    "EventTransport",
    "ItemFetcher",
    "RateLimiter",
    "pause",
]
