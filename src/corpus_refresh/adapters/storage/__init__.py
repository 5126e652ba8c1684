"""Corpus store adapters."""

from corpus_refresh.adapters.storage.memory_store import MemoryCorpusStore
from corpus_refresh.adapters.storage.sqlite_store import SQLiteCorpusStore
from corpus_refresh.core import ConfigError, ContentItem, CorpusStore


def open_store(uri: str, item_type: type[ContentItem]) -> CorpusStore:
    """Build the store named by ``uri``.

    Supported forms: ``memory://`` and ``sqlite:///path/to/file.db``.
    """
    if uri == "memory://":
        return MemoryCorpusStore(item_type)

    if uri.startswith("sqlite:///"):
        path = uri[len("sqlite:///"):]
        if not path:
            raise ConfigError("sqlite store URI needs a file path")
        # The schema is created on first use; a bad path surfaces as
        # StoreUnavailableError from the store calls, not here.
        return SQLiteCorpusStore(path, item_type)

    raise ConfigError(f"Unsupported store URI: {uri}")


__all__ = ["MemoryCorpusStore", "SQLiteCorpusStore", "open_store"]
