"""Source adapters for fetching items."""

from corpus_refresh.adapters.sources.random_item_source import RandomItemSource

__all__ = ["RandomItemSource"]
