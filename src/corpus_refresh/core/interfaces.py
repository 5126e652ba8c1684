"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

from corpus_refresh.core.entities import ContentItem, FetchFailure

MessageHandler = Callable[[bytes], Awaitable[None]]


class ItemFetcher(ABC):
    """Interface for pulling single items from the external source."""

    @abstractmethod
    async def fetch_one(self) -> Union[ContentItem, FetchFailure]:
        """Fetch one item, retrying internally."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""


class CorpusStore(ABC):
    """Interface for the persistent collection holding the corpus."""

    @abstractmethod
    async def count(self) -> int:
        """Total number of stored items."""
        pass

    @abstractmethod
    async def delete_all(self) -> int:
        """Delete every item and return how many were removed."""
        pass

    @abstractmethod
    async def insert_one(self, item: ContentItem) -> ContentItem:
        """Insert one item and return it with its assigned id."""
        pass

    @abstractmethod
    async def insert_many(self, items: list[ContentItem]) -> list[ContentItem]:
        """Insert items in order and return them with their assigned ids."""
        pass

    @abstractmethod
    async def replace_all(self, items: list[ContentItem]) -> int:
        """Atomically swap the corpus for ``items``.

        Returns:
            Number of items removed from the previous corpus.
        """
        pass

    @abstractmethod
    async def find(
        self, skip: int, limit: int, term: Optional[str] = None
    ) -> list[ContentItem]:
        """List items newest first, optionally filtered by a substring."""
        pass

    @abstractmethod
    async def get_by_id(self, item_id: str) -> Optional[ContentItem]:
        """Look up one item by its store id."""
        pass

    async def close(self) -> None:
        """Release driver resources."""


class EventTransport(ABC):
    """Interface for an optional publish/subscribe channel."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection.

        Raises:
            TransportUnavailableError: If the transport cannot be reached.
        """
        pass

    @abstractmethod
    async def publish(self, subject: str, payload: bytes) -> None:
        """Publish one message.

        Raises:
            TransportUnavailableError: If not connected or the publish failed.
        """
        pass

    @abstractmethod
    async def subscribe(self, subject: str, handler: MessageHandler) -> None:
        """Register an async handler for messages on ``subject``."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection if open."""
        pass
