"""Test doubles shared across test modules."""

import asyncio
from typing import Callable, Optional, Union

from corpus_refresh.adapters.storage import MemoryCorpusStore
from corpus_refresh.core import (
    Article,
    ContentItem,
    EventTransport,
    FetchFailure,
    ItemFetcher,
    StoreUnavailableError,
    TransportUnavailableError,
)
from corpus_refresh.core.interfaces import MessageHandler


def make_articles(n: int, prefix: str = "Article") -> list[Article]:
    return [
        Article(title=f"{prefix} {i}", description=f"Description {i}", extract=f"Extract {i}")
        for i in range(1, n + 1)
    ]


class StubFetcher(ItemFetcher):
    """Hands out numbered articles; ``fail_on(call_number)`` marks failures."""

    def __init__(
        self,
        fail_on: Optional[Callable[[int], bool]] = None,
        delay: float = 0.0,
        on_call: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.fail_on = fail_on
        self.delay = delay
        self.on_call = on_call
        self.calls = 0
        self.returned: list[ContentItem] = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    async def fetch_one(self) -> Union[ContentItem, FetchFailure]:
        self.calls += 1
        call = self.calls
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.on_call is not None:
                self.on_call(call)
            if self.fail_on is not None and self.fail_on(call):
                return FetchFailure(reason="stub failure", attempts=3)
            item = Article(title=f"Fetched {call}", description=f"Fetched description {call}")
            self.returned.append(item)
            return item
        finally:
            self.active -= 1

    async def aclose(self) -> None:
        self.closed = True


class FlakyStore(MemoryCorpusStore):
    """Memory store that raises StoreUnavailableError while ``down`` is set."""

    def __init__(self, down: bool = False) -> None:
        super().__init__(Article)
        self.down = down

    def _check(self) -> None:
        if self.down:
            raise StoreUnavailableError("store is down")

    async def count(self) -> int:
        self._check()
        return await super().count()

    async def replace_all(self, items: list[ContentItem]) -> int:
        self._check()
        return await super().replace_all(items)

    async def find(self, skip, limit, term=None):
        self._check()
        return await super().find(skip, limit, term)


class FakeTransport(EventTransport):
    """In-memory event transport recording published messages."""

    def __init__(self, fail_connect: bool = False, fail_publish: bool = False) -> None:
        self.fail_connect = fail_connect
        self.fail_publish = fail_publish
        self.published: list[tuple[str, bytes]] = []
        self.handlers: dict[str, MessageHandler] = {}
        self.connect_calls = 0
        self.closed = False
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect:
            raise TransportUnavailableError("no servers available")
        self._connected = True

    async def publish(self, subject: str, payload: bytes) -> None:
        if not self._connected or self.fail_publish:
            raise TransportUnavailableError("publish failed")
        self.published.append((subject, payload))

    async def subscribe(self, subject: str, handler: MessageHandler) -> None:
        self.handlers[subject] = handler

    async def close(self) -> None:
        self._connected = False
        self.closed = True

    async def deliver(self, subject: str, payload: bytes) -> None:
        await self.handlers[subject](payload)

    def messages_on(self, subject: str) -> list[bytes]:
        return [payload for s, payload in self.published if s == subject]
