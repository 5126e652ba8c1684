"""Business logic use cases."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from corpus_refresh.core import (
    ContentItem,
    CorpusStore,
    FetchFailure,
    InvalidRequestError,
    ItemFetcher,
    ItemPage,
    RateLimiter,
    RefreshOutcome,
)

logger = logging.getLogger(__name__)


class RefreshService:
    """Refresh the corpus with a batch of freshly fetched items.

    Refreshes are single-flight: a call made while another refresh runs
    waits for it to finish before starting its own batch.
    """

    def __init__(
        self,
        store: CorpusStore,
        fetcher: ItemFetcher,
        rate_limiter: RateLimiter,
        shutdown: Optional[asyncio.Event] = None,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.shutdown = shutdown
        self.last_outcome: Optional[RefreshOutcome] = None
        self.last_completed_at: Optional[datetime] = None
        self._single_flight = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._single_flight.locked()

    async def refresh(self, batch_size: int, request_id: str = "-") -> RefreshOutcome:
        """Replace the corpus with up to ``batch_size`` new items.

        Per-item fetch failures are counted and skipped. Store errors
        propagate to the caller. A batch size of 0 still clears the corpus.
        """
        if batch_size < 0:
            raise ValueError("batch_size cannot be negative")

        if self.is_running:
            logger.info("Refresh %s waiting for the refresh in progress", request_id)

        async with self._single_flight:
            outcome = await self._refresh(batch_size, request_id)

        if outcome.committed:
            self.last_outcome = outcome
            self.last_completed_at = datetime.now(timezone.utc)
        return outcome

    async def _refresh(self, batch_size: int, request_id: str) -> RefreshOutcome:
        started = time.monotonic()
        existing = await self.store.count()
        logger.info(
            "Starting refresh %s with batch size %d (%d items in corpus)",
            request_id, batch_size, existing,
        )

        items: list[ContentItem] = []
        fail_count = 0

        for i in range(1, batch_size + 1):
            if self.shutdown is not None and self.shutdown.is_set():
                logger.warning(
                    "Refresh %s interrupted by shutdown after %d/%d items; keeping current corpus",
                    request_id, i - 1, batch_size,
                )
                return RefreshOutcome(
                    success_count=len(items),
                    fail_count=fail_count,
                    committed=False,
                    duration_seconds=time.monotonic() - started,
                )

            async with self.rate_limiter.slot():
                result = await self.fetcher.fetch_one()

            if isinstance(result, FetchFailure):
                fail_count += 1
                logger.debug("Refresh %s item %d/%d failed: %s", request_id, i, batch_size, result.reason)
            else:
                items.append(result)

        deleted = await self.store.replace_all(items)
        outcome = RefreshOutcome(
            success_count=len(items),
            fail_count=fail_count,
            deleted_count=deleted,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            "Refresh %s completed in %.1fs. Replaced %d items. Success: %d, Failed: %d",
            request_id, outcome.duration_seconds, deleted, outcome.success_count, outcome.fail_count,
        )
        return outcome


class QueryService:
    """Read-side queries against the live corpus."""

    def __init__(self, store: CorpusStore, max_page_size: int = 100) -> None:
        self.store = store
        self.max_page_size = max_page_size

    def validate_page(self, page: int, page_size: int) -> None:
        """Reject out-of-range paging parameters.

        Raises:
            InvalidRequestError: If page < 1 or page_size is outside [1, max_page_size].
        """
        if page < 1 or page_size < 1 or page_size > self.max_page_size:
            raise InvalidRequestError("Invalid page or pageSize parameters")

    async def list(self, page: int, page_size: int) -> ItemPage:
        """List items newest first."""
        self.validate_page(page, page_size)
        items = await self.store.find((page - 1) * page_size, page_size)
        total = await self.store.count()
        return ItemPage(items=items, total=total, page=page, page_size=page_size)

    async def search(self, term: Optional[str], page: int, page_size: int) -> ItemPage:
        """Case-insensitive substring search over the item's search fields.

        ``total`` is the size of the whole corpus, not the number of matches.
        A blank term falls back to :meth:`list`.
        """
        if term is None or not term.strip():
            return await self.list(page, page_size)

        self.validate_page(page, page_size)
        term = term.strip()
        items = await self.store.find((page - 1) * page_size, page_size, term=term)
        total = await self.store.count()
        return ItemPage(items=items, total=total, page=page, page_size=page_size, search=term)

    async def get_by_id(self, item_id: str) -> Optional[ContentItem]:
        return await self.store.get_by_id(item_id)

    async def count(self) -> int:
        return await self.store.count()
