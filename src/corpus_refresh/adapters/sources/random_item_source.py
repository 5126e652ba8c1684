"""Random-item HTTP source (Wikipedia random summary, official joke API)."""

import asyncio
import logging
from typing import Optional, Union

import httpx

from corpus_refresh.core import ContentItem, FetchFailure, ItemFetcher, pause

logger = logging.getLogger(__name__)


class RandomItemSource(ItemFetcher):
    """Fetch one item per call from a "random item" endpoint."""

    def __init__(
        self,
        url: str,
        item_type: type[ContentItem],
        user_agent: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay_ms: int = 1000,
        client: Optional[httpx.AsyncClient] = None,
        shutdown: Optional[asyncio.Event] = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.url = url
        self.item_type = item_type
        self.user_agent = user_agent
        self.max_retries = max_retries
        self.retry_delay = retry_delay_ms / 1000
        self.shutdown = shutdown
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
        )

    async def fetch_one(self) -> Union[ContentItem, FetchFailure]:
        """Fetch one item, retrying with linear backoff.

        Non-2xx status, an undecodable body and an item missing its
        primary field all count as a failed attempt. Delay before retry
        ``n`` is ``retry_delay_ms * n``.
        """
        reason = "no attempt made"

        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self._client.get(
                    self.url, headers={"User-Agent": self.user_agent}
                )
                if response.is_success:
                    item = self.item_type.from_payload(response.json())
                    logger.debug("Fetched %s: %s", self.item_type.kind.value, item.primary_value)
                    return item

                reason = f"HTTP {response.status_code}"
                logger.warning(
                    "Source returned status %s (attempt %d/%d)",
                    response.status_code, attempt, self.max_retries,
                )
            except httpx.HTTPError as e:
                reason = f"{type(e).__name__}: {e}"
                logger.warning(
                    "Request to source failed (attempt %d/%d): %s",
                    attempt, self.max_retries, reason,
                )
            except (ValueError, TypeError) as e:
                reason = f"invalid item: {e}"
                logger.warning(
                    "Source returned an unusable item (attempt %d/%d): %s",
                    attempt, self.max_retries, e,
                )

            if attempt < self.max_retries:
                if await pause(self.retry_delay * attempt, self.shutdown):
                    logger.info("Shutdown requested, giving up on current fetch")
                    return FetchFailure(reason="shutdown", attempts=attempt)

        logger.error("Failed to fetch item after %d attempts: %s", self.max_retries, reason)
        return FetchFailure(reason=reason, attempts=self.max_retries)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
