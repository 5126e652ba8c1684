"""Construction and ownership of the service components.

One instance of each component per process, created here and passed
explicitly to whoever needs it.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from corpus_refresh.adapters.events import NatsTransport
from corpus_refresh.adapters.sources import RandomItemSource
from corpus_refresh.adapters.storage import open_store
from corpus_refresh.config import Settings
from corpus_refresh.core import ITEM_TYPES, CorpusStore, EventTransport, ItemFetcher, RateLimiter
from corpus_refresh.dispatcher import RefreshDispatcher
from corpus_refresh.use_cases import QueryService, RefreshService


@dataclass
class Services:
    """Everything the HTTP app and the CLI need."""

    settings: Settings
    store: CorpusStore
    fetcher: ItemFetcher
    refresh_service: RefreshService
    query_service: QueryService
    dispatcher: RefreshDispatcher
    shutdown: asyncio.Event

    async def aclose(self) -> None:
        await self.dispatcher.stop()
        await self.fetcher.aclose()
        await self.store.close()


def build_services(
    settings: Settings,
    *,
    store: Optional[CorpusStore] = None,
    fetcher: Optional[ItemFetcher] = None,
    transport: Optional[EventTransport] = None,
) -> Services:
    """Wire components from settings. Any of them may be supplied instead."""
    shutdown = asyncio.Event()
    item_type = ITEM_TYPES[settings.kind]

    if store is None:
        store = open_store(settings.store.uri, item_type)

    if fetcher is None:
        fetcher = RandomItemSource(
            url=settings.source_url,
            item_type=item_type,
            user_agent=settings.source.user_agent,
            timeout=settings.source.timeout,
            max_retries=settings.source.max_retries,
            retry_delay_ms=settings.source.retry_delay_ms,
            shutdown=shutdown,
        )

    if transport is None and settings.events.url:
        transport = NatsTransport(
            settings.events.url,
            connect_attempts=settings.events.connect_attempts,
            connect_retry_delay=settings.events.connect_retry_delay,
            shutdown=shutdown,
        )

    rate_limiter = RateLimiter(settings.rate_limit_delay_ms, shutdown=shutdown)
    refresh_service = RefreshService(store, fetcher, rate_limiter, shutdown=shutdown)
    query_service = QueryService(store, max_page_size=settings.api.max_page_size)
    dispatcher = RefreshDispatcher(
        refresh_service,
        store,
        transport,
        default_batch_size=settings.refresh.batch_size,
        startup_batch_size=settings.startup_batch_size,
        max_batch_size=settings.refresh.max_batch_size,
        interval_seconds=settings.refresh_interval_seconds,
        request_subject=settings.request_subject,
        result_subject=settings.result_subject,
        shutdown=shutdown,
        shutdown_grace_seconds=settings.refresh.shutdown_grace_seconds,
    )

    return Services(
        settings=settings,
        store=store,
        fetcher=fetcher,
        refresh_service=refresh_service,
        query_service=query_service,
        dispatcher=dispatcher,
        shutdown=shutdown,
    )
