"""NATS event transport adapter."""

import asyncio
import logging
from typing import Optional

import nats
from nats.aio.client import Client as NATSClient
from nats.aio.msg import Msg
from nats.errors import Error as NATSError

from corpus_refresh.core import EventTransport, TransportUnavailableError, pause
from corpus_refresh.core.interfaces import MessageHandler

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (NATSError, OSError, asyncio.TimeoutError)


class NatsTransport(EventTransport):
    """Publish/subscribe over a single configured NATS server."""

    def __init__(
        self,
        url: str,
        connect_attempts: int = 3,
        connect_retry_delay: float = 1.0,
        connect_timeout: float = 2.0,
        flush_timeout: float = 2.0,
        shutdown: Optional[asyncio.Event] = None,
    ) -> None:
        self.url = url
        self.connect_attempts = max(1, connect_attempts)
        self.connect_retry_delay = connect_retry_delay
        self.connect_timeout = connect_timeout
        self.flush_timeout = flush_timeout
        self.shutdown = shutdown
        self._nc: Optional[NATSClient] = None

    @property
    def is_connected(self) -> bool:
        return self._nc is not None and self._nc.is_connected

    async def connect(self) -> None:
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.connect_attempts + 1):
            try:
                self._nc = await nats.connect(
                    servers=[self.url],
                    connect_timeout=self.connect_timeout,
                    max_reconnect_attempts=0,
                    error_cb=self._on_error,
                    disconnected_cb=self._on_disconnected,
                )
                logger.info("Connected to NATS at %s", self.url)
                return
            except _TRANSPORT_ERRORS as e:
                last_error = e
                logger.warning(
                    "NATS connection to %s failed (attempt %d/%d): %s",
                    self.url, attempt, self.connect_attempts, e,
                )

            if attempt < self.connect_attempts:
                if await pause(self.connect_retry_delay * attempt, self.shutdown):
                    break

        raise TransportUnavailableError(f"NATS unavailable at {self.url}: {last_error}") from last_error

    async def publish(self, subject: str, payload: bytes) -> None:
        if not self.is_connected:
            raise TransportUnavailableError("NATS is not connected")
        try:
            await self._nc.publish(subject, payload)
            await self._nc.flush(timeout=self.flush_timeout)
        except _TRANSPORT_ERRORS as e:
            raise TransportUnavailableError(f"Publish to {subject} failed: {e}") from e

    async def subscribe(self, subject: str, handler: MessageHandler) -> None:
        if not self.is_connected:
            raise TransportUnavailableError("NATS is not connected")

        async def _callback(msg: Msg) -> None:
            await handler(msg.data)

        try:
            await self._nc.subscribe(subject, cb=_callback)
        except _TRANSPORT_ERRORS as e:
            raise TransportUnavailableError(f"Subscribe to {subject} failed: {e}") from e
        logger.info("Subscribed to %s", subject)

    async def close(self) -> None:
        if self._nc is None:
            return
        nc, self._nc = self._nc, None
        if nc.is_closed:
            return
        try:
            await nc.drain()
        except _TRANSPORT_ERRORS as e:
            logger.warning("NATS drain failed, closing: %s", e)
            await nc.close()

    async def _on_error(self, e: Exception) -> None:
        logger.warning("NATS error: %s", e)

    async def _on_disconnected(self) -> None:
        logger.warning("Disconnected from NATS at %s", self.url)
