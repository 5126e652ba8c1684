"""Event transport adapters."""

from corpus_refresh.adapters.events.nats_transport import NatsTransport

__all__ = ["NatsTransport"]
