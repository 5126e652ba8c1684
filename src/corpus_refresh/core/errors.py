"""Error taxonomy for the refresh pipeline."""


class CorpusRefreshError(Exception):
    """Base class for errors raised by corpus_refresh."""


class StoreUnavailableError(CorpusRefreshError):
    """The document store could not complete an operation."""


class TransportUnavailableError(CorpusRefreshError):
    """The event transport is not connected or a publish failed."""


class ConfigError(CorpusRefreshError):
    """Startup configuration is invalid."""


class InvalidRequestError(CorpusRefreshError, ValueError):
    """Caller input is out of range; maps to a 400 response."""


class ShuttingDownError(CorpusRefreshError):
    """The service is stopping and no longer starts refreshes."""
