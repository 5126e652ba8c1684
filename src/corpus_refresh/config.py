"""Configuration management."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

import yaml

from corpus_refresh.core import ConfigError, ItemKind

SOURCE_PRESETS: dict[ItemKind, dict] = {
    ItemKind.ARTICLE: {
        "url": "https://en.wikipedia.org/api/rest_v1/page/random/summary",
        "rate_limit_delay_ms": 10,
    },
    ItemKind.JOKE: {
        "url": "https://official-joke-api.appspot.com/jokes/random",
        "rate_limit_delay_ms": 100,
    },
}


@dataclass
class SourceConfig:
    """External item source settings."""
    kind: ItemKind = ItemKind.ARTICLE
    url: Optional[str] = None
    user_agent: str = "corpus-refresh/1.0 (contact@example.com)"
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay_ms: int = 1000
    rate_limit_delay_ms: Optional[int] = None


@dataclass
class RefreshConfig:
    """Refresh scheduling settings."""
    interval_minutes: float = 60
    batch_size: int = 200
    max_batch_size: int = 1000
    startup_batch_size: Optional[int] = None
    startup_blocking: bool = False
    shutdown_grace_seconds: float = 30.0


@dataclass
class StoreConfig:
    """Document store settings."""
    uri: str = "sqlite:///corpus.db"


@dataclass
class EventsConfig:
    """Event transport settings. Disabled when url is unset."""
    url: Optional[str] = None
    request_subject: Optional[str] = None
    result_subject: Optional[str] = None
    connect_attempts: int = 3
    connect_retry_delay: float = 1.0


@dataclass
class ApiConfig:
    """HTTP boundary settings."""
    host: str = "0.0.0.0"
    port: int = 8080
    prefix: str = "/items"
    default_page_size: int = 10
    max_page_size: int = 100
    default_refresh_batch_size: int = 100


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    """Application settings."""

    source: SourceConfig = field(default_factory=SourceConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    events: EventsConfig = field(default_factory=EventsConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def kind(self) -> ItemKind:
        return self.source.kind

    @property
    def source_url(self) -> str:
        return self.source.url or SOURCE_PRESETS[self.kind]["url"]

    @property
    def rate_limit_delay_ms(self) -> int:
        if self.source.rate_limit_delay_ms is not None:
            return self.source.rate_limit_delay_ms
        return SOURCE_PRESETS[self.kind]["rate_limit_delay_ms"]

    @property
    def startup_batch_size(self) -> int:
        if self.refresh.startup_batch_size is not None:
            return self.refresh.startup_batch_size
        return self.refresh.batch_size

    @property
    def request_subject(self) -> str:
        return self.events.request_subject or f"{self.kind.value}s.refresh"

    @property
    def result_subject(self) -> str:
        return self.events.result_subject or f"{self.kind.value}s.refresh.result"

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh.interval_minutes * 60


# Environment variable -> (section, key, converter)
ENV_OVERRIDES = {
    "ITEM_KIND": ("source", "kind", ItemKind),
    "SOURCE_URL": ("source", "url", str),
    "USER_AGENT": ("source", "user_agent", str),
    "MAX_RETRIES": ("source", "max_retries", int),
    "RETRY_DELAY_MS": ("source", "retry_delay_ms", int),
    "RATE_LIMIT_DELAY_MS": ("source", "rate_limit_delay_ms", int),
    "REFRESH_INTERVAL_MINUTES": ("refresh", "interval_minutes", float),
    "BATCH_SIZE": ("refresh", "batch_size", int),
    "STORE_URI": ("store", "uri", str),
    "NATS_URL": ("events", "url", str),
    "HOST": ("api", "host", str),
    "PORT": ("api", "port", int),
    "MAX_PAGE_SIZE": ("api", "max_page_size", int),
    "LOG_LEVEL": ("logging", "level", str),
}


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    return data


def _apply_section(settings: Settings, name: str, values: dict) -> None:
    section = getattr(settings, name)
    for key, value in values.items():
        if not hasattr(section, key):
            raise ConfigError(f"Unknown setting {name}.{key}")
        setattr(section, key, value)


def validate(settings: Settings) -> None:
    """Check settings once at startup.

    Raises:
        ConfigError: On any out-of-range value.
    """
    try:
        settings.source.kind = ItemKind(settings.source.kind)
    except ValueError as e:
        raise ConfigError(f"Unknown item kind: {settings.source.kind}") from e

    try:
        checks = _range_checks(settings)
    except TypeError as e:
        raise ConfigError(f"Setting has the wrong type: {e}") from e
    for ok, message in checks:
        if not ok:
            raise ConfigError(message)


def _range_checks(settings: Settings) -> list[tuple[bool, str]]:
    return [
        (settings.source.max_retries >= 1, "source.max_retries must be >= 1"),
        (settings.source.retry_delay_ms >= 0, "source.retry_delay_ms must be >= 0"),
        (settings.rate_limit_delay_ms >= 0, "source.rate_limit_delay_ms must be >= 0"),
        (settings.source.timeout > 0, "source.timeout must be > 0"),
        (settings.refresh.interval_minutes > 0, "refresh.interval_minutes must be > 0"),
        (settings.refresh.max_batch_size >= 1, "refresh.max_batch_size must be >= 1"),
        (
            0 <= settings.refresh.batch_size <= settings.refresh.max_batch_size,
            "refresh.batch_size must be within [0, max_batch_size]",
        ),
        (
            0 <= settings.startup_batch_size <= settings.refresh.max_batch_size,
            "refresh.startup_batch_size must be within [0, max_batch_size]",
        ),
        (settings.api.max_page_size >= 1, "api.max_page_size must be >= 1"),
        (
            1 <= settings.api.default_page_size <= settings.api.max_page_size,
            "api.default_page_size must be within [1, max_page_size]",
        ),
        (
            1 <= settings.api.default_refresh_batch_size <= settings.refresh.max_batch_size,
            "api.default_refresh_batch_size must be within [1, max_batch_size]",
        ),
        (settings.events.connect_attempts >= 1, "events.connect_attempts must be >= 1"),
    ]


def get_settings(
    config_path: Path = Path("config.yaml"),
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)
    environ = os.environ if environ is None else environ

    settings = Settings()

    for name in ("source", "refresh", "store", "events", "api", "logging"):
        if name in config:
            _apply_section(settings, name, config[name] or {})

    for var, (section, key, convert) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            setattr(getattr(settings, section), key, convert(raw))
        except ValueError as e:
            raise ConfigError(f"Invalid value for {var}: {raw!r}") from e

    validate(settings)
    return settings
