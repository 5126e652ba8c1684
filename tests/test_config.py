"""Tests for configuration loading."""

from pathlib import Path

import pytest

from corpus_refresh.config import get_settings
from corpus_refresh.core import ConfigError, ItemKind


def test_defaults_without_config_file(tmp_path: Path) -> None:
    settings = get_settings(tmp_path / "missing.yaml", environ={})

    assert settings.kind == ItemKind.ARTICLE
    assert settings.source_url == "https://en.wikipedia.org/api/rest_v1/page/random/summary"
    assert settings.rate_limit_delay_ms == 10
    assert settings.source.max_retries == 3
    assert settings.source.retry_delay_ms == 1000
    assert settings.refresh.batch_size == 200
    assert settings.startup_batch_size == 200
    assert settings.request_subject == "articles.refresh"
    assert settings.result_subject == "articles.refresh.result"
    assert settings.events.url is None
    assert settings.api.max_page_size == 100


def test_joke_kind_uses_joke_presets(tmp_path: Path) -> None:
    settings = get_settings(tmp_path / "missing.yaml", environ={"ITEM_KIND": "joke"})

    assert settings.kind == ItemKind.JOKE
    assert settings.source_url == "https://official-joke-api.appspot.com/jokes/random"
    assert settings.rate_limit_delay_ms == 100
    assert settings.request_subject == "jokes.refresh"


def test_yaml_config_applied(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
source:
  kind: joke
  max_retries: 5
refresh:
  interval_minutes: 15
  batch_size: 50
  startup_batch_size: 10
events:
  url: nats://localhost:4222
  request_subject: custom.refresh
""",
        encoding="utf-8",
    )

    settings = get_settings(config_path, environ={})

    assert settings.kind == ItemKind.JOKE
    assert settings.source.max_retries == 5
    assert settings.refresh_interval_seconds == 900
    assert settings.refresh.batch_size == 50
    assert settings.startup_batch_size == 10
    assert settings.events.url == "nats://localhost:4222"
    assert settings.request_subject == "custom.refresh"
    assert settings.result_subject == "jokes.refresh.result"


def test_environment_overrides_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("refresh:\n  batch_size: 50\n", encoding="utf-8")

    settings = get_settings(
        config_path,
        environ={
            "BATCH_SIZE": "75",
            "RATE_LIMIT_DELAY_MS": "0",
            "NATS_URL": "nats://nats:4222",
            "STORE_URI": "memory://",
            "REFRESH_INTERVAL_MINUTES": "0.5",
        },
    )

    assert settings.refresh.batch_size == 75
    assert settings.rate_limit_delay_ms == 0
    assert settings.events.url == "nats://nats:4222"
    assert settings.store.uri == "memory://"
    assert settings.refresh_interval_seconds == 30


@pytest.mark.parametrize("environ", [
    {"BATCH_SIZE": "5000"},
    {"BATCH_SIZE": "lots"},
    {"MAX_RETRIES": "0"},
    {"ITEM_KIND": "poem"},
    {"REFRESH_INTERVAL_MINUTES": "0"},
    {"MAX_PAGE_SIZE": "0"},
])
def test_invalid_settings_raise_config_error(tmp_path: Path, environ: dict) -> None:
    with pytest.raises(ConfigError):
        get_settings(tmp_path / "missing.yaml", environ=environ)


def test_unknown_yaml_key_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("refresh:\n  batchsize: 10\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="refresh.batchsize"):
        get_settings(config_path, environ={})


def test_wrong_yaml_type_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("refresh:\n  batch_size: many\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        get_settings(config_path, environ={})
