"""CLI entry point for corpus-refresh."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from corpus_refresh.api import create_app
from corpus_refresh.bootstrap import build_services
from corpus_refresh.config import Settings, get_settings
from corpus_refresh.core import ConfigError, InvalidRequestError
from corpus_refresh.logging_config import configure_logging

app = typer.Typer(help="Keep a corpus of random items fresh and serve it over HTTP.")

ConfigOption = typer.Option(Path("config.yaml"), "--config", "-c", help="YAML config file")


def _load(config: Path) -> Settings:
    try:
        settings = get_settings(config)
    except ConfigError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)
    configure_logging(settings.logging)
    return settings


@app.command()
def serve(config: Path = ConfigOption) -> None:
    """Run the HTTP service with background refreshes."""
    settings = _load(config)
    print(f"\n📚 corpus-refresh serving {settings.kind.value}s from {settings.source_url}")
    print(f"  • Store: {settings.store.uri}")
    print(f"  • Events: {settings.events.url or 'disabled'}")
    print(f"  • Refresh every {settings.refresh.interval_minutes} min, batch {settings.refresh.batch_size}")
    uvicorn.run(
        create_app(settings),
        host=settings.api.host,
        port=settings.api.port,
        log_config=None,
    )


@app.command()
def refresh(
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-n", help="Items to fetch"),
    config: Path = ConfigOption,
) -> None:
    """Run one direct refresh and exit."""
    settings = _load(config)
    asyncio.run(_refresh(settings, batch_size))


async def _refresh(settings: Settings, batch_size: Optional[int]) -> None:
    services = build_services(settings)
    try:
        size = settings.refresh.batch_size if batch_size is None else batch_size
        try:
            services.dispatcher.validate_batch_size(size)
        except InvalidRequestError as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(code=2)

        print(f"\n🔄 Refreshing {size} {settings.kind.value}s from {settings.source_url}")
        outcome = await services.refresh_service.refresh(size, request_id="cli")
        total = await services.query_service.count()

        print(f"✓ Fetched: {outcome.success_count}")
        if outcome.fail_count:
            print(f"⚠️  Failed: {outcome.fail_count}")
        print(f"✓ Items in corpus: {total} ({outcome.duration_seconds:.1f}s)")
    finally:
        await services.aclose()


@app.command()
def stats(config: Path = ConfigOption) -> None:
    """Print corpus size and effective settings."""
    settings = _load(config)
    asyncio.run(_stats(settings))


async def _stats(settings: Settings) -> None:
    services = build_services(settings)
    try:
        total = await services.query_service.count()
    finally:
        await services.aclose()

    print(f"\n📊 {settings.kind.value}s in corpus: {total}")
    print(f"  • Source: {settings.source_url}")
    print(f"  • Refresh interval: {settings.refresh.interval_minutes} min")
    print(f"  • Batch size: {settings.refresh.batch_size}")
    print(f"  • Rate limit: {settings.rate_limit_delay_ms} ms")


if __name__ == "__main__":
    app()
