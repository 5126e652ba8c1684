"""Tests for the random-item HTTP source."""

import asyncio

import httpx
import pytest

from corpus_refresh.adapters.sources import RandomItemSource
from corpus_refresh.adapters.sources import random_item_source
from corpus_refresh.core import Article, FetchFailure, Joke

URL = "https://en.wikipedia.org/api/rest_v1/page/random/summary"


def make_source(handler, item_type=Article, **kwargs) -> RandomItemSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("retry_delay_ms", 0)
    return RandomItemSource(
        url=URL,
        item_type=item_type,
        user_agent="corpus-refresh-tests/1.0",
        client=client,
        **kwargs,
    )


def sequence_handler(responses: list):
    """Serve responses in order; exceptions are raised."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        response = responses[min(len(calls), len(responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response

    handler.calls = calls
    return handler


@pytest.mark.asyncio
async def test_fetch_one_success() -> None:
    handler = sequence_handler([httpx.Response(200, json={"title": "Aurora", "description": "Lights"})])
    source = make_source(handler)

    item = await source.fetch_one()

    assert isinstance(item, Article)
    assert item.title == "Aurora"
    assert len(handler.calls) == 1
    assert handler.calls[0].headers["User-Agent"] == "corpus-refresh-tests/1.0"
    assert handler.calls[0].method == "GET"


@pytest.mark.asyncio
async def test_retries_after_server_error() -> None:
    handler = sequence_handler([
        httpx.Response(503),
        httpx.Response(200, json={"title": "Second try"}),
    ])
    source = make_source(handler)

    item = await source.fetch_one()

    assert item.title == "Second try"
    assert len(handler.calls) == 2


@pytest.mark.asyncio
async def test_failure_after_exhausting_retries() -> None:
    handler = sequence_handler([httpx.Response(503)])
    source = make_source(handler, max_retries=3)

    result = await source.fetch_one()

    assert isinstance(result, FetchFailure)
    assert result.attempts == 3
    assert result.reason == "HTTP 503"
    assert len(handler.calls) == 3


@pytest.mark.asyncio
async def test_malformed_body_is_a_failed_attempt() -> None:
    handler = sequence_handler([
        httpx.Response(200, content=b"<html>not json</html>"),
        httpx.Response(200, json={"title": "Recovered"}),
    ])
    source = make_source(handler)

    item = await source.fetch_one()

    assert item.title == "Recovered"
    assert len(handler.calls) == 2


@pytest.mark.asyncio
async def test_missing_primary_field_is_a_failure() -> None:
    handler = sequence_handler([httpx.Response(200, json={"description": "no title"})])
    source = make_source(handler, max_retries=2)

    result = await source.fetch_one()

    assert isinstance(result, FetchFailure)
    assert "invalid item" in result.reason
    assert len(handler.calls) == 2


@pytest.mark.asyncio
async def test_network_error_is_retried() -> None:
    handler = sequence_handler([
        httpx.ConnectError("connection refused"),
        httpx.Response(200, json={"title": "After reconnect"}),
    ])
    source = make_source(handler)

    item = await source.fetch_one()

    assert item.title == "After reconnect"


@pytest.mark.asyncio
async def test_linear_backoff_between_attempts(monkeypatch) -> None:
    delays: list[float] = []

    async def fake_pause(seconds, shutdown=None) -> bool:
        delays.append(seconds)
        return False

    monkeypatch.setattr(random_item_source, "pause", fake_pause)
    handler = sequence_handler([httpx.Response(500)])
    source = make_source(handler, max_retries=3, retry_delay_ms=100)

    await source.fetch_one()

    assert delays == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_shutdown_stops_retrying() -> None:
    shutdown = asyncio.Event()
    shutdown.set()
    handler = sequence_handler([httpx.Response(500)])
    source = make_source(handler, max_retries=3, retry_delay_ms=1000, shutdown=shutdown)

    result = await source.fetch_one()

    assert isinstance(result, FetchFailure)
    assert result.reason == "shutdown"
    assert len(handler.calls) == 1


@pytest.mark.asyncio
async def test_fetch_joke() -> None:
    handler = sequence_handler([
        httpx.Response(200, json={"type": "general", "setup": "Setup", "punchline": "Punchline", "id": 3}),
    ])
    source = make_source(handler, item_type=Joke)

    joke = await source.fetch_one()

    assert isinstance(joke, Joke)
    assert joke.joke_id == 3


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    source = RandomItemSource(URL, Article, "ua", client=client)

    await source.aclose()

    assert not client.is_closed
    await client.aclose()


def test_max_retries_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RandomItemSource(URL, Article, "ua", max_retries=0)
