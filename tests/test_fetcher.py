"""Tests for scraping a single upstream."""

import time

import httpx
import pytest

from conftest import break_body, refuse, respond, upstream_transport
from services.fetcher import FETCH_TIMEOUT, MetricsFetcher


def _fetcher(behaviours, logger, timeout=FETCH_TIMEOUT):
    client = httpx.AsyncClient(transport=upstream_transport(behaviours))
    return client, MetricsFetcher(client, logger, timeout=timeout)


def test_default_deadline_is_100ms():
    assert FETCH_TIMEOUT == 0.1


@pytest.mark.asyncio
async def test_returns_body_bytes(logger):
    client, fetcher = _fetcher({"a": respond(b"up 1\n")}, logger)
    async with client:
        result = await fetcher.fetch("a", "http://a/metrics")

    assert result.ok
    assert result.name == "a"
    assert result.payload == b"up 1\n"
    assert logger.records == []


@pytest.mark.asyncio
async def test_error_status_still_counts_as_payload(logger):
    client, fetcher = _fetcher({"a": respond(b"internal error", status=500)}, logger)
    async with client:
        result = await fetcher.fetch("a", "http://a/metrics")

    assert result.payload == b"internal error"


@pytest.mark.asyncio
async def test_empty_body_is_success(logger):
    client, fetcher = _fetcher({"a": respond(b"")}, logger)
    async with client:
        result = await fetcher.fetch("a", "http://a/metrics")

    assert result.ok
    assert result.payload == b""


@pytest.mark.asyncio
async def test_connection_refused_yields_no_payload(logger):
    client, fetcher = _fetcher({"c": refuse()}, logger)
    async with client:
        result = await fetcher.fetch("c", "http://c/metrics")

    assert not result.ok
    assert result.payload is None
    [(message, extra)] = logger.at("ERROR")
    assert "Error sending request" in message
    assert extra == {"upstream": "c", "url": "http://c/metrics", "stage": "send"}


@pytest.mark.asyncio
async def test_slow_upstream_is_cut_off_at_deadline(logger):
    client, fetcher = _fetcher({"b": respond(b"late", delay=0.5)}, logger)
    async with client:
        started = time.monotonic()
        result = await fetcher.fetch("b", "http://b/metrics")
        elapsed = time.monotonic() - started

    assert result.payload is None
    assert elapsed < 0.4
    [(_, extra)] = logger.at("ERROR")
    assert extra["stage"] == "timeout"


@pytest.mark.asyncio
async def test_body_read_failure_discards_partial_body(logger):
    client, fetcher = _fetcher({"a": break_body()}, logger)
    async with client:
        result = await fetcher.fetch("a", "http://a/metrics")

    assert result.payload is None
    [(message, extra)] = logger.at("ERROR")
    assert "Error reading response body" in message
    assert extra["stage"] == "read"


@pytest.mark.asyncio
async def test_malformed_url_is_a_build_failure(logger):
    client, fetcher = _fetcher({}, logger)
    async with client:
        result = await fetcher.fetch("bad", "http://upstream\n/metrics")

    assert result.payload is None
    [(message, extra)] = logger.at("ERROR")
    assert "Error creating request" in message
    assert extra["stage"] == "build"
