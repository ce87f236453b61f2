"""Shared fixtures: recording logger and fake upstream transports."""

import asyncio
from typing import Any

import httpx
import pytest


class RecordingLogger:
    """Collect log calls instead of printing them."""

    def __init__(self):
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def info(self, message: str, **extra: Any) -> None:
        self.records.append(("INFO", message, extra))

    def warn(self, message: str, **extra: Any) -> None:
        self.records.append(("WARN", message, extra))

    def error(self, message: str, **extra: Any) -> None:
        self.records.append(("ERROR", message, extra))

    def at(self, level: str) -> list[tuple[str, dict[str, Any]]]:
        return [(message, extra) for lvl, message, extra in self.records if lvl == level]


class BrokenStream(httpx.AsyncByteStream):
    """Response body that fails part-way through."""

    async def __aiter__(self):
        yield b"partial"
        raise httpx.ReadError("connection reset while reading body")


def respond(body: bytes, delay: float = 0.0, status: int = 200):
    async def behaviour(request: httpx.Request) -> httpx.Response:
        if delay:
            await asyncio.sleep(delay)
        return httpx.Response(status, content=body)

    return behaviour


def refuse():
    async def behaviour(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return behaviour


def break_body():
    async def behaviour(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=BrokenStream())

    return behaviour


def upstream_transport(behaviours: dict) -> httpx.MockTransport:
    """Route each request to the behaviour registered for its host."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return await behaviours[request.url.host](request)

    return httpx.MockTransport(handler)


@pytest.fixture
def logger():
    return RecordingLogger()
