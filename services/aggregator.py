"""Fan-out/fan-in of upstream scrapes into a single response stream."""

import asyncio
from collections.abc import AsyncIterator, Mapping
from types import MappingProxyType

from core.fetch_types import FetchResult
from core.protocols import MetricsLogger
from services.fetcher import MetricsFetcher

_END = object()


class MetricsAggregator:
    """Scrape every upstream concurrently and yield bodies as they arrive.

    Payloads are yielded in completion order, not configuration order.
    Failed upstreams contribute nothing to the stream.
    """

    def __init__(
        self,
        upstreams: Mapping[str, str],
        fetcher: MetricsFetcher,
        logger: MetricsLogger,
    ) -> None:
        self._upstreams = MappingProxyType(dict(upstreams))
        self._fetcher = fetcher
        self._logger = logger
        # Fetch tasks outlive a disconnected caller; hold them until done
        self._pending: set[asyncio.Task] = set()

    @property
    def upstreams(self) -> Mapping[str, str]:
        return self._upstreams

    async def stream(self) -> AsyncIterator[bytes]:
        """Yield each successful upstream payload as soon as it completes."""
        # Room for every result plus the end marker, so producers never block
        queue: asyncio.Queue = asyncio.Queue(maxsize=len(self._upstreams) + 1)

        fetches = [
            self._spawn(self._fetch_into(queue, name, url))
            for name, url in self._upstreams.items()
        ]
        self._spawn(self._close_when_done(queue, fetches))

        while True:
            result = await queue.get()
            if result is _END:
                return
            if result.ok:
                yield result.payload
            else:
                self._logger.warn(f"metrics[{result.name}] query failed", upstream=result.name)

    async def collect(self) -> bytes:
        """Gather the whole aggregated body (used by the one-shot CLI check)."""
        return b"".join([chunk async for chunk in self.stream()])

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _fetch_into(self, queue: asyncio.Queue, name: str, url: str) -> None:
        result = FetchResult(name)
        try:
            result = await self._fetcher.fetch(name, url)
        finally:
            queue.put_nowait(result)

    async def _close_when_done(self, queue: asyncio.Queue, fetches: list[asyncio.Task]) -> None:
        outcomes = await asyncio.gather(*fetches, return_exceptions=True)
        for name, outcome in zip(self._upstreams, outcomes):
            if isinstance(outcome, BaseException):
                self._logger.error(
                    f"metrics[{name}] fetch crashed: {outcome!r}", upstream=name
                )
        queue.put_nowait(_END)
