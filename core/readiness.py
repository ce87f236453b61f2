"""One-shot shutdown notification."""

import asyncio


class ReadySignal:
    """Open while the exporter serves traffic, closed once it has stopped.

    The signal closes exactly once. Further ``close()`` calls are no-ops and
    it can never be reopened, so any number of tasks may ``wait()`` on it.
    """

    def __init__(self) -> None:
        self._closed = asyncio.Event()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> bool:
        """Close the signal. Returns False if it was already closed."""
        if self._closed.is_set():
            return False
        self._closed.set()
        return True

    async def wait(self) -> None:
        """Block until the signal has been closed."""
        await self._closed.wait()
