"""Shared fetch data types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FetchResult:
    """Outcome of scraping one upstream for one request.

    ``payload`` is None when the upstream could not be scraped.
    """

    name: str
    payload: bytes | None = None

    @property
    def ok(self) -> bool:
        return self.payload is not None
