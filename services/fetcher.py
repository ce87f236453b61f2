"""Scraping a single upstream metrics endpoint."""

import asyncio

import httpx

from core.exceptions import (
    InvalidUpstreamURL,
    UpstreamConnectionError,
    UpstreamError,
    UpstreamReadError,
    UpstreamTimeoutError,
)
from core.fetch_types import FetchResult
from core.protocols import MetricsLogger

FETCH_TIMEOUT = 0.1  # seconds, dispatch through full body read


class MetricsFetcher:
    """Fetch raw metrics payloads from upstreams with a hard deadline."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        logger: MetricsLogger,
        timeout: float = FETCH_TIMEOUT,
    ) -> None:
        self._client = client
        self._logger = logger
        self._timeout = timeout

    async def fetch(self, name: str, url: str) -> FetchResult:
        """Return the upstream body, or an empty result if it could not be read.

        The status code is not inspected: any response that is fully read
        before the deadline counts, including error pages.
        """
        try:
            payload = await asyncio.wait_for(self._get(name, url), timeout=self._timeout)
        except TimeoutError:
            self._log_failure(
                UpstreamTimeoutError(f"no response within {self._timeout:g}s", name, url)
            )
            return FetchResult(name)
        except UpstreamError as e:
            self._log_failure(e)
            return FetchResult(name)
        return FetchResult(name, payload)

    async def _get(self, name: str, url: str) -> bytes:
        try:
            request = self._client.build_request("GET", url)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, TypeError) as e:
            raise InvalidUpstreamURL(f"Error creating request: {e}", name, url) from e

        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Error sending request: {e}", name, url) from e
        except httpx.RequestError as e:
            raise UpstreamConnectionError(f"Error sending request: {e}", name, url) from e

        try:
            return await response.aread()
        except (httpx.RequestError, httpx.StreamError) as e:
            raise UpstreamReadError(f"Error reading response body: {e}", name, url) from e
        finally:
            await response.aclose()

    def _log_failure(self, error: UpstreamError) -> None:
        self._logger.error(
            str(error),
            upstream=error.name,
            url=error.url,
            stage=error.stage,
        )
