"""Custom exception hierarchy for the metrics fan-out proxy."""


class ExporterError(Exception):
    """Base exception for all exporter errors."""


class ConfigurationError(ExporterError):
    """Raised when configuration is missing or invalid."""


class UpstreamError(ExporterError):
    """Raised when an upstream metrics endpoint cannot be scraped.

    Attributes:
        message: Error message
        name: Logical upstream name (e.g., 'service1')
        url: Upstream metrics URL
    """

    stage = "fetch"

    def __init__(
        self,
        message: str,
        name: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.url = url


class InvalidUpstreamURL(UpstreamError):
    """Raised when the request to an upstream cannot be built."""

    stage = "build"


class UpstreamConnectionError(UpstreamError):
    """Raised when unable to connect to or send a request to an upstream."""

    stage = "send"


class UpstreamTimeoutError(UpstreamError):
    """Raised when an upstream does not answer within the fetch deadline."""

    stage = "timeout"


class UpstreamReadError(UpstreamError):
    """Raised when the upstream response body cannot be read."""

    stage = "read"


class ListenerBindError(ExporterError):
    """Raised when the HTTP listener cannot bind its address."""

    def __init__(self, message: str, host: str, port: int) -> None:
        super().__init__(message)
        self.host = host
        self.port = port


class ShutdownTimeoutError(ExporterError):
    """Raised when in-flight requests outlive the shutdown grace period."""

    def __init__(self, grace_period: float) -> None:
        super().__init__(f"in-flight requests still running after {grace_period:g}s grace period")
        self.grace_period = grace_period
