"""Custom exception hierarchy for the edge forwarder."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class UpstreamError(ProxyError):
    """Raised when forwarding to an upstream origin fails.

    Attributes:
        message: Error message
        status_code: HTTP status code reported to the caller (optional)
        route: Route prefix the request matched (optional)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        route: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.route = route


class ClientDisconnected(UpstreamError):
    """Raised when the caller went away before the upstream answered."""

    def __init__(
        self,
        route: str | None = None,
    ) -> None:
        super().__init__("Client disconnected", status_code=499, route=route)
