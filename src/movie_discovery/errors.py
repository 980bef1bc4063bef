"""Error taxonomy for remote movie data access."""


class MovieApiError(Exception):
    """Base class for failures talking to a remote data source."""


class NetworkError(MovieApiError):
    """No response: DNS failure, refused connection, dropped socket."""


class RequestTimeout(MovieApiError):
    """The remote side did not answer within the request timeout."""


class RemoteError(MovieApiError):
    """The remote side answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"Remote request failed with status {status_code}")


class NotFound(RemoteError):
    """The requested id does not exist upstream."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(404, f"Not found: {resource}")


class ParseError(MovieApiError):
    """The response body could not be decoded into the expected shape."""


class TrendingStoreError(MovieApiError):
    """The trending document store rejected or failed a request."""
