class RestClientError(Exception):
    """Base exception for REST transport errors."""

    def __init__(self, code: int, message: str) -> None:
        self.message = message
        self.status_code = code
        super().__init__(f"HTTP {code}: {message}")


class RestConnectionError(RestClientError):
    """Network connection errors that may be temporary."""
    pass


class RestTimeoutError(RestClientError):
    """Request timeout errors."""
    pass


class RestResponseError(RestClientError):
    """Non-2xx responses or undecodable bodies."""
    pass
