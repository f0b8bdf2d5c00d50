"""Exception taxonomy for fetch failures and rejected input."""


class MarineConditionsError(Exception):
    """Base class for every error raised by this package."""


class InvalidInputError(MarineConditionsError, ValueError):
    """A caller supplied an argument the engine refuses to work with."""


class FetchError(MarineConditionsError):
    """A remote data source could not produce data.

    The cached service treats every subclass the same way: fall back to the
    cache, and only surface the error when nothing is cached.
    """


class NetworkError(FetchError):
    """Connectivity problem (DNS, refused connection, timeout)."""


class ServerError(FetchError):
    """The remote API answered with an error status."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Server error with code: {status_code}")


class DecodingError(FetchError):
    """The response body was not in the expected shape."""


class InvalidLocationError(FetchError):
    """The remote API rejected the coordinates."""


class NoDataAvailableError(FetchError):
    """The remote API has no data for this location or time range."""


class UnknownFetchError(FetchError):
    """A data source failed with an exception outside the FetchError family."""
