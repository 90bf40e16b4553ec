"""Exceptions raised by the URL shortener.

Two families live here. Data access errors are raised by the repository and
cache adapters and never leave the service layer. Service errors are what the
HTTP layer sees and maps onto status codes.

Classes:
    DAOError:
        Generic base class for data access exceptions.

    RecordNotFoundError:
        Raised when no URL record matches a lookup.

    RecordAlreadyExistsError:
        Raised when an insert violates a uniqueness constraint.

    DataStoreError:
        Raised when the durable store fails (connection issues, timeouts, etc.).

    CacheError:
        Raised when the cache fails (connection issues, timeouts, etc.).

    ShortenerError:
        Generic base class for errors surfaced by the service layer.

    InvalidInputError:
        Raised for empty URLs or tokens, before any I/O happens.

    URLNotFoundError:
        Raised when a token is unknown or expired.

    InternalServiceError:
        Raised when the durable store fails on a critical path.

Example:
    >>> from shortener.exceptions import URLNotFoundError
    >>> raise URLNotFoundError("short url 'abcd1234' not found")
    Traceback (most recent call last):
        ...
    shortener.exceptions.URLNotFoundError: short url 'abcd1234' not found
"""

__all__ = [
    "DAOError",
    "RecordNotFoundError",
    "RecordAlreadyExistsError",
    "DataStoreError",
    "CacheError",
    "ShortenerError",
    "InvalidInputError",
    "URLNotFoundError",
    "InternalServiceError",
]


class DAOError(Exception):
    """Generic base class for data access exceptions."""

    pass


class RecordNotFoundError(DAOError):
    """Exception raised when no URL record matches a lookup."""

    pass


class RecordAlreadyExistsError(DAOError):
    """Exception raised when inserting a record violates a uniqueness constraint."""

    pass


class DataStoreError(DAOError):
    """Exception raised when there is an error in the durable store.

    e.g. connection issues, timeouts, unexpected SQL errors.
    """

    pass


class CacheError(DAOError):
    """Exception raised when a cache read or write fails."""

    pass


class ShortenerError(Exception):
    """Generic base class for service layer exceptions."""

    pass


class InvalidInputError(ShortenerError, ValueError):
    """Exception raised when a URL or token is empty."""

    pass


class URLNotFoundError(ShortenerError):
    """Exception raised when a token is unknown, expired, or never shortened."""

    pass


class InternalServiceError(ShortenerError):
    """Exception raised when the durable store fails on a critical path.

    The message is deliberately generic; the store error is kept as ``__cause__``.
    """

    def __init__(self, message: str = "internal error") -> None:
        super().__init__(message)
