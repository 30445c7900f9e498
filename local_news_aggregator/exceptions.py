class FeedFetchError(Exception):
    """Raised when a feed body cannot be retrieved."""


class FeedParseError(Exception):
    """Raised when a feed body cannot be parsed into items."""


class CacheStorageError(Exception):
    """Raised by a cache storage backend that cannot read or write an entry."""


class InvalidPageRequest(ValueError):
    """Raised for a page < 1, a page size <= 0 or an unknown category filter."""
