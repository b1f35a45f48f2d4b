"""Custom exception classes for the application."""

from typing import Optional


class OfferWatchException(Exception):
    """Base exception for all OfferWatch errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(OfferWatchException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with identifier '{identifier}' not found")


# Fetch core


class FetchError(OfferWatchException):
    """Raised when a page could not be retrieved."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Fetching {url} failed: {message}")


class FetchTimeoutError(FetchError):
    """Raised when a single fetch attempt loses the race against the timeout."""

    def __init__(self, url: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(url, f"request timed out after {timeout_seconds} seconds")


class HttpStatusError(FetchError):
    """Raised when the origin answers with a non-success status code."""

    BODY_PREFIX_LENGTH = 200

    def __init__(self, url: str, status: int, body: str = ""):
        self.status = status
        self.body_prefix = (body or "")[: self.BODY_PREFIX_LENGTH]
        super().__init__(url, f"HTTP {status} {self.body_prefix!r}")


class EmptyResponseError(FetchError):
    """Raised when every attempt returned an empty body."""

    def __init__(self, url: str, attempts: int):
        self.attempts = attempts
        super().__init__(url, f"response body was empty after {attempts} attempt(s)")


# Scraping


class ScraperError(OfferWatchException):
    """Raised when a scraper encounters an error."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Scraper error for {source}: {message}")


class ExtractionError(ScraperError):
    """Raised when page markup no longer matches what the adapter expects."""

    def __init__(self, source: str, message: str, url: Optional[str] = None):
        self.url = url
        if url:
            message = f"{message} ({url})"
        super().__init__(source, message)


class SessionError(ScraperError):
    """Raised when a stateful browser session cannot be opened or closed."""
