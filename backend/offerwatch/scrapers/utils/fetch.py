"""Resilient page fetching shared by every static source.

A fetch races the HTTP call against a timeout, rejects non-success
statuses, and retries (same URL) when the origin answers with an empty
body, up to a bounded number of attempts.
"""

import asyncio
import time
from typing import Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_none,
    wait_random,
)

from offerwatch.config import settings
from offerwatch.core.exceptions import (
    EmptyResponseError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
)


logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "pl-PL,pl;q=0.9,en-US;q=0.8,en;q=0.7",
}


class PageFetcher:
    """GET a URL and return its body text.

    Args:
        client: Optional httpx.AsyncClient to use (owned by the caller)
        timeout_seconds: Per-attempt timeout (defaults to settings)
        max_attempts: Total attempts allowed for empty bodies (defaults to settings)
        jitter_seconds: Upper bound of a random pause between attempts
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        jitter_seconds: Optional[float] = None,
    ):
        self.timeout_seconds = (
            settings.FETCH_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )
        self.max_attempts = settings.MAX_FETCH_ATTEMPTS if max_attempts is None else max_attempts
        self.jitter_seconds = (
            settings.FETCH_JITTER_SECONDS if jitter_seconds is None else jitter_seconds
        )
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self._client = client
        self._owns_client = client is None
        self.logger = logger.bind(service="page_fetcher")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            # The timeout race below is the only deadline
            self._client = httpx.AsyncClient(
                headers=DEFAULT_HEADERS,
                follow_redirects=True,
                timeout=None,
            )
        return self._client

    async def fetch(self, url: str) -> str:
        """Fetch a page body.

        Args:
            url: Absolute URL to GET

        Returns:
            Non-empty response body

        Raises:
            FetchTimeoutError: If an attempt does not settle within the timeout
            HttpStatusError: If the origin answers with a non-success status
            EmptyResponseError: If all attempts returned an empty body
            FetchError: On any other transport failure
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random(0, self.jitter_seconds) if self.jitter_seconds else wait_none(),
            retry=retry_if_exception_type(EmptyResponseError),
            before_sleep=self._log_retry,
            reraise=True,
        )

        body = ""
        async for attempt in retrying:
            with attempt:
                body = await self._attempt(url, attempt.retry_state.attempt_number)
        return body

    async def _attempt(self, url: str, attempt_number: int) -> str:
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(self.client.get(url), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self.logger.warning(
                "fetch_timed_out",
                url=url,
                attempt=attempt_number,
                timeout_seconds=self.timeout_seconds,
            )
            raise FetchTimeoutError(url, self.timeout_seconds) from None
        except httpx.HTTPError as e:
            self.logger.warning("fetch_transport_error", url=url, error=str(e))
            raise FetchError(url, str(e)) from e

        body = response.text
        self.logger.debug(
            "page_fetched",
            url=url,
            status=response.status_code,
            attempt=attempt_number,
            duration_ms=round((time.perf_counter() - started) * 1000),
        )

        if not response.is_success:
            raise HttpStatusError(url, response.status_code, body)
        if not body:
            raise EmptyResponseError(url, attempt_number)
        return body

    def _log_retry(self, retry_state: RetryCallState) -> None:
        self.logger.info(
            "retrying_empty_response",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
        )

    async def close(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
