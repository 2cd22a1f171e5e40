"""
Resilience Patterns

Page-level HTTP errors, response classification, and the bounded
rate-limit retry used for every page request.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from core.logging import get_logger


T = TypeVar("T")


# -----------------------------------------------------------------------------
# Custom Exceptions
# -----------------------------------------------------------------------------


class PageFetchError(Exception):
    """Base class for a failed page request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[requests.Response] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class RateLimitError(PageFetchError):
    """Raised when rate limited (HTTP 429). The only retried failure."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[int] = None,
        response: Optional[requests.Response] = None,
    ):
        super().__init__(message, status_code=429, response=response)
        self.retry_after = retry_after


class NetworkError(PageFetchError):
    """Raised on network/timeout errors."""

    pass


class HTTPStatusError(PageFetchError):
    """Raised on any non-2xx response that is not a 429."""

    pass


class ServerError(HTTPStatusError):
    """Raised on server errors (5xx)."""

    pass


class ClientError(HTTPStatusError):
    """Raised on client errors (4xx other than 429)."""

    pass


# -----------------------------------------------------------------------------
# Response classification
# -----------------------------------------------------------------------------


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a delta-seconds Retry-After header; HTTP dates are ignored."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def classify_response_error(response: requests.Response) -> None:
    """
    Classify HTTP response errors and raise appropriate exceptions.

    Args:
        response: The HTTP response to classify

    Raises:
        RateLimitError: For 429 responses
        ServerError: For 5xx responses
        ClientError: For 4xx responses
        HTTPStatusError: For any other non-2xx status
    """
    status = response.status_code

    if status == 429:
        raise RateLimitError(
            "Rate limited",
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
            response=response,
        )

    if status >= 500:
        raise ServerError(
            f"Server error: {status} {response.reason or ''}".strip(),
            status_code=status,
            response=response,
        )

    if status >= 400:
        raise ClientError(
            f"Client error: {status} - {response.text[:200]}",
            status_code=status,
            response=response,
        )

    if not 200 <= status < 300:
        raise HTTPStatusError(
            f"Unexpected status: {status}",
            status_code=status,
            response=response,
        )


READ_CHUNK_BYTES = 64 * 1024


def read_within_deadline(
    response: requests.Response, url: str, started: float, deadline: float
) -> None:
    """
    Read a streamed body, failing once the whole request exceeds ``deadline``.

    requests applies its timeout per connect and per socket read, so a
    server trickling bytes could otherwise run far past it.

    Raises:
        NetworkError: If the deadline passes before the body is complete
    """
    chunks = []
    try:
        for chunk in response.iter_content(chunk_size=READ_CHUNK_BYTES):
            chunks.append(chunk)
            if time.perf_counter() - started > deadline:
                raise NetworkError(f"Request exceeded {deadline:g}s deadline: {url}")
    finally:
        response.close()
    # a streamed body is not kept by requests; store it so .content and .text work
    response._content = b"".join(chunks)


def resilient_request(
    session: requests.Session,
    method: str,
    url: str,
    timeout: float,
    deadline: Optional[float] = None,
    **kwargs: Any,
) -> requests.Response:
    """
    Make a single HTTP request and classify the outcome.

    Args:
        session: Session used to send the request
        method: HTTP method (GET, POST, etc.)
        url: Request URL
        timeout: Request timeout in seconds (per connect and per read)
        deadline: Optional bound in seconds on the whole request, body included
        **kwargs: Additional arguments passed to requests

    Returns:
        The HTTP response (always 2xx)

    Raises:
        NetworkError: On connection or timeout errors, or a missed deadline
        RateLimitError: On 429 responses
        ServerError / ClientError / HTTPStatusError: On other non-2xx responses
    """
    log = get_logger("http")

    if deadline is not None:
        kwargs["stream"] = True

    started = time.perf_counter()
    try:
        log.debug("http_request", method=method, url=url)
        response = session.request(method, url, timeout=timeout, **kwargs)
        if deadline is not None:
            read_within_deadline(response, url, started, deadline)
    except requests.exceptions.Timeout:
        log.warning("http_timeout", method=method, url=url)
        raise NetworkError(f"Request timed out: {url}")
    except requests.exceptions.ConnectionError as e:
        log.warning("http_connection_error", method=method, url=url, error=str(e))
        raise NetworkError(f"Connection failed: {url}")
    except requests.exceptions.RequestException as e:
        log.error("http_error", method=method, url=url, error=str(e))
        raise NetworkError(f"Request failed: {url} - {e}")

    classify_response_error(response)
    log.debug("http_response", method=method, url=url, status=response.status_code)
    return response


# -----------------------------------------------------------------------------
# Rate-limit retry
# -----------------------------------------------------------------------------


@dataclass
class RetryStats:
    """Rate-limit bookkeeping for one extraction, shared across its pages."""

    rate_limited: bool = False
    retry_count: int = 0


class RateLimitRetry:
    """
    Retries a call while it raises RateLimitError.

    Every other exception propagates on the first attempt. After
    ``max_attempts`` rate-limited attempts the last RateLimitError is
    re-raised.

    Example:
        stats = RetryStats()
        retry = RateLimitRetry(stats, max_attempts=3, delay_seconds=2.0)
        response = retry.call(lambda: resilient_request(session, "GET", url, 30))
    """

    def __init__(
        self,
        stats: RetryStats,
        max_attempts: int = 3,
        delay_seconds: float = 2.0,
        backoff: str = "fixed",
        max_delay_seconds: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.stats = stats
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.backoff = backoff
        self.max_delay_seconds = max_delay_seconds
        self.sleep = sleep
        self.log = get_logger("retry")

    def _wait_strategy(self):
        if self.backoff == "exponential":
            return wait_exponential(
                multiplier=self.delay_seconds, max=self.max_delay_seconds
            )
        return wait_fixed(self.delay_seconds)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        self.stats.retry_count += 1
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self.log.warning(
            "rate_limited",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            retry_count=self.stats.retry_count,
            retry_after=getattr(error, "retry_after", None),
            delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        )

    def call(self, func: Callable[[], T]) -> T:
        """Invoke ``func`` under the rate-limit retry policy."""

        def _attempt() -> T:
            try:
                return func()
            except RateLimitError:
                self.stats.rate_limited = True
                raise

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait_strategy(),
            retry=retry_if_exception_type(RateLimitError),
            before_sleep=self._before_sleep,
            sleep=self.sleep,
            reraise=True,
        )
        return retrying(_attempt)


__all__ = [
    "PageFetchError",
    "RateLimitError",
    "NetworkError",
    "HTTPStatusError",
    "ServerError",
    "ClientError",
    "parse_retry_after",
    "classify_response_error",
    "resilient_request",
    "RetryStats",
    "RateLimitRetry",
]
