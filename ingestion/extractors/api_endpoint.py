"""
API Endpoint Extractor

Fetches one or more pages from an arbitrary HTTP endpoint, decodes them
by declared format, and aggregates the records into an ExtractionResult.
"""

import re
import threading
import time
from typing import Callable, Optional
from urllib.parse import urlsplit

import requests
from requests.exceptions import InvalidURL, MissingSchema
from requests.models import PreparedRequest

from core.errors import ConfigurationError, ExtractionCancelled
from core.resilience import PageFetchError, RateLimitRetry, resilient_request
from core.settings import Settings, settings as default_settings
from ingestion.auth import apply_authentication
from ingestion.context import ExtractionContext
from ingestion.decoders import decode_http_response
from ingestion.pagination import next_page_url
from schemas.extraction import ExtractionRequest, ExtractionResult


ALLOWED_SCHEMES = ("http", "https")

# urllib3 accepts these in a host, so the failure would only surface at DNS lookup
INVALID_HOST_CHARS = re.compile(r"[\s\x00-\x1f\x7f<>\"{}|\\^`]")


def validate_endpoint(endpoint: str) -> str:
    """
    Check that the endpoint is an absolute http(s) URL.

    Returns:
        The stripped endpoint

    Raises:
        ConfigurationError: If empty, malformed, or not http(s)
    """
    endpoint = (endpoint or "").strip()
    if not endpoint:
        raise ConfigurationError("API endpoint URL is required", field="endpoint")

    try:
        parts = urlsplit(endpoint)
        parts.port  # non-numeric or out-of-range ports raise here
    except ValueError:
        raise ConfigurationError("Invalid API endpoint URL format", field="endpoint")

    if not parts.scheme:
        raise ConfigurationError("Invalid API endpoint URL format", field="endpoint")

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise ConfigurationError("Only HTTP and HTTPS URLs are allowed", field="endpoint")

    if not parts.hostname or INVALID_HOST_CHARS.search(parts.hostname):
        raise ConfigurationError("Invalid API endpoint URL format", field="endpoint")

    # the same parser the session uses, so anything it would refuse is caught here
    try:
        PreparedRequest().prepare_url(endpoint, None)
    except (InvalidURL, MissingSchema):
        raise ConfigurationError("Invalid API endpoint URL format", field="endpoint")

    return endpoint


def _has_header(headers: dict[str, str], name: str) -> bool:
    return any(key.lower() == name.lower() for key in headers)


class ApiEndpointExtractor:
    """
    Extractor for generic remote APIs.

    Pages are fetched strictly in sequence. Each call to extract() owns its
    own session and aggregate; the extractor itself holds no per-call state
    and can be reused.

    Example:
        extractor = ApiEndpointExtractor()
        result = extractor.extract(ExtractionRequest(endpoint="https://api.example.com/items"))
        print(result.rendered_text)
    """

    def __init__(
        self,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
        app_settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.sleep = sleep
        self.settings = app_settings or default_settings

    def build_headers(self, request: ExtractionRequest) -> dict[str, str]:
        """
        Caller headers plus defaults, with credential headers applied last.

        Raises:
            ConfigurationError: If the authentication config is incomplete
        """
        headers = dict(request.headers)

        if not _has_header(headers, "User-Agent"):
            headers["User-Agent"] = self.settings.user_agent

        if request.method.sends_body and request.body and not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = "application/json"

        return apply_authentication(request.authentication, headers)

    def _fetch_page(
        self,
        session: requests.Session,
        retry: RateLimitRetry,
        request: ExtractionRequest,
        url: str,
        headers: dict[str, str],
    ) -> requests.Response:
        timeout_ms = request.timeout_ms or self.settings.default_timeout_ms
        data = request.body if request.method.sends_body else None

        return retry.call(
            lambda: resilient_request(
                session,
                request.method.value,
                url,
                timeout=timeout_ms / 1000,
                deadline=timeout_ms / 1000,
                headers=headers,
                data=data.encode("utf-8") if data is not None else None,
            )
        )

    def extract(
        self,
        request: ExtractionRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExtractionResult:
        """
        Run the extraction.

        Args:
            request: What to fetch and how to decode it
            cancel_event: Checked before each page; when set, no further
                          pages are requested

        Returns:
            ExtractionResult; ``page_failure`` is set when pagination
            stopped early after at least one page

        Raises:
            ConfigurationError: Invalid endpoint or credentials (no request sent)
            FirstPageFailure: The first page could not be fetched
            ExtractionCancelled: Cancelled before the first page
        """
        endpoint = validate_endpoint(request.endpoint)
        headers = self.build_headers(request)

        ctx = ExtractionContext(request)
        ctx.start()

        retry = RateLimitRetry(
            ctx.retry_stats,
            max_attempts=self.settings.rate_limit_max_attempts,
            delay_seconds=self.settings.rate_limit_delay_seconds,
            backoff=self.settings.rate_limit_backoff,
            max_delay_seconds=self.settings.rate_limit_max_delay_seconds,
            sleep=self.sleep,
        )

        session = self.session_factory()
        try:
            current_url: Optional[str] = endpoint
            page_index = 0

            while current_url:
                if cancel_event is not None and cancel_event.is_set():
                    if page_index == 0:
                        ctx.log.info("extraction_cancelled", pages_fetched=0)
                        raise ExtractionCancelled("Extraction cancelled before the first page")
                    ctx.stop_early(page_index + 1, "ExtractionCancelled", "Cancelled by caller")
                    break

                request_start = time.perf_counter()
                try:
                    response = self._fetch_page(session, retry, request, current_url, headers)
                except PageFetchError as e:
                    if page_index == 0:
                        raise ctx.first_page_failure(e) from e
                    ctx.record_page_failure(page_index + 1, e)
                    break
                finally:
                    ctx.add_request_time((time.perf_counter() - request_start) * 1000)

                decoded = decode_http_response(
                    response, request.response_format, request.data_mapping
                )
                ctx.add_page(current_url, response, decoded)

                current_url = next_page_url(
                    request.pagination,
                    current_url,
                    page_index,
                    response.headers,
                    decoded.document,
                )
                page_index += 1
        finally:
            session.close()

        return ctx.build_result(self.settings)
