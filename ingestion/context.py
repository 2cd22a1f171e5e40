"""
Extraction Context

Per-invocation state for one extraction: the record aggregate, timing,
rate-limit counters, and the bound logger.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from core.errors import FirstPageFailure
from core.logging import get_logger
from core.resilience import PageFetchError, RetryStats
from core.settings import Settings, now_iso
from ingestion.decoders import DecodedPage
from ingestion.transformers.formatting import describe_structure, render_records
from schemas.extraction import (
    AuthType,
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResult,
    PageFailure,
    Timings,
)


def _elapsed_ms(since: float) -> float:
    return (time.perf_counter() - since) * 1000


@dataclass
class ExtractionContext:
    """
    Manages the state of one extraction:
    - Aggregated records in page-arrival order
    - Request / parse timing
    - Rate-limit stats shared by every page's retries
    - Early-stop information for partial results

    Usage:
        ctx = ExtractionContext(request)
        ctx.start()
        ctx.add_page(url, response, decoded)
        return ctx.build_result(settings)
    """

    request: ExtractionRequest
    run_id: uuid.UUID = field(default_factory=uuid.uuid4)
    retry_stats: RetryStats = field(default_factory=RetryStats)
    records: list[Any] = field(default_factory=list)
    pages_fetched: int = 0
    status_code: int = 0
    response_size_bytes: int = 0
    response_headers: dict[str, str] = field(default_factory=dict)
    request_time: float = 0.0
    parse_time: float = 0.0
    page_failure: Optional[PageFailure] = None

    _started: float = field(default=0.0, repr=False)
    _log: Any = field(default=None, repr=False)

    def __post_init__(self):
        """Initialize the bound logger."""
        self._log = get_logger("extraction").bind(
            run_id=str(self.run_id),
            endpoint=self.request.endpoint,
        )

    @property
    def log(self):
        """Get the bound logger for this context."""
        return self._log

    def start(self) -> None:
        self._started = time.perf_counter()
        self._log.info(
            "extraction_started",
            method=self.request.method.value,
            response_format=self.request.response_format.value,
            pagination=self.request.pagination.strategy.value
            if self.request.pagination.enabled
            else None,
        )

    def elapsed_ms(self) -> float:
        return _elapsed_ms(self._started)

    def add_request_time(self, ms: float) -> None:
        self.request_time += ms

    def add_page(self, url: str, response: requests.Response, decoded: DecodedPage) -> None:
        """Append one successful page to the aggregate."""
        self.pages_fetched += 1
        self.status_code = response.status_code
        self.response_headers = dict(response.headers)
        self.response_size_bytes += len(response.content)
        self.parse_time += decoded.parse_time

        if isinstance(decoded.records, list):
            self.records.extend(decoded.records)
            added = len(decoded.records)
        else:
            self.records.append(decoded.records)
            added = 1

        self._log.info(
            "page_fetched",
            page=self.pages_fetched,
            url=url,
            status=response.status_code,
            records=added,
            degraded=decoded.degraded,
        )

    def stop_early(
        self,
        page_number: int,
        error_type: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        """Record why pagination ended before its natural end."""
        self.page_failure = PageFailure(
            page_number=page_number,
            error_type=error_type,
            message=message,
            status_code=status_code,
        )
        self._log.warning(
            "page_failed",
            page=page_number,
            error_type=error_type,
            error=message,
            status=status_code,
            pages_fetched=self.pages_fetched,
        )

    def record_page_failure(self, page_number: int, error: PageFetchError) -> None:
        self.stop_early(page_number, type(error).__name__, str(error), error.status_code)

    def first_page_failure(self, error: PageFetchError) -> FirstPageFailure:
        """Build the terminal error for a failed first page."""
        elapsed = self.elapsed_ms()
        self._log.error(
            "extraction_failed",
            error=f"{type(error).__name__}: {error}",
            status=error.status_code,
            retry_count=self.retry_stats.retry_count,
            rate_limited=self.retry_stats.rate_limited,
            elapsed_ms=elapsed,
        )
        return FirstPageFailure(
            f"API request failed: {error}",
            url=self.request.endpoint,
            status_code=error.status_code,
            elapsed_ms=elapsed,
            retry_count=self.retry_stats.retry_count,
            rate_limited=self.retry_stats.rate_limited,
            cause=error,
        )

    def build_result(self, app_settings: Settings) -> ExtractionResult:
        """Render the aggregate and assemble the result."""
        render_start = time.perf_counter()
        rendered = render_records(
            self.records,
            self.request.response_format,
            sample_size=app_settings.render_sample_size,
            summary_threshold=app_settings.render_summary_threshold,
            max_chars=app_settings.render_max_chars,
        )
        structure = describe_structure(self.records)
        self.parse_time += _elapsed_ms(render_start)
        total_time = self.elapsed_ms()

        headers = {name.lower(): value for name, value in self.response_headers.items()}

        self._log.info(
            "extraction_completed",
            records=len(self.records),
            pages_fetched=self.pages_fetched,
            retry_count=self.retry_stats.retry_count,
            partial=self.page_failure is not None,
            duration_ms=total_time,
        )

        return ExtractionResult(
            rendered_text=rendered,
            record_count=len(self.records),
            pages_fetched=self.pages_fetched,
            status_code=self.status_code,
            response_size_bytes=self.response_size_bytes,
            timings=Timings(
                request_time=self.request_time,
                parse_time=self.parse_time,
                total_time=total_time,
            ),
            rate_limited=self.retry_stats.rate_limited,
            retry_count=self.retry_stats.retry_count,
            data_structure_description=structure,
            page_failure=self.page_failure,
            metadata=ExtractionMetadata(
                url=self.request.endpoint,
                method=self.request.method,
                extracted_at=now_iso(app_settings),
                response_format=self.request.response_format,
                has_authentication=self.request.authentication.type != AuthType.NONE,
                response_headers=headers,
                content_type=headers.get("content-type", "unknown"),
            ),
            records=self.records,
        )
