"""
Ingestion Entry Points

Helpers for running an extraction from synchronous or async callers.
"""

import asyncio
import threading
from typing import Optional

from ingestion.extractors import ApiEndpointExtractor
from schemas.extraction import ExtractionRequest, ExtractionResult


async def run_extraction(
    request: ExtractionRequest,
    extractor: Optional[ApiEndpointExtractor] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ExtractionResult:
    """
    Run an extraction without blocking the event loop.

    The blocking HTTP work executes in a thread pool worker via
    asyncio.to_thread(). If the awaiting task is cancelled, the cancel
    event is set so no further pages are requested.

    Args:
        request: The extraction to run
        extractor: Optional extractor (a default one is created otherwise)
        cancel_event: Optional event shared with the caller

    Returns:
        ExtractionResult
    """
    extractor = extractor or ApiEndpointExtractor()
    cancel_event = cancel_event or threading.Event()
    try:
        return await asyncio.to_thread(extractor.extract, request, cancel_event)
    except asyncio.CancelledError:
        cancel_event.set()
        raise


__all__ = [
    "ApiEndpointExtractor",
    "run_extraction",
]
