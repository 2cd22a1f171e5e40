"""Tests for the async entry point."""

import asyncio
import threading

import pytest

from ingestion import run_extraction
from schemas.extraction import ExtractionRequest
from tests.helpers.http import make_response


class BlockingExtractor:
    """Runs until its cancel event is set."""

    def __init__(self):
        self.started = threading.Event()

    def extract(self, request, cancel_event):
        self.started.set()
        cancel_event.wait(timeout=5)
        return None


@pytest.mark.unit
class TestRunExtraction:
    def test_returns_result(self, make_extractor):
        extractor, _ = make_extractor([make_response(200, [{"id": 1}, {"id": 2}])])

        result = asyncio.run(
            run_extraction(ExtractionRequest(endpoint="https://api.test/items"), extractor=extractor)
        )

        assert result.record_count == 2

    def test_cancelling_the_task_sets_the_event(self):
        extractor = BlockingExtractor()
        event = threading.Event()

        async def scenario():
            task = asyncio.create_task(
                run_extraction(
                    ExtractionRequest(endpoint="https://api.test/items"),
                    extractor=extractor,
                    cancel_event=event,
                )
            )
            await asyncio.to_thread(extractor.started.wait, 5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert event.is_set()
