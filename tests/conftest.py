"""Shared fixtures for the extraction service tests."""

from typing import Optional

import pytest

from core.settings import Settings
from ingestion.extractors import ApiEndpointExtractor
from tests.helpers.http import FakeSession, ScriptItem


@pytest.fixture
def test_settings() -> Settings:
    return Settings(rate_limit_delay_seconds=0.0, log_format="console")


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_extractor(test_settings, sleeps):
    """Factory: make_extractor(script) -> (extractor, session)."""

    def factory(script: list[ScriptItem], app_settings: Optional[Settings] = None):
        session = FakeSession(script)
        extractor = ApiEndpointExtractor(
            session_factory=lambda: session,
            sleep=sleeps.append,
            app_settings=app_settings or test_settings,
        )
        return extractor, session

    return factory
