"""Tests for response classification and the rate-limit retry."""

from unittest.mock import MagicMock

import pytest
import requests

from core.resilience import (
    ClientError,
    HTTPStatusError,
    NetworkError,
    RateLimitError,
    RateLimitRetry,
    RetryStats,
    ServerError,
    classify_response_error,
    resilient_request,
)
from tests.helpers.http import TrickleResponse, make_response


@pytest.mark.unit
class TestClassifyResponseError:
    def test_success_passes(self):
        classify_response_error(make_response(204))

    def test_429_with_retry_after(self):
        with pytest.raises(RateLimitError) as exc_info:
            classify_response_error(make_response(429, headers={"Retry-After": "7"}))
        assert exc_info.value.retry_after == 7
        assert exc_info.value.status_code == 429

    @pytest.mark.parametrize(
        "status, error_type",
        [(500, ServerError), (503, ServerError), (404, ClientError), (400, ClientError), (304, HTTPStatusError)],
    )
    def test_error_statuses(self, status, error_type):
        with pytest.raises(error_type) as exc_info:
            classify_response_error(make_response(status))
        assert exc_info.value.status_code == status


@pytest.mark.unit
class TestResilientRequest:
    @pytest.mark.parametrize(
        "exc",
        [
            requests.exceptions.Timeout(),
            requests.exceptions.ConnectionError("refused"),
            requests.exceptions.InvalidURL("bad"),
        ],
    )
    def test_transport_errors_become_network_errors(self, exc):
        session = MagicMock()
        session.request.side_effect = exc

        with pytest.raises(NetworkError):
            resilient_request(session, "GET", "https://api.test", timeout=1)

    def test_passes_timeout_and_kwargs(self):
        session = MagicMock()
        session.request.return_value = make_response(200, "ok")

        response = resilient_request(session, "POST", "https://api.test", timeout=2.5, data=b"x")

        assert response.text == "ok"
        session.request.assert_called_once_with("POST", "https://api.test", timeout=2.5, data=b"x")


@pytest.mark.unit
class TestRequestDeadline:
    def test_slow_body_exceeds_deadline(self):
        session = MagicMock()
        response = TrickleResponse([b"[", b"1", b"]"], pause=0.05)
        session.request.return_value = response

        with pytest.raises(NetworkError, match="deadline"):
            resilient_request(session, "GET", "https://api.test", timeout=5, deadline=0.06)

        assert response.closed is True

    def test_body_within_deadline_is_kept(self):
        session = MagicMock()
        session.request.return_value = TrickleResponse([b"[", b"1", b"]"], pause=0.001)

        response = resilient_request(session, "GET", "https://api.test", timeout=5, deadline=10)

        assert response.content == b"[1]"
        assert response.json() == [1]

    def test_deadline_streams_the_request(self):
        session = MagicMock()
        session.request.return_value = make_response(200, "ok")

        response = resilient_request(session, "GET", "https://api.test", timeout=2, deadline=2)

        assert response.text == "ok"
        session.request.assert_called_once_with("GET", "https://api.test", timeout=2, stream=True)

    def test_status_classified_after_read(self):
        session = MagicMock()
        session.request.return_value = make_response(503, "down")

        with pytest.raises(ServerError):
            resilient_request(session, "GET", "https://api.test", timeout=2, deadline=2)


@pytest.mark.unit
class TestRateLimitRetry:
    def make_retry(self, stats, sleeps, **kwargs):
        return RateLimitRetry(stats, delay_seconds=2.0, sleep=sleeps.append, **kwargs)

    def test_succeeds_after_one_rate_limit(self):
        stats, sleeps = RetryStats(), []
        outcomes = [RateLimitError("429"), "ok"]

        def call():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert self.make_retry(stats, sleeps).call(call) == "ok"
        assert stats.rate_limited is True
        assert stats.retry_count == 1
        assert sleeps == [2.0]

    def test_three_attempts_then_reraise(self):
        stats, sleeps = RetryStats(), []
        func = MagicMock(side_effect=RateLimitError("429"))

        with pytest.raises(RateLimitError):
            self.make_retry(stats, sleeps).call(func)

        assert func.call_count == 3
        assert stats.retry_count == 2
        assert stats.rate_limited is True
        assert sleeps == [2.0, 2.0]

    def test_other_errors_not_retried(self):
        stats, sleeps = RetryStats(), []
        func = MagicMock(side_effect=ServerError("boom", status_code=500))

        with pytest.raises(ServerError):
            self.make_retry(stats, sleeps).call(func)

        assert func.call_count == 1
        assert stats == RetryStats()
        assert sleeps == []

    def test_exponential_backoff_keeps_attempt_ceiling(self):
        stats, sleeps = RetryStats(), []
        func = MagicMock(side_effect=RateLimitError("429"))

        with pytest.raises(RateLimitError):
            self.make_retry(stats, sleeps, backoff="exponential").call(func)

        assert func.call_count == 3
        assert len(sleeps) == 2
        assert sleeps[1] >= sleeps[0]

    def test_stats_accumulate_across_calls(self):
        stats, sleeps = RetryStats(), []
        retry = self.make_retry(stats, sleeps)

        for _ in range(2):
            func = MagicMock(side_effect=[RateLimitError("429"), "ok"])
            assert retry.call(func) == "ok"

        assert stats.retry_count == 2
