"""Tests for rate limiting utilities."""

from __future__ import annotations

import time
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client.exceptions import ApiException

from kafka_channel_operator.utils.rate_limit import (
    call_with_rate_limit_retry,
    is_rate_limit_error,
    rate_limit_k8s,
    rate_limit_kafka,
)


class TestRateLimitDecorators:
    """Test cases for the rate limiting decorators."""

    def test_rate_limit_k8s_decorator(self):
        """Test that k8s rate limiting decorator works."""
        call_count = 0

        @rate_limit_k8s
        def test_func():
            nonlocal call_count
            call_count += 1
            return "success"

        assert test_func() == "success"
        assert call_count == 1

    def test_rate_limit_kafka_with_args(self):
        """Test rate limiting with function arguments."""
        @rate_limit_kafka
        def test_func(a, b, c=None):
            return f"{a}-{b}-{c}"

        assert test_func("x", "y", c="z") == "x-y-z"

    @patch("kafka_channel_operator.utils.rate_limit._KAFKA_RATE_LIMIT_PER_SECOND", 100.0)
    def test_rate_limit_kafka_enforces_rate(self):
        """Test that rate limiting enforces minimum interval."""
        call_times = []

        @rate_limit_kafka
        def test_func():
            call_times.append(time.time())

        for _ in range(3):
            test_func()

        # With 100 calls/sec, minimum interval is 0.01 seconds
        assert call_times[1] - call_times[0] >= 0.009
        assert call_times[2] - call_times[1] >= 0.009


class TestIsRateLimitError:
    """Test cases for is_rate_limit_error."""

    def test_429_is_rate_limit(self):
        assert is_rate_limit_error(ApiException(status=429))

    def test_503_with_rate_limit_reason(self):
        assert is_rate_limit_error(ApiException(status=503, reason="Rate limit exceeded"))

    def test_other_errors_are_not(self):
        assert not is_rate_limit_error(ApiException(status=503, reason="Unavailable"))
        assert not is_rate_limit_error(ApiException(status=404))
        assert not is_rate_limit_error(ValueError("429"))


class TestCallWithRateLimitRetry:
    """Test cases for call_with_rate_limit_retry."""

    @patch("kafka_channel_operator.utils.rate_limit.time.sleep")
    @patch("kafka_channel_operator.utils.rate_limit.metrics")
    def test_retries_after_rate_limit(self, mock_metrics, mock_sleep):
        """Test that a 429 is retried with backoff."""
        func = MagicMock(side_effect=[ApiException(status=429), "ok"])

        assert call_with_rate_limit_retry(func) == "ok"
        assert func.call_count == 2
        mock_sleep.assert_any_call(1)
        mock_metrics.rate_limit_hits_total.labels.assert_called_with(api_type="k8s")

    @patch("kafka_channel_operator.utils.rate_limit.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        """Test that persistent rate limiting eventually propagates."""
        func = MagicMock(side_effect=ApiException(status=429))

        with pytest.raises(ApiException):
            call_with_rate_limit_retry(func, max_retries=2)
        assert func.call_count == 3

    def test_other_errors_propagate_immediately(self):
        """Test that non rate limit errors are not retried."""
        func = MagicMock(side_effect=ApiException(status=403))

        with pytest.raises(ApiException):
            call_with_rate_limit_retry(func)
        assert func.call_count == 1
