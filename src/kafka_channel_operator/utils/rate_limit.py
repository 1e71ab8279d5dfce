"""Rate limiting utilities for API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from kubernetes.client.exceptions import ApiException

from .. import metrics

_F = TypeVar("_F", bound=Callable[..., Any])

# Rate limit configuration
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))
_KAFKA_RATE_LIMIT_PER_SECOND = float(os.getenv("KAFKA_RATE_LIMIT_PER_SECOND", "5.0"))

# Track last call times; handlers run on a thread pool
_last_call_times: dict[str, float] = {"k8s": 0.0, "kafka": 0.0}
_last_call_lock = threading.Lock()


def _throttle(api_type: str, per_second: float) -> None:
    min_interval = 1.0 / per_second
    with _last_call_lock:
        time_since_last_call = time.time() - _last_call_times[api_type]
        if time_since_last_call < min_interval:
            time.sleep(min_interval - time_since_last_call)
        _last_call_times[api_type] = time.time()


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls.

    Implements a simple token bucket-like rate limiter to prevent overwhelming
    the Kubernetes API server.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        _throttle("k8s", _K8S_RATE_LIMIT_PER_SECOND)
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def rate_limit_kafka(func: _F) -> _F:
    """Decorator to rate limit Kafka admin API calls."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        _throttle("kafka", _KAFKA_RATE_LIMIT_PER_SECOND)
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def is_rate_limit_error(e: Exception) -> bool:
    """Check if an exception is a Kubernetes API rate limit error."""
    if not isinstance(e, ApiException):
        return False
    # Kubernetes API rate limit errors typically return 429 or 503
    return e.status == 429 or (e.status == 503 and "rate limit" in str(e).lower())


def call_with_rate_limit_retry(func: Callable[[], Any], max_retries: int = 3) -> Any:
    """Call a Kubernetes API function, backing off on rate limit errors.

    Exponential backoff: 1s, 2s, 4s. Any other error propagates immediately.
    """
    attempt = 0
    while True:
        try:
            return rate_limit_k8s(func)()
        except ApiException as e:
            if not is_rate_limit_error(e) or attempt >= max_retries:
                raise
            metrics.rate_limit_hits_total.labels(api_type="k8s").inc()
            time.sleep(2 ** attempt)
            attempt += 1
