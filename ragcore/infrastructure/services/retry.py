"""
Name: Retry Policies (tenacity)

Responsibilities:
  - Decide whether a provider failure is worth another attempt
  - Build the provider retry decorator (embedding HTTP calls)
  - Build the one-retry policy for transient similarity index failures

Collaborators:
  - tenacity: stop / wait / retry strategies
  - config.Settings: retry_max_attempts, retry_base_delay_seconds, retry_max_delay_seconds
  - exceptions.RetrievalError: the transient flag drives index retries

Constraints:
  - An explicit HTTP status wins over name or message heuristics
  - Malformed queries, filters and generation calls are never retried

Notes:
  - Waits grow exponentially from the base delay, capped, plus up to one
    base delay of jitter
"""

from typing import Callable, Optional

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...config import get_settings
from ...exceptions import RetrievalError
from ...logger import logger


TRANSIENT_HTTP_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})
PERMANENT_HTTP_CODES: frozenset[int] = frozenset({400, 401, 403, 404})

# R: Lower-cased fragments of exception class names (google.genai, grpc, psycopg)
_TRANSIENT_TYPE_MARKERS = (
    "timeout",
    "connection",
    "temporary",
    "unavailable",
    "resourceexhausted",
    "deadline",
    "aborted",
)

_TRANSIENT_MESSAGE_MARKERS = (
    "rate limit",
    "too many requests",
    "quota exceeded",
    "temporarily unavailable",
    "connection reset",
    "connection refused",
    "timed out",
    "deadline exceeded",
)


def get_http_status_code(exception: BaseException) -> Optional[int]:
    """
    R: Status code carried by a provider exception, if any.

    google.genai APIError exposes `.code`; other clients expose
    `.status_code` or `.response.status_code`.
    """
    candidates = (
        getattr(exception, "code", None),
        getattr(getattr(exception, "response", None), "status_code", None),
        getattr(exception, "status_code", None),
    )
    for candidate in candidates:
        # gRPC status enums and small ints are not HTTP codes
        if isinstance(candidate, int) and not isinstance(candidate, bool) and candidate >= 100:
            return candidate
    return None


def is_transient_error(exception: BaseException) -> bool:
    """R: True when retrying the provider call may succeed."""
    status = get_http_status_code(exception)
    if status in PERMANENT_HTTP_CODES:
        return False
    if status in TRANSIENT_HTTP_CODES:
        return True

    if isinstance(exception, (TimeoutError, ConnectionError)):
        return True
    type_name = type(exception).__name__.lower()
    if any(marker in type_name for marker in _TRANSIENT_TYPE_MARKERS):
        return True

    message = str(exception).lower()
    return any(marker in message for marker in _TRANSIENT_MESSAGE_MARKERS)


def is_transient_retrieval_error(exception: BaseException) -> bool:
    """R: Only RetrievalError(transient=True) is retried."""
    return isinstance(exception, RetrievalError) and exception.transient


def _log_retry(retry_state: RetryCallState) -> None:
    fn_name = getattr(retry_state.fn, "__name__", "unknown")
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait_seconds = retry_state.next_action.sleep if retry_state.next_action else 0.0

    logger.warning(
        "Retrying after failure",
        extra={
            "function_name": fn_name,
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(wait_seconds, 3),
            "error_type": type(exc).__name__ if exc else None,
            "error": str(exc) if exc else None,
        },
    )


def _policy(
    attempts: int,
    initial_delay: float,
    max_delay: float,
    should_retry: Callable[[BaseException], bool],
) -> Callable:
    return retry(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential_jitter(
            initial=initial_delay,
            max=max(max_delay, initial_delay),
            jitter=initial_delay,
        ),
        retry=retry_if_exception(should_retry),
        before_sleep=_log_retry,
        reraise=True,
    )


def create_retry_decorator(
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
) -> Callable:
    """
    R: Retry decorator for embedding provider calls.

    Arguments left as None fall back to Settings.
    """
    settings = get_settings()
    return _policy(
        max_attempts or settings.retry_max_attempts,
        settings.retry_base_delay_seconds if base_delay is None else base_delay,
        settings.retry_max_delay_seconds if max_delay is None else max_delay,
        is_transient_error,
    )


def create_retrieval_retry(attempts: int, delay_seconds: float) -> Callable:
    """R: Index call policy; attempts counts the first try (2 = one retry)."""
    return _policy(attempts, delay_seconds, delay_seconds * 4, is_transient_retrieval_error)
