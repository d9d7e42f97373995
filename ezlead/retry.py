"""
Exponential backoff for the outbound calls of the pipelines.

Search requests retry on network faults and on throttling / server-side
HTTP statuses; chat completions retry on the OpenAI client's rate-limit,
timeout and connection errors. Anything else propagates on the first
attempt.
"""

import functools
import time
from typing import Callable, Optional, Tuple, Type

import requests

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class RetryError(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, message: str, attempts: int = 0, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


def should_retry_http_status(status_code: Optional[int]) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


def is_retryable_request_error(exc: Exception) -> bool:
    """
    True for requests errors worth another attempt: timeouts, dropped
    connections and HTTP responses with a retryable status.
    """
    if isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        return True
    if isinstance(exc, requests.exceptions.HTTPError):
        response = exc.response
        return response is not None and should_retry_http_status(response.status_code)
    return False


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying a call with exponential backoff.

    Args:
        max_retries: Retries after the first attempt (0 = single attempt)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        exponential_base: Delay multiplier between retries
        exceptions: Exception types that are candidates for a retry
        retry_if: Optional predicate; a caught exception it rejects is re-raised as is
        on_retry: Optional callback(attempt, exception, delay) before each sleep

    Example:
        @exponential_backoff(max_retries=2, retry_if=is_retryable_request_error,
                             exceptions=(requests.exceptions.RequestException,))
        def fetch(session, url, params):
            resp = session.get(url, params=params, timeout=20)
            resp.raise_for_status()
            return resp
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempts = max_retries + 1
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise
                    if attempt == attempts:
                        raise RetryError(
                            f"Failed after {attempts} attempts: {e}",
                            attempts=attempts,
                            last_error=e,
                        ) from e
                    delay = min(base_delay * exponential_base ** (attempt - 1), max_delay)
                    if on_retry:
                        on_retry(attempt, e, delay)
                    time.sleep(delay)

        return wrapper
    return decorator
