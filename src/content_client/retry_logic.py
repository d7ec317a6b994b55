"""Retry logic with exponential backoff for API rate limits.

This module provides retry functionality specifically for handling 429 rate
limit responses from the content server and the hosted Git API. It implements
exponential backoff (1s, 2s, 4s) and fails fast for non-rate-limit errors.
"""

import time
import logging
from typing import Callable, TypeVar

import requests

from .errors import APIAccessError

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 3


def retry_on_rate_limit(func: Callable[..., T], *args, **kwargs) -> T:
    """Retry function on 429 rate limit with exponential backoff.

    Rate limits are detected either from a raised exception or from a
    returned ``requests.Response`` whose status is 429.

    Args:
        func: The function to execute with retry logic
        *args: Positional arguments to pass to the function
        **kwargs: Keyword arguments to pass to the function

    Returns:
        The return value of the function

    Raises:
        APIAccessError: If rate limit persists after 3 retries
        Other exceptions: Passed through immediately without retry

    Example:
        >>> response = retry_on_rate_limit(session.get, url, timeout=30)
    """
    for retry_num in range(MAX_RETRIES + 1):  # 0, 1, 2, 3 = 4 attempts total
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            if not _is_rate_limit_error(e):
                raise
            is_rate_limited = True
        else:
            is_rate_limited = getattr(result, "status_code", None) == 429
            if not is_rate_limited:
                return result

        if retry_num >= MAX_RETRIES:
            logger.error(
                f"Rate limit persisted after {MAX_RETRIES} retries, giving up"
            )
            raise APIAccessError(
                f"API failure (after {MAX_RETRIES} retries)", status_code=429
            )

        wait_time = 2 ** retry_num
        logger.info(
            f"Rate limit hit, retrying in {wait_time}s "
            f"(retry {retry_num + 1}/{MAX_RETRIES})"
        )
        time.sleep(wait_time)

    raise APIAccessError(f"API failure (after {MAX_RETRIES} retries)", status_code=429)


RATE_LIMIT_PHRASES = ("too many requests", "rate limit exceeded")


def _is_rate_limit_error(exception: Exception) -> bool:
    """Whether a raised error was caused by a 429 from the server.

    HTTP library errors are judged by status code only: their messages embed
    request URLs, which may contain anything. Timeouts and connection
    failures are never rate limits.
    """
    if isinstance(exception, (requests.Timeout, requests.ConnectionError)):
        return False
    for source in (exception, getattr(exception, "response", None)):
        if source is not None and getattr(source, "status_code", None) == 429:
            return True
    if isinstance(exception, requests.RequestException):
        return False
    message = str(exception).lower()
    return any(phrase in message for phrase in RATE_LIMIT_PHRASES)
