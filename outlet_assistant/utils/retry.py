"""
RETRY UTILITY
=============

Calls a function and, if it raises, retries a few times with exponential backoff.
Used around the Google Text-to-Speech call so a network blip or a brief 5xx
doesn't immediately turn a voice reply into an error.

Example:
  audio = with_retry(lambda: session.post(url, json=payload), max_retries=2, initial_delay=0.5)
"""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar


logger = logging.getLogger("outlet_assistant")

T = TypeVar("T")


def with_retry(
    fn: Callable[[], T],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """
    Execute fn(). If it raises one of retry_on, wait initial_delay seconds and try
    again; the delay doubles each retry. After max_retries attempts (including the
    first) the last exception is re-raised. Exceptions outside retry_on propagate at once.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    delay = initial_delay
    name = getattr(fn, "__name__", "call")

    for attempt in range(max_retries):
        try:
            return fn()
        except retry_on as e:
            if attempt == max_retries - 1:
                raise
            logger.warning(
                "Attempt %s/%s failed (%s). Retrying in %.1fs: %s",
                attempt + 1,
                max_retries,
                name,
                delay,
                e,
            )
            if delay > 0:
                time.sleep(delay)
            delay *= 2
