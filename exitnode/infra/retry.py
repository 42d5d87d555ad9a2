"""Async retry decorator with exponential backoff.

Only idempotent reads are wrapped with it. Create calls are never retried,
since a second attempt could leave a duplicate host behind.

Example::

    @retry(on=on_status_code(429, 503), max_attempts=5)
    async def _get(self, path: str) -> Any:
        ...
"""

from __future__ import annotations

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable

from exitnode.observability.logger import logger

type RetryPredicate = Callable[[Exception], bool]

log = logger.bind(component="retry")


def retry[**P, T](
    on: type[Exception] | tuple[type[Exception], ...] | RetryPredicate = Exception,
    max_attempts: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async function while ``on`` matches the raised exception.

    ``on`` is an exception class, a tuple of them, or a predicate. The delay
    before retry ``n`` is ``min(base_delay * 2**n, max_delay)`` plus up to
    10% jitter. The last exception is re-raised once attempts run out.
    """
    if isinstance(on, type) or isinstance(on, tuple):
        exc_types = on
        should_retry: RetryPredicate = lambda e: isinstance(e, exc_types)
    else:
        should_retry = on

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    attempt += 1
                    if attempt >= max_attempts or not should_retry(e):
                        raise
                    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                    if jitter:
                        delay += random.uniform(0, delay * 0.1)
                    log.warning(
                        "Retry {attempt}/{max} of {fn} after {err}; waiting {delay:.1f}s",
                        attempt=attempt, max=max_attempts - 1,
                        fn=func.__qualname__, err=e, delay=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator


def on_status_code(*codes: int) -> RetryPredicate:
    """Retry when the exception carries one of ``codes`` in its ``status``."""

    def predicate(e: Exception) -> bool:
        return getattr(e, "status", None) in codes

    return predicate
