"""
Retry utilities for transient failures.

retry_supabase_query covers the "Connection reset by peer" errors seen when
reading or writing the option blob; retry_with_timeouts drives the bounded
vendor submission retries.
"""
import asyncio
import time
import logging
from typing import Awaitable, Callable, Any, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_supabase_query(query_func: Callable, max_retries: int = 3) -> Any:
    """
    Execute a Supabase query with retry logic for transient errors.

    Usage:
        result = retry_supabase_query(
            lambda: supabase.table("plugin_options").select("*").execute()
        )

    Args:
        query_func: A callable that executes the Supabase query
        max_retries: Maximum number of retry attempts

    Returns:
        The query result
    """
    last_exception = None
    base_delay = 0.5

    for attempt in range(max_retries + 1):
        try:
            return query_func()
        except (ConnectionResetError, ConnectionError, OSError) as e:
            last_exception = e
            error_msg = str(e)
            if "Connection reset by peer" in error_msg or "104" in error_msg:
                if attempt < max_retries:
                    delay = min(base_delay * (2 ** attempt), 4.0)
                    logger.warning(
                        f"Supabase connection reset, retry {attempt + 1}/{max_retries}. "
                        f"Waiting {delay}s..."
                    )
                    time.sleep(delay)
                    continue
            raise
        except Exception as e:
            error_str = str(e).lower()
            if "connection reset" in error_str or "errno 104" in error_str:
                last_exception = e
                if attempt < max_retries:
                    delay = min(base_delay * (2 ** attempt), 4.0)
                    logger.warning(
                        f"Supabase query failed with connection error, "
                        f"retry {attempt + 1}/{max_retries}. Waiting {delay}s..."
                    )
                    time.sleep(delay)
                    continue
            raise

    raise last_exception


async def retry_with_timeouts(
    call: Callable[[float], Awaitable[T]],
    timeouts: Sequence[float],
    is_retryable: Callable[[Exception], bool],
    delay: float = 0.1,
    on_failure: Optional[Callable[[int, Exception, bool], None]] = None,
) -> T:
    """
    Await ``call(timeout)`` once per entry of ``timeouts`` until it succeeds.

    The timeout budget shrinks on later attempts so that all attempts plus the
    delays fit inside the caller's own request timeout. Only exceptions accepted
    by ``is_retryable`` are retried; the last failure is re-raised.

    Args:
        call: Coroutine factory receiving the timeout for this attempt
        timeouts: Per-attempt timeouts, one entry per allowed attempt
        is_retryable: Decides whether an exception earns another attempt
        delay: Seconds to wait between attempts
        on_failure: Called with (attempt index, exception, will_retry)

    Returns:
        The first successful result
    """
    if not timeouts:
        raise ValueError("at least one attempt is required")

    last_index = len(timeouts) - 1
    for attempt, timeout in enumerate(timeouts):
        try:
            return await call(timeout)
        except Exception as e:
            will_retry = attempt < last_index and is_retryable(e)
            if on_failure:
                on_failure(attempt, e, will_retry)
            if not will_retry:
                raise
            await asyncio.sleep(delay)

    # Unreachable: the final attempt either returns or raises
    raise RuntimeError("retry loop exited without a result")
