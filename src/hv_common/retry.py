"""Bounded retry for storage calls.

Retry budget: STORE_RETRY_ATTEMPTS total attempts (default 2, i.e. one retry)
with a fixed backoff. Only transient storage failures are retried; business
errors (AppError) propagate on the first attempt. After the budget is spent
the failure is surfaced as TransientStoreError, never swallowed.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from config.settings import settings
from src.hv_common.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Classify a storage exception as retryable."""
    if isinstance(exc, TransientStoreError):
        return True
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return False


async def with_store_retry(
    op: Callable[[], Awaitable[T]],
    label: str,
    max_attempts: int | None = None,
    backoff_seconds: float | None = None,
) -> T:
    """Run `op` and retry it on transient storage failure.

    `op` must be safe to re-run: it opens its own transaction, so a failed
    attempt has been rolled back before the retry.
    """
    attempts = max_attempts if max_attempts is not None else settings.STORE_RETRY_ATTEMPTS
    backoff = (
        backoff_seconds if backoff_seconds is not None else settings.STORE_RETRY_BACKOFF_SECONDS
    )
    attempt = 0
    while True:
        attempt += 1
        try:
            return await op()
        except Exception as exc:
            if not is_transient(exc):
                raise
            if attempt >= attempts:
                logger.error("%s failed after %d attempts: %s", label, attempt, exc)
                raise TransientStoreError() from exc
            logger.warning(
                "%s transient failure (attempt %d/%d), retrying in %.2fs: %s",
                label, attempt, attempts, backoff, exc,
            )
            await asyncio.sleep(backoff)
