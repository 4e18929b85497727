"""Exception types and retry helper for ui-code-audit."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0


class AuditError(Exception):
    """Base class for audit failures."""


class ConfigError(AuditError):
    """Missing or invalid configuration. Fatal, raised before scanning starts."""


class ExternalToolError(AuditError):
    """An external linter, agent or page fetch failed."""


class SinkError(AuditError):
    """The issue stream could not be opened."""


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    fallback: T,
    description: str,
    attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_RETRY_DELAY,
    retry_on: tuple[type[BaseException], ...] = (ExternalToolError,),
) -> T:
    """Run ``operation`` with exponential backoff, returning ``fallback`` on exhaustion.

    Only exceptions listed in ``retry_on`` are retried; anything else propagates.
    The delay before attempt ``n`` (n >= 2) is ``base_delay * 2 ** (n - 2)``.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt >= attempts:
                logger.error(f"{description} failed after {attempts} attempts: {e}")
                break
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                f"{description} failed (attempt {attempt}/{attempts}): {e}; retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
    return fallback
