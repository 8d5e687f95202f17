"""Retrying request executor: the single choke point for ledger reads.

Every read runs through the shared RequestThrottle. Rate-limited failures are
retried with exponential backoff, honouring a server-supplied Retry-After hint;
any other failure propagates on the first attempt.
"""

import asyncio
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, TypeVar

from chaindocs_core.exceptions import ExhaustedRetriesError, LedgerRequestError, ThrottledError
from chaindocs_core.ledger.throttle import RequestThrottle
from chaindocs_core.logging import get_chaindocs_logger

logger = get_chaindocs_logger(__name__)

T = TypeVar("T")

RATE_LIMIT_SIGNATURES = ("429", "too many requests", "rate limit", "slow down")
MIN_RETRY_DELAY = 1.0
MAX_BACKOFF = 30.0

_RETRY_AFTER_PATTERN = re.compile(r"retry[-\s]after[:\s]+(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for one kind of ledger read.

    Args:
        attempts: Maximum number of attempts (default 3)
        base_delay: Initial backoff in seconds (default 1.0)
    """

    attempts: int = 3
    base_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")


LISTING_POLICY = RetryPolicy(attempts=3, base_delay=1.0)
"""Signature listings: expensive, retried harder."""

TRANSACTION_POLICY = RetryPolicy(attempts=2, base_delay=0.5)
"""Single transaction lookups."""


def is_rate_limited(error: BaseException) -> bool:
    """True when the error text or status marks it as a throttling response."""
    if isinstance(error, ThrottledError):
        return True
    if isinstance(error, LedgerRequestError) and error.status_code == 429:
        return True
    text = str(error).lower()
    return any(signature in text for signature in RATE_LIMIT_SIGNATURES)


def _response_headers(error: BaseException) -> Mapping[str, Any]:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is None:
        headers = getattr(error, "headers", None)
    return headers if isinstance(headers, Mapping) else {}


def retry_after_hint(error: BaseException) -> float | None:
    """Server-supplied retry delay in seconds: Retry-After header first, then error text.

    The header may hold delay seconds or an HTTP date; a date in the past gives 0.
    """
    for key, value in _response_headers(error).items():
        if str(key).lower() != "retry-after":
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            pass
        try:
            when = parsedate_to_datetime(str(value))
        except (TypeError, ValueError):
            break
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        return max((when - datetime.now(UTC)).total_seconds(), 0.0)
    if match := _RETRY_AFTER_PATTERN.search(str(error)):
        return float(match.group(1))
    return None


class RetryingExecutor:
    """Run ledger reads through the throttle with rate-limit aware retries."""

    def __init__(
        self,
        throttle: RequestThrottle | None = None,
        *,
        min_delay: float = MIN_RETRY_DELAY,
        max_backoff: float = MAX_BACKOFF,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.throttle = throttle or RequestThrottle()
        self.min_delay = min_delay
        self.max_backoff = max_backoff
        self._sleep = sleep

    async def execute_with_retry(
        self,
        request_fn: Callable[[], Awaitable[T]],
        max_attempts: int = 3,
        base_delay: float = 1.0,
    ) -> T:
        """Run ``request_fn`` and return its result.

        Raises:
            ExhaustedRetriesError: every attempt was rate limited. Chained from
                the last error, which is also kept on ``last_error``.
            Exception: any non rate-limit error, unchanged, without retrying.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        backoff = base_delay
        last_error: Exception | None = None
        for attempt in range(max_attempts):
            try:
                return await self.throttle.run(request_fn)
            except Exception as e:
                if not is_rate_limited(e):
                    raise
                last_error = e
                if attempt == max_attempts - 1:
                    break
                hint = retry_after_hint(e)
                delay = max(hint if hint is not None else backoff, self.min_delay)
                logger.info(f"Rate limited. Waiting {delay:.1f}s before retry {attempt + 1}/{max_attempts}")
                await self._sleep(delay)
                backoff = min(backoff * 2, self.max_backoff)

        assert last_error is not None
        raise ExhaustedRetriesError(
            f"Rate limited after {max_attempts} attempts: {last_error}",
            attempts=max_attempts,
            last_error=last_error,
        ) from last_error

    async def execute(self, request_fn: Callable[[], Awaitable[T]], policy: RetryPolicy = LISTING_POLICY) -> T:
        """Run ``request_fn`` under a named retry policy."""
        return await self.execute_with_retry(request_fn, policy.attempts, policy.base_delay)
