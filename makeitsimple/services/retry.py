"""
Retry Controller.

Wraps one provider call with bounded exponential backoff:
  1. Run the operation.
  2. On failure, classify the error.
  3. Transient (429/503) and attempts left → sleep, double the backoff, retry.
  4. Anything else, or the budget is spent → raise the classified error.

State lives in local variables only, so concurrent requests never share it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from makeitsimple.config import Settings
from makeitsimple.errors import ConfigurationError, ValidationError, classify_error

logger = logging.getLogger("retry_controller")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_backoff_ms: int = 800

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.initial_backoff_ms < 0:
            raise ValueError("initial_backoff_ms must be >= 0")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.MAX_RETRIES,
            initial_backoff_ms=settings.INITIAL_BACKOFF_MS,
        )


async def call_with_retry(
    operation: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: Optional[str] = None,
) -> Any:
    """
    Run `operation` at most `policy.max_retries` times.

    `sleep` receives seconds and is swapped out in tests.
    The raised ProviderError carries `status` and `attempts`.
    """
    backoff_ms = policy.initial_backoff_ms
    label = label or "provider_call"

    for attempt in range(1, policy.max_retries + 1):
        try:
            return await operation()
        except (ValidationError, ConfigurationError):
            raise
        except Exception as exc:
            error = classify_error(exc)
            error.attempts = attempt

            if not error.transient or attempt >= policy.max_retries:
                if error is exc:
                    raise
                raise error from exc

            logger.warning(
                f"[Retry] {label} got status {error.status} "
                f"(attempt {attempt}/{policy.max_retries}), retrying in {backoff_ms}ms"
            )
            await sleep(backoff_ms / 1000.0)
            backoff_ms *= 2
