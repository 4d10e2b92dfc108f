"""Bounded polling for ledger state that lags the clearnode."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 30
    interval: float = 2.0       # seconds between attempts

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval < 0:
            raise ValueError("interval must be >= 0")


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    done: Callable[[T], bool],
    policy: RetryPolicy,
    label: str = "poll",
) -> tuple[T, int]:
    """Call ``fetch`` until ``done(value)`` or the policy is exhausted.

    Returns (last value, attempts used); the caller decides what an
    exhausted policy means by checking ``done`` on the returned value.
    Errors from ``fetch`` propagate.
    """
    attempt = 0
    while True:
        attempt += 1
        value = await fetch()
        if done(value) or attempt >= policy.max_attempts:
            return value, attempt
        if attempt % 5 == 0:
            logger.info("%s: attempt %d/%d, last value %s", label, attempt, policy.max_attempts, value)
        await asyncio.sleep(policy.interval)
