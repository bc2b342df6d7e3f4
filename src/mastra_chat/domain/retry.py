"""Retry support for requests to the agent server.

Whether a failure is worth another attempt is decided by the failure itself:
client errors carry ``is_retryable`` (network trouble, timeouts, rate limits,
5xx replies), while a rejected credential or a bad configuration never does.
"""

import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from mastra_chat.config import ResilienceConfig
from mastra_chat.domain.exceptions import ChatClientError

logger = logging.getLogger(__name__)


class RetryStrategy(str, Enum):
    """How the wait between attempts grows."""

    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff for one kind of request."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL
    backoff_multiplier: float = 2.0
    jitter: bool = True

    def __post_init__(self):
        if self.max_attempts < 1:
            object.__setattr__(self, "max_attempts", 1)

    @classmethod
    def for_probe(cls, resilience: ResilienceConfig) -> "RetryPolicy":
        """Policy for the connection probe, honouring the global retry switch."""
        return cls(
            max_attempts=resilience.probe_max_attempts if resilience.enable_retries else 1,
            base_delay=resilience.probe_base_delay,
            max_delay=resilience.probe_max_delay,
            strategy=RetryStrategy.EXPONENTIAL,
        )

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """
        Decide whether a failed attempt is followed by another one.

        Args:
            error: Failure of the attempt
            attempt: Zero-based number of the attempt that failed

        Returns:
            True if another attempt should be made
        """
        if attempt + 1 >= self.max_attempts:
            return False
        if isinstance(error, ChatClientError):
            return error.is_retryable
        return isinstance(error, asyncio.TimeoutError | OSError)

    def calculate_delay(self, attempt: int, error: Exception | None = None) -> float:
        """
        Seconds to wait after a failed attempt.

        A ``retry_after`` hint on the error takes precedence over the strategy.
        """
        hint = getattr(error, "retry_after", None)
        if hint is not None:
            return min(float(hint), self.max_delay)

        if self.strategy == RetryStrategy.FIXED:
            delay = self.base_delay
        elif self.strategy == RetryStrategy.LINEAR:
            delay = self.base_delay * (attempt + 1)
        else:
            delay = self.base_delay * self.backoff_multiplier**attempt

        delay = min(delay, self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.0)
        return delay


@dataclass(frozen=True)
class RetryContext:
    """What a retry listener is told about a failed attempt."""

    attempt: int
    error: Exception
    elapsed: float
    next_delay: float | None = None


class RetryCallbacks(ABC):
    """Listener for retry events."""

    @abstractmethod
    async def on_retry(self, context: RetryContext) -> None:
        """Called before waiting for the next attempt."""
        pass

    @abstractmethod
    async def on_failure(self, context: RetryContext) -> None:
        """Called once when no further attempt will be made."""
        pass


class LoggingRetryCallbacks(RetryCallbacks):
    """Reports retry events through a logger."""

    def __init__(self, logger_name: str | None = None):
        self.logger = logging.getLogger(logger_name or __name__)

    async def on_retry(self, context: RetryContext) -> None:
        self.logger.warning(
            f"Attempt {context.attempt + 1} failed after {context.elapsed:.2f}s ({context.error}); "
            f"retrying in {context.next_delay:.2f}s"
        )

    async def on_failure(self, context: RetryContext) -> None:
        self.logger.warning(f"Giving up after {context.attempt + 1} attempt(s): {context.error}")


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    policy: RetryPolicy,
    callbacks: RetryCallbacks | None = None,
    *args,
    **kwargs,
) -> Any:
    """
    Await ``func(*args, **kwargs)`` until it succeeds or the policy gives up.

    Args:
        func: Coroutine function to call
        policy: Attempt budget and backoff
        callbacks: Listener for retry events, logging by default
        *args: Positional arguments for ``func``
        **kwargs: Keyword arguments for ``func``

    Returns:
        Result of the first successful attempt

    Raises:
        The error of the last attempt
    """
    callbacks = callbacks or LoggingRetryCallbacks()
    started = time.monotonic()
    attempt = 0

    while True:
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            elapsed = time.monotonic() - started
            if not policy.should_retry(e, attempt):
                await callbacks.on_failure(RetryContext(attempt, e, elapsed))
                raise
            delay = policy.calculate_delay(attempt, e)
            await callbacks.on_retry(RetryContext(attempt, e, elapsed, delay))
            await asyncio.sleep(delay)
            attempt += 1
            continue

        if attempt:
            logger.info(f"Succeeded on attempt {attempt + 1} after {time.monotonic() - started:.2f}s")
        return result
