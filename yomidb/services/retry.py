"""
Bounded retry with exponential backoff for remote storage calls.
"""

import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from yomidb.config import get_import_config
from yomidb.errors import RetryExhaustedError, TransientStorageError

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """How many times to try an operation and how long to wait in between."""

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.base_delay * (self.multiplier ** (attempt - 1))

    @classmethod
    def from_env(cls) -> "BackoffPolicy":
        config = get_import_config()
        return cls(
            max_attempts=config["max_attempts"],
            base_delay=config["retry_delay"],
            multiplier=config["retry_multiplier"],
        )


NO_RETRY = BackoffPolicy(max_attempts=1, base_delay=0.0)


def retry_call(
    operation: Callable[..., T],
    *args,
    policy: Optional[BackoffPolicy] = None,
    description: str = "",
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
) -> T:
    """
    Call operation, retrying on TransientStorageError.

    Args:
        operation: Callable to invoke with *args and **kwargs
        policy: Attempts and delays; defaults to a single attempt
        description: Label used in retry messages
        sleep: Wait function (replaced in tests)

    Raises:
        RetryExhaustedError: when the last attempt also fails
    """
    policy = policy or NO_RETRY
    label = description or getattr(operation, "__name__", "operation")

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return operation(*args, **kwargs)
        except TransientStorageError as e:
            if attempt >= policy.max_attempts:
                raise RetryExhaustedError(attempt, e) from e
            wait = policy.delay(attempt)
            print(
                f"\n{label} failed (attempt {attempt}/{policy.max_attempts}): {e}",
                file=sys.stderr,
            )
            print(f"Retrying in {wait:g} seconds...", file=sys.stderr)
            sleep(wait)

    # max_attempts < 1
    raise ValueError(f"Invalid retry policy: {policy}")
