"""
Retry policies attached to jobs at enqueue time.

A policy is pure configuration: how many execution attempts a job gets in
total (the first run counts as attempt 1) and how long to wait before each
retry. The queue owns the actual scheduling.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class FixedBackoff:
    """Wait exactly ``delay_ms`` before every retry."""
    delay_ms: int

    type = "fixed"

    def delay_ms_for(self, retry: int) -> int:
        return self.delay_ms


@dataclass(frozen=True)
class ExponentialBackoff:
    """Wait ``base_delay_ms * 2^(retry-1)`` before retry number ``retry``."""
    base_delay_ms: int

    type = "exponential"

    def delay_ms_for(self, retry: int) -> int:
        return self.base_delay_ms * (2 ** (retry - 1))


Backoff = Union[FixedBackoff, ExponentialBackoff]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budget and backoff shape for one job type.

    Attributes:
        max_attempts: Total execution attempts allowed (>= 1)
        backoff: FixedBackoff or ExponentialBackoff
    """
    max_attempts: int
    backoff: Backoff

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def delay_ms_for(self, retry: int) -> int:
        """
        Delay before a retry.

        Args:
            retry: 1-indexed retry number (retry 1 follows the first failed attempt)

        Returns:
            Delay in milliseconds
        """
        if retry < 1:
            raise ValueError("retry is 1-indexed")
        return self.backoff.delay_ms_for(retry)

    def delay_seconds_for(self, retry: int) -> float:
        return self.delay_ms_for(retry) / 1000.0

    def allows_retry(self, attempts_made: int) -> bool:
        """True if another attempt is allowed after ``attempts_made`` failed attempts."""
        return attempts_made < self.max_attempts

    @property
    def backoff_type(self) -> str:
        return self.backoff.type

    @property
    def backoff_delay_ms(self) -> int:
        if isinstance(self.backoff, FixedBackoff):
            return self.backoff.delay_ms
        return self.backoff.base_delay_ms

    @classmethod
    def from_stored(cls, max_attempts: int, backoff_type: str, delay_ms: int) -> "RetryPolicy":
        """Rebuild a policy from the columns persisted alongside a job."""
        if backoff_type == FixedBackoff.type:
            return cls(max_attempts=max_attempts, backoff=FixedBackoff(delay_ms=delay_ms))
        if backoff_type == ExponentialBackoff.type:
            return cls(max_attempts=max_attempts, backoff=ExponentialBackoff(base_delay_ms=delay_ms))
        raise ValueError(f"Unknown backoff type: {backoff_type}")
