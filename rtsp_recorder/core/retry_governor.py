"""Failure-streak bookkeeping and inter-segment delays."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .logging_utils import get_module_logger

logger = get_module_logger("RetryGovernor")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    settle_delay: float = 1.0
    retry_delay: float = 5.0
    cooldown_delay: float = 30.0
    max_consecutive_failures: int = 10
    housekeeping_interval: int = 10


class NextAction(Enum):
    SETTLE = "settle"
    RETRY = "retry"
    COOLDOWN = "cooldown"


@dataclass(frozen=True, slots=True)
class Decision:
    action: NextAction
    delay: float
    failures: int


class RetryGovernor:
    """Tracks consecutive failures and decides how long to wait before the next segment.

    A success resets the streak and asks for the short settle delay. A
    failure increments it and asks for the retry delay until the streak
    reaches ``max_consecutive_failures``; that failure asks for the long
    cooldown and resets the streak, so the recorder keeps trying forever.
    """

    def __init__(self, policy: RetryPolicy | None = None) -> None:
        self.policy = policy or RetryPolicy()
        self.consecutive_failures = 0
        self.cooldowns = 0

    def housekeeping_due(self) -> bool:
        return self.consecutive_failures % self.policy.housekeeping_interval == 0

    def record_success(self) -> Decision:
        self.consecutive_failures = 0
        return Decision(NextAction.SETTLE, self.policy.settle_delay, 0)

    def record_failure(self) -> Decision:
        self.consecutive_failures += 1
        failures = self.consecutive_failures
        limit = self.policy.max_consecutive_failures
        logger.warning("Recording failed (consecutive failures: %d/%d)", failures, limit)

        if failures >= limit:
            logger.error(
                "Too many consecutive failures (%d). Waiting %d seconds before retry...",
                failures,
                round(self.policy.cooldown_delay),
            )
            self.consecutive_failures = 0
            self.cooldowns += 1
            return Decision(NextAction.COOLDOWN, self.policy.cooldown_delay, failures)

        return Decision(NextAction.RETRY, self.policy.retry_delay, failures)


__all__ = ["Decision", "NextAction", "RetryGovernor", "RetryPolicy"]
