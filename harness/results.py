"""Outcomes of conformance checks and the context checks report through."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from config.models import RetryConfig


logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Result of a single check."""
    PASSED = "passed"
    FAILED = "failed"
    INCONCLUSIVE = "inconclusive"


class CheckAborted(Exception):
    """Stops a check after a fatal failure has been recorded."""


class Inconclusive(Exception):
    """Stops a check whose outcome depends on transient network state.

    Not an error: the adapter was not shown to be wrong, the network just
    did not offer data to verify it against.
    """


class CheckContext:
    """Collects the failures of one running check.

    ``error`` records a failure and lets the check continue, ``fatal``
    records a failure and stops it, ``skip`` stops it as inconclusive.
    """

    def __init__(
        self,
        name: str,
        retry: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.name = name
        self.retry = retry or RetryConfig()
        self.sleep = sleep
        self.messages: list[str] = []
        self.failed = False

    def error(self, message: str) -> None:
        self.failed = True
        self.messages.append(message)
        logger.warning(f"{self.name}: {message}", extra={"check": self.name})

    def fatal(self, message: str) -> None:
        self.error(message)
        raise CheckAborted(message)

    def skip(self, message: str) -> None:
        self.messages.append(message)
        logger.info(f"{self.name} inconclusive: {message}", extra={"check": self.name})
        raise Inconclusive(message)


@dataclass
class CheckResult:
    """Result of one named check."""

    name: str
    outcome: Outcome
    messages: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "messages": self.messages,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class IntegrationReport:
    """Report of all checks run against one coin."""

    coin: str
    run_id: Optional[str] = None
    results: list[CheckResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def success(self) -> bool:
        """True if no check failed; inconclusive checks do not fail a run."""
        return self.count(Outcome.FAILED) == 0

    def to_dict(self) -> dict:
        """Convert report to dictionary."""
        return {
            "coin": self.coin,
            "run_id": self.run_id,
            "results": [r.to_dict() for r in self.results],
            "passed": self.count(Outcome.PASSED),
            "failed": self.count(Outcome.FAILED),
            "inconclusive": self.count(Outcome.INCONCLUSIVE),
            "duration_seconds": self.duration_seconds,
            "success": self.success,
        }
