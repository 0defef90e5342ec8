"""
Error classification and exponential backoff for Proxycurl calls.

- ErrorClassifier maps a failed attempt to a RetryClass
- compute_delay_ms maps (attempt, RetryClass) to a wait in milliseconds
- RetryExecutor drives one logical operation through an explicit state machine
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple

import anyio

from .errors import ExhaustedRetries, NonRetryableFailure
from .observability import log_event
from .outcome import CallFailure, CallOutcome, CallSuccess

RETRYABLE_SERVER_STATUSES = frozenset({500, 502, 503, 504})
RATE_LIMIT_STATUS = 429
FORBIDDEN_STATUS = 403

# Proxycurl answers 403 both for bad keys and for a credit accounting race.
# Only the latter is retried; the pattern list is configurable.
DEFAULT_TRANSIENT_FORBIDDEN_PATTERNS: Tuple[str, ...] = ("Not enough credits",)

AttemptFn = Callable[[], Awaitable[CallOutcome]]
SleepFn = Callable[[float], Awaitable[Any]]


class RetryClass(str, Enum):
    RETRYABLE_NETWORK = "retryable_network"
    RETRYABLE_RATE_LIMIT = "retryable_rate_limit"
    RETRYABLE_SERVER_ERROR = "retryable_server_error"
    RETRYABLE_TRANSIENT_FORBIDDEN = "retryable_transient_forbidden"
    NON_RETRYABLE = "non_retryable"

    @property
    def is_retryable(self) -> bool:
        return self is not RetryClass.NON_RETRYABLE


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED_NON_RETRYABLE = "failed_non_retryable"
    FAILED_EXHAUSTED = "failed_exhausted"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3  # extra attempts after the first one
    base_delay_ms: float = 1000  # 1000, 2000, 4000...
    rate_limit_multiplier: float = 5.0
    jitter_fraction: float = 0.25
    max_delay_ms: float = 30000
    attempt_timeout_ms: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must be >= 0")
        if not math.isfinite(self.base_delay_ms) or not math.isfinite(self.max_delay_ms):
            raise ValueError("delays must be finite")
        if not 1 <= self.rate_limit_multiplier < math.inf:
            raise ValueError("rate_limit_multiplier must be finite and >= 1")
        if not 0 <= self.jitter_fraction <= 1:
            raise ValueError("jitter_fraction must be within [0, 1]")
        if self.attempt_timeout_ms is not None and self.attempt_timeout_ms <= 0:
            raise ValueError("attempt_timeout_ms must be > 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


@dataclass(frozen=True)
class ErrorClassifier:
    transient_forbidden_patterns: Tuple[str, ...] = (
        DEFAULT_TRANSIENT_FORBIDDEN_PATTERNS
    )

    def classify(self, failure: CallFailure) -> RetryClass:
        """First matching rule wins; pure and total over CallFailure."""
        if not failure.has_response:
            return RetryClass.RETRYABLE_NETWORK
        status = failure.status_code
        if status == RATE_LIMIT_STATUS:
            return RetryClass.RETRYABLE_RATE_LIMIT
        if status in RETRYABLE_SERVER_STATUSES:
            return RetryClass.RETRYABLE_SERVER_ERROR
        if status == FORBIDDEN_STATUS and self._is_transient_forbidden(
            failure.description
        ):
            return RetryClass.RETRYABLE_TRANSIENT_FORBIDDEN
        return RetryClass.NON_RETRYABLE

    def _is_transient_forbidden(self, description: Optional[str]) -> bool:
        if not description:
            return False
        return any(
            pattern in description for pattern in self.transient_forbidden_patterns
        )


_DEFAULT_CLASSIFIER = ErrorClassifier()


def classify_outcome(failure: CallFailure) -> RetryClass:
    return _DEFAULT_CLASSIFIER.classify(failure)


def compute_delay_ms(
    attempt: int,
    retry_class: RetryClass,
    policy: RetryPolicy,
    *,
    rand: Callable[[], float] = random.random,
) -> float:
    """
    Exponential backoff with symmetric jitter, clamped to [0, max_delay_ms].

    Rate-limit responses start from base_delay_ms * rate_limit_multiplier.
    """
    exponent = max(attempt, 1) - 1
    floor = policy.base_delay_ms
    if retry_class is RetryClass.RETRYABLE_RATE_LIMIT:
        floor = floor * policy.rate_limit_multiplier
    cap = float(policy.max_delay_ms)
    base = float(floor)
    for _ in range(exponent):
        # Past 2 * cap even maximal negative jitter leaves base above cap.
        if base <= 0 or base > 2 * cap:
            break
        base *= 2

    jitter = base * policy.jitter_fraction * (rand() - 0.5)
    return min(max(base + jitter, 0.0), float(policy.max_delay_ms))


class RetryExecutor:
    """
    Runs one logical operation: Attempting(1..max_retries+1) until it ends in
    SUCCEEDED, FAILED_NON_RETRYABLE or FAILED_EXHAUSTED.

    Holds no state between execute() calls, so one instance can be shared.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        classifier: Optional[ErrorClassifier] = None,
        *,
        sleep: Optional[SleepFn] = None,
        rand: Callable[[], float] = random.random,
        logger: Optional[logging.Logger] = None,
    ):
        self.policy = policy if policy is not None else RetryPolicy()
        self.classifier = classifier if classifier is not None else ErrorClassifier()
        self.sleep = sleep or anyio.sleep
        self.rand = rand
        self.log = logger

    def transition(
        self, attempt: int, outcome: CallOutcome
    ) -> Tuple[RetryState, Optional[RetryClass]]:
        if isinstance(outcome, CallSuccess):
            return RetryState.SUCCEEDED, None

        retry_class = self.classifier.classify(outcome)
        if not retry_class.is_retryable:
            return RetryState.FAILED_NON_RETRYABLE, retry_class
        if attempt > self.policy.max_retries:
            return RetryState.FAILED_EXHAUSTED, retry_class
        return RetryState.ATTEMPTING, retry_class

    async def execute(self, attempt_fn: AttemptFn, *, operation: Optional[str] = None):
        attempt = 1
        while True:
            outcome = await self._run_attempt(attempt_fn)
            state, retry_class = self.transition(attempt, outcome)

            delay_ms: Optional[float] = None
            if state is RetryState.ATTEMPTING and retry_class is not None:
                delay_ms = compute_delay_ms(
                    attempt, retry_class, self.policy, rand=self.rand
                )
            self._record(operation, attempt, outcome, state, retry_class, delay_ms)

            if state is RetryState.SUCCEEDED:
                assert isinstance(outcome, CallSuccess)
                return outcome.payload
            assert isinstance(outcome, CallFailure)
            if state is RetryState.FAILED_NON_RETRYABLE:
                raise NonRetryableFailure(outcome, attempt)
            if state is RetryState.FAILED_EXHAUSTED:
                raise ExhaustedRetries(outcome, attempt)

            await self.sleep((delay_ms or 0.0) / 1000.0)
            attempt += 1

    async def _run_attempt(self, attempt_fn: AttemptFn) -> CallOutcome:
        timeout_ms = self.policy.attempt_timeout_ms
        if timeout_ms is None:
            return await attempt_fn()
        try:
            with anyio.fail_after(timeout_ms / 1000.0):
                return await attempt_fn()
        except TimeoutError:
            return CallFailure.no_response(f"attempt timed out after {timeout_ms}ms")

    def _record(
        self,
        operation: Optional[str],
        attempt: int,
        outcome: CallOutcome,
        state: RetryState,
        retry_class: Optional[RetryClass],
        delay_ms: Optional[float],
    ) -> None:
        if state is RetryState.SUCCEEDED:
            level = logging.DEBUG
        elif state is RetryState.ATTEMPTING:
            level = logging.WARNING
        else:
            level = logging.ERROR
        status = outcome.status_code if isinstance(outcome, CallFailure) else None
        log_event(
            "retry_transition",
            self.log,
            level=level,
            tool=operation,
            attempt=attempt,
            max_attempts=self.policy.max_attempts,
            state=state.value,
            retry_class=retry_class.value if retry_class else None,
            delay_ms=round(delay_ms) if delay_ms is not None else None,
            status=status,
        )


__all__ = [
    "RetryClass",
    "RetryState",
    "RetryPolicy",
    "ErrorClassifier",
    "RetryExecutor",
    "classify_outcome",
    "compute_delay_ms",
    "DEFAULT_TRANSIENT_FORBIDDEN_PATTERNS",
    "RETRYABLE_SERVER_STATUSES",
]
