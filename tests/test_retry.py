import logging

import anyio
import pytest
from proxycurl_mcp.core.errors import ExhaustedRetries, NonRetryableFailure
from proxycurl_mcp.core.outcome import CallFailure, CallSuccess
from proxycurl_mcp.core.retry import (
    ErrorClassifier,
    RetryClass,
    RetryExecutor,
    RetryPolicy,
    RetryState,
    classify_outcome,
    compute_delay_ms,
)


class _Recorder:
    """attempt_fn returning scripted outcomes and counting calls."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if len(self.outcomes) > 1:
            return self.outcomes.pop(0)
        return self.outcomes[0]


def _executor(policy=None, classifier=None):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    executor = RetryExecutor(
        policy or RetryPolicy(), classifier, sleep=fake_sleep, rand=lambda: 0.5
    )
    return executor, sleeps


# --- Classification -------------------------------------------------------- #


@pytest.mark.parametrize(
    "failure, expected",
    [
        (CallFailure.no_response("ConnectTimeout"), RetryClass.RETRYABLE_NETWORK),
        (CallFailure.from_status(429), RetryClass.RETRYABLE_RATE_LIMIT),
        (CallFailure.from_status(500), RetryClass.RETRYABLE_SERVER_ERROR),
        (CallFailure.from_status(502), RetryClass.RETRYABLE_SERVER_ERROR),
        (CallFailure.from_status(503), RetryClass.RETRYABLE_SERVER_ERROR),
        (CallFailure.from_status(504), RetryClass.RETRYABLE_SERVER_ERROR),
        (
            CallFailure.from_status(403, "Not enough credits. Top up at ..."),
            RetryClass.RETRYABLE_TRANSIENT_FORBIDDEN,
        ),
        (CallFailure.from_status(403, "Invalid API key"), RetryClass.NON_RETRYABLE),
        (CallFailure.from_status(403), RetryClass.NON_RETRYABLE),
        (CallFailure.from_status(400, "bad"), RetryClass.NON_RETRYABLE),
        (CallFailure.from_status(401), RetryClass.NON_RETRYABLE),
        (CallFailure.from_status(404), RetryClass.NON_RETRYABLE),
        (CallFailure.from_status(422), RetryClass.NON_RETRYABLE),
        (CallFailure.from_status(501), RetryClass.NON_RETRYABLE),
    ],
)
def test_classify_rules(failure, expected):
    assert classify_outcome(failure) is expected
    # pure: same input, same answer
    assert classify_outcome(failure) is classify_outcome(failure)


def test_transient_forbidden_match_is_case_sensitive():
    failure = CallFailure.from_status(403, "not enough credits")
    assert classify_outcome(failure) is RetryClass.NON_RETRYABLE


def test_no_response_wins_over_everything():
    failure = CallFailure(has_response=False, status_code=429)
    assert classify_outcome(failure) is RetryClass.RETRYABLE_NETWORK


def test_custom_forbidden_patterns_override_default():
    classifier = ErrorClassifier(transient_forbidden_patterns=("quota race",))
    assert (
        classifier.classify(CallFailure.from_status(403, "quota race detected"))
        is RetryClass.RETRYABLE_TRANSIENT_FORBIDDEN
    )
    assert (
        classifier.classify(CallFailure.from_status(403, "Not enough credits"))
        is RetryClass.NON_RETRYABLE
    )


def test_failure_with_response_requires_status():
    with pytest.raises(ValueError):
        CallFailure(has_response=True)


# --- Backoff --------------------------------------------------------------- #


@pytest.mark.parametrize("attempt", [1, 2, 3, 4, 5])
@pytest.mark.parametrize(
    "retry_class",
    [
        RetryClass.RETRYABLE_NETWORK,
        RetryClass.RETRYABLE_SERVER_ERROR,
        RetryClass.RETRYABLE_TRANSIENT_FORBIDDEN,
        RetryClass.RETRYABLE_RATE_LIMIT,
    ],
)
def test_delay_within_jitter_bounds(attempt, retry_class):
    policy = RetryPolicy()
    floor = policy.base_delay_ms
    if retry_class is RetryClass.RETRYABLE_RATE_LIMIT:
        floor *= policy.rate_limit_multiplier
    base = floor * 2 ** (attempt - 1)
    low = min(policy.max_delay_ms, base * (1 - policy.jitter_fraction / 2))
    high = min(policy.max_delay_ms, base * (1 + policy.jitter_fraction / 2))

    for rand in (0.0, 0.25, 0.5, 0.999999):
        delay = compute_delay_ms(attempt, retry_class, policy, rand=lambda: rand)
        assert low <= delay <= high


def test_delay_without_jitter_is_exponential():
    policy = RetryPolicy()
    delays = [
        compute_delay_ms(n, RetryClass.RETRYABLE_SERVER_ERROR, policy, rand=lambda: 0.5)
        for n in (1, 2, 3)
    ]
    assert delays == [1000, 2000, 4000]


def test_rate_limit_delay_starts_from_larger_floor():
    policy = RetryPolicy()
    delays = [
        compute_delay_ms(n, RetryClass.RETRYABLE_RATE_LIMIT, policy, rand=lambda: 0.5)
        for n in (1, 2, 3, 4)
    ]
    assert delays == [5000, 10000, 20000, 30000]


def test_delay_is_clamped():
    policy = RetryPolicy(max_delay_ms=1500)
    delay = compute_delay_ms(10, RetryClass.RETRYABLE_NETWORK, policy, rand=lambda: 1)
    assert delay == 1500

    zero = RetryPolicy(base_delay_ms=0)
    assert compute_delay_ms(3, RetryClass.RETRYABLE_NETWORK, zero) == 0


@pytest.mark.parametrize("attempt", [64, 1025, 1100, 100_000])
@pytest.mark.parametrize(
    "retry_class",
    [RetryClass.RETRYABLE_SERVER_ERROR, RetryClass.RETRYABLE_RATE_LIMIT],
)
def test_delay_for_huge_attempt_numbers_is_the_cap(attempt, retry_class):
    policy = RetryPolicy()
    for rand in (0.0, 0.5, 0.999999):
        delay = compute_delay_ms(attempt, retry_class, policy, rand=lambda: rand)
        assert delay == policy.max_delay_ms


def test_zero_base_delay_stays_zero_for_huge_attempts():
    policy = RetryPolicy(base_delay_ms=0)
    assert compute_delay_ms(100_000, RetryClass.RETRYABLE_NETWORK, policy) == 0


def test_policy_rejects_invalid_values():
    with pytest.raises(ValueError):
        RetryPolicy(max_delay_ms=float("inf"))
    with pytest.raises(ValueError):
        RetryPolicy(rate_limit_multiplier=float("inf"))
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValueError):
        RetryPolicy(jitter_fraction=1.5)
    with pytest.raises(ValueError):
        RetryPolicy(attempt_timeout_ms=0)


# --- Executor -------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_server_errors_exhaust_after_four_attempts():
    attempt_fn = _Recorder(CallFailure.from_status(503, "Service Unavailable"))
    executor, sleeps = _executor(RetryPolicy(max_retries=3))

    with pytest.raises(ExhaustedRetries) as exc:
        await executor.execute(attempt_fn)

    assert attempt_fn.calls == 4
    assert exc.value.attempts == 4
    assert exc.value.status_code == 503
    assert exc.value.to_dict() == {
        "kind": "ExhaustedRetries",
        "status_code": 503,
        "description": "Service Unavailable",
        "attempts": 4,
    }
    # slept between attempts only, in seconds
    assert sleeps == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [0, 3, 10])
async def test_non_retryable_stops_after_first_attempt(max_retries):
    attempt_fn = _Recorder(CallFailure.from_status(404, "Not found"))
    executor, sleeps = _executor(RetryPolicy(max_retries=max_retries))

    with pytest.raises(NonRetryableFailure) as exc:
        await executor.execute(attempt_fn)

    assert attempt_fn.calls == 1
    assert exc.value.attempts == 1
    assert exc.value.kind == "NonRetryableFailure"
    assert sleeps == []


@pytest.mark.asyncio
async def test_success_after_transient_failures():
    attempt_fn = _Recorder(
        CallFailure.no_response("ConnectError"),
        CallFailure.from_status(429),
        CallSuccess({"results": []}),
    )
    executor, sleeps = _executor()

    assert await executor.execute(attempt_fn) == {"results": []}
    assert attempt_fn.calls == 3
    assert sleeps == [1.0, 10.0]


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt():
    attempt_fn = _Recorder(CallFailure.no_response())
    executor, _ = _executor(RetryPolicy(max_retries=0))

    with pytest.raises(ExhaustedRetries):
        await executor.execute(attempt_fn)
    assert attempt_fn.calls == 1


@pytest.mark.asyncio
async def test_transient_forbidden_exhaustion_keeps_description():
    attempt_fn = _Recorder(CallFailure.from_status(403, "Not enough credits"))
    executor, _ = _executor(RetryPolicy(max_retries=1))

    with pytest.raises(ExhaustedRetries) as exc:
        await executor.execute(attempt_fn)

    assert attempt_fn.calls == 2
    assert exc.value.description == "Not enough credits"
    assert "2 attempt(s)" in str(exc.value)


@pytest.mark.asyncio
async def test_attempt_timeout_is_a_network_failure():
    calls = 0

    async def slow():
        nonlocal calls
        calls += 1
        if calls == 1:
            await anyio.sleep(5)
        return CallSuccess({"ok": True})

    executor, sleeps = _executor(
        RetryPolicy(max_retries=1, attempt_timeout_ms=20, base_delay_ms=0)
    )
    assert await executor.execute(slow) == {"ok": True}
    assert calls == 2
    assert sleeps == [0.0]


def test_transition_table():
    executor = RetryExecutor(RetryPolicy(max_retries=2))
    server = CallFailure.from_status(500)

    assert executor.transition(1, CallSuccess({})) == (RetryState.SUCCEEDED, None)
    assert executor.transition(2, server) == (
        RetryState.ATTEMPTING,
        RetryClass.RETRYABLE_SERVER_ERROR,
    )
    assert executor.transition(3, server) == (
        RetryState.FAILED_EXHAUSTED,
        RetryClass.RETRYABLE_SERVER_ERROR,
    )
    assert executor.transition(1, CallFailure.from_status(401)) == (
        RetryState.FAILED_NON_RETRYABLE,
        RetryClass.NON_RETRYABLE,
    )


@pytest.mark.asyncio
async def test_transitions_are_logged(caplog):
    caplog.set_level(logging.DEBUG, logger="proxycurl_mcp.observability")
    attempt_fn = _Recorder(CallFailure.from_status(502), CallSuccess({}))
    executor, _ = _executor()

    await executor.execute(attempt_fn, operation="search_people")

    records = [r for r in caplog.records if r.getMessage() == "retry_transition"]
    assert [r.state for r in records] == ["attempting", "succeeded"]
    assert records[0].tool == "search_people"
    assert records[0].attempt == 1
    assert records[0].retry_class == "retryable_server_error"
    assert records[0].delay_ms == 1000
    assert records[0].status == 502
    assert records[0].levelno == logging.WARNING
