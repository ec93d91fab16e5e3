import pytest

from sagaflow.retry import RetryPolicy, default_backoff, fixed_backoff, linear_backoff


def test_default_backoff_first_attempt_is_base():
    assert default_backoff(0.5)(0) == 0.5


def test_default_backoff_doubles_below_cap():
    backoff = default_backoff(0.1)
    assert backoff(2) == pytest.approx(2 * backoff(1))
    assert backoff(3) == pytest.approx(2 * backoff(2))


def test_default_backoff_is_capped():
    backoff = default_backoff(1.0)
    assert backoff(4) == 10.0
    assert backoff(10) == backoff(4)
    assert backoff(50) == backoff(4)


def test_default_backoff_never_decreases():
    backoff = default_backoff(0.2)
    delays = [backoff(attempt) for attempt in range(12)]
    assert delays == sorted(delays)


def test_linear_backoff_scales_with_attempt():
    backoff = linear_backoff(0.25)
    assert backoff(0) == 0
    assert backoff(4) == pytest.approx(4 * backoff(1))
    assert backoff(1) == 0.25


@pytest.mark.parametrize("attempt", [0, 1, 5, 100])
def test_fixed_backoff_is_constant(attempt):
    assert fixed_backoff(0.3)(attempt) == 0.3


def test_policy_defaults_to_exponential_backoff():
    policy = RetryPolicy(3, 0.5)
    assert policy.max_retries == 3
    assert policy.backoff(0) == 0.5
    assert policy.backoff(1) == policy.backoff(0) * 2


def test_with_linear_backoff_replaces_function():
    policy = RetryPolicy(2, 1.0)
    assert policy.with_linear_backoff(0.5) is policy
    assert policy.backoff(0) == 0
    assert policy.backoff(1) == 0.5


def test_with_fixed_backoff_replaces_function():
    policy = RetryPolicy(2, 1.0)
    assert policy.with_fixed_backoff(0.7) is policy
    assert [policy.backoff(a) for a in range(3)] == [0.7, 0.7, 0.7]


def test_with_custom_backoff_uses_given_function():
    seen = []

    def custom(attempt):
        seen.append(attempt)
        return 0.0

    policy = RetryPolicy(1).with_custom_backoff(custom)
    assert policy.backoff is custom
    assert policy.backoff(7) == 0.0
    assert seen == [7]