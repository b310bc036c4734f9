import pytest

from recourse.http import HttpClientOptions, RetryPolicy, RetryStrategy, next_delay


@pytest.mark.parametrize('attempt', [1, 2, 3, 4, 5, 10])
def test_exponential_delay_is_base_times_attempt_squared(attempt):
    assert next_delay(attempt, 1.5, RetryStrategy.EXPONENTIAL) == 1.5 * attempt ** 2


@pytest.mark.parametrize('attempt', [1, 2, 3, 7])
def test_linear_delay_is_base_times_attempt(attempt):
    assert next_delay(attempt, 0.5, RetryStrategy.LINEAR) == 0.5 * attempt


@pytest.mark.parametrize('attempt', [1, 2, 9])
def test_constant_delay_never_grows(attempt):
    assert next_delay(attempt, 2.0, RetryStrategy.CONSTANT) == 2.0


def test_exponential_is_the_default_and_follows_squares():
    assert [next_delay(n, 1) for n in range(1, 6)] == [1, 4, 9, 16, 25]


def test_strategy_accepts_plain_strings():
    assert next_delay(3, 1.0, 'linear') == 3.0


def test_attempt_numbers_start_at_one():
    with pytest.raises(ValueError):
        next_delay(0, 1.0)


def test_policy_from_options_converts_milliseconds():
    options = HttpClientOptions(
        max_attempts=4, retry_delay=250, retry_strategy=RetryStrategy.LINEAR
    )
    policy = RetryPolicy.from_options(options)

    assert policy.max_attempts == 4
    assert policy.base_delay == 0.25
    assert policy.get_delay(2) == 0.5
    assert policy.has_attempts_left(3)
    assert not policy.has_attempts_left(4)
