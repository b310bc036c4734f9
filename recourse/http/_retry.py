'''
retry delay computation for the request executor

the delay before retry `n` (1-based, the attempt that just failed) grows
with the configured strategy:

- constant:     base
- linear:       base * n
- exponential:  base * n ** 2   (1, 4, 9, 16, 25 ... for base=1)
'''
import dataclasses as dc

from recourse.http._options import HttpClientOptions, RetryStrategy


def next_delay(
    attempt_number: int,
    base_delay: float,
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL,
) -> float:
    '''
    Compute how long to wait after a failed attempt.

    Parameters
    ----------
    attempt_number : int
        The attempt that just failed, starting at 1
    base_delay : float
        The configured base delay (any unit, the result uses the same)
    strategy : RetryStrategy, optional
        The growth strategy, by default exponential

    Returns
    -------
    float

    Raises
    ------
    ValueError
        If the attempt number is below 1
    '''
    if attempt_number < 1:
        raise ValueError(f'attempt_number starts at 1, got {attempt_number}')

    match RetryStrategy(strategy):
        case RetryStrategy.CONSTANT:
            delay = base_delay
        case RetryStrategy.LINEAR:
            delay = base_delay * attempt_number
        case RetryStrategy.EXPONENTIAL:
            delay = base_delay * attempt_number ** 2

    return max(0.0, delay)


@dc.dataclass(frozen=True, slots=True)
class RetryPolicy:
    '''
    The retry budget of one client: how many attempts a call gets and
    how long to wait between them (in seconds).
    '''
    max_attempts: int = 3
    base_delay: float = 1.0
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL

    @classmethod
    def from_options(cls, options: HttpClientOptions) -> 'RetryPolicy':
        return cls(
            max_attempts=options.max_attempts,
            base_delay=options.retry_delay_seconds,
            strategy=options.retry_strategy,
        )

    def has_attempts_left(self, attempt_no: int) -> bool:
        return attempt_no < self.max_attempts

    def get_delay(self, attempt_no: int) -> float:
        return next_delay(attempt_no, self.base_delay, self.strategy)
