import enum
import dataclasses as dc

from recourse.http._models import AttemptOutcome


class Verdict(str, enum.Enum):
    SUCCESS = 'success'
    RETRYABLE = 'retryable'
    TERMINAL = 'terminal'


class OutcomeTag(str, enum.Enum):
    AUTH_EXPIRED = 'auth-expired'
    NOT_FOUND = 'not-found'


@dc.dataclass(frozen=True, slots=True)
class Classification:
    verdict: Verdict
    detail: str
    tag: OutcomeTag | None = None

    @property
    def is_retryable(self) -> bool:
        return self.verdict is Verdict.RETRYABLE

    @property
    def auth_expired(self) -> bool:
        return self.tag is OutcomeTag.AUTH_EXPIRED


AUTH_STATUS_CODES = frozenset({401, 403})


def classify(outcome: AttemptOutcome, attempts_remaining: bool = True) -> Classification:
    '''
    Decide what an attempt means for the call: done, worth retrying,
    or failed for good. Client errors other than auth failures are
    deterministic and never retried.

    Parameters
    ----------
    outcome : AttemptOutcome
    attempts_remaining : bool, optional
        Whether the call still has budget for another attempt. An auth
        failure is only retryable while it does.

    Returns
    -------
    Classification
    '''
    if outcome.error is not None:
        return Classification(
            Verdict.RETRYABLE,
            f'{outcome.error.kind.value} error: {outcome.error.message}',
        )

    status = outcome.response.status_code
    if 200 <= status < 300:
        return Classification(Verdict.SUCCESS, f'HTTP {status}')

    if status in AUTH_STATUS_CODES:
        verdict = Verdict.RETRYABLE if attempts_remaining else Verdict.TERMINAL
        return Classification(
            verdict, f'HTTP {status}: credentials rejected', OutcomeTag.AUTH_EXPIRED
        )

    if status == 404:
        return Classification(
            Verdict.TERMINAL, f'HTTP {status}: resource not found', OutcomeTag.NOT_FOUND
        )

    if 500 <= status < 600:
        return Classification(Verdict.RETRYABLE, f'HTTP {status}: server error')

    return Classification(Verdict.TERMINAL, f'HTTP {status}: request rejected')
