import asyncio
import enum
import logging

import httpx

from recourse.http._classify import Classification, classify
from recourse.http._models import (
    AttemptOutcome,
    AuthenticationError,
    FailureKind,
    Request,
    TransportError,
)
from recourse.http._options import HttpClientOptions
from recourse.http._result import ResultEnvelope
from recourse.http._retry import RetryPolicy
from recourse.http._transport import Transport
from recourse.http._urls import build_url


logger = logging.getLogger(__name__)


class _State(enum.Enum):
    ATTEMPTING = enum.auto()
    WAITING = enum.auto()
    DONE = enum.auto()


class RequestExecutor:
    '''
    Runs one logical request to completion: authenticate, send, classify,
    and either wait and try again or build the final envelope.

    Ordinary HTTP and network failures never raise out of `execute`;
    they resolve to an unsuccessful `ResultEnvelope`. The executor holds
    no per-call state, so one instance serves any number of concurrent
    calls.
    '''
    __slots__ = ('_transport', '_options', '_policy')

    def __init__(self, transport: Transport, options: HttpClientOptions) -> None:
        self._transport: Transport = transport
        self._options: HttpClientOptions = options
        self._policy: RetryPolicy = RetryPolicy.from_options(options)

    @property
    def options(self) -> HttpClientOptions:
        return self._options

    async def _auth_header(self, force_refresh: bool) -> tuple[str, str] | None:
        auth = self._options.auth_client
        if auth is None:
            return None
        if force_refresh:
            logger.debug('Refreshing credentials after an auth failure')
            await auth.refresh_token()
        return await auth.get_auth_header()

    def merge_headers(
        self,
        request: Request,
        auth_header: tuple[str, str] | None = None,
    ) -> httpx.Headers:
        '''
        Build the outgoing headers. Precedence, lowest to highest: the
        client's custom headers, the request's own headers, the auth
        header. Names compare case-insensitively.
        '''
        headers = httpx.Headers(self._options.custom_headers)
        headers.update(request.headers)
        if auth_header is not None:
            name, value = auth_header
            headers[name] = value
        return headers

    async def _attempt(
        self,
        request: Request,
        url: str,
        attempt_no: int,
        force_refresh: bool,
    ) -> AttemptOutcome:
        try:
            auth_header = await self._auth_header(force_refresh)
        except TransportError as exc:
            return AttemptOutcome(attempt=attempt_no, error=exc)
        except (AuthenticationError, httpx.HTTPError, OSError) as exc:
            return AttemptOutcome(
                attempt=attempt_no,
                error=TransportError(
                    FailureKind.NETWORK, f'could not obtain credentials: {exc!r}'
                ),
            )

        headers = self.merge_headers(request, auth_header)
        timeout = self._options.timeout_seconds
        try:
            response = await asyncio.wait_for(
                self._transport.send(
                    request.method.value, url, headers, request.body, timeout
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return AttemptOutcome(
                attempt=attempt_no,
                error=TransportError(
                    FailureKind.TIMEOUT, f'no response within {self._options.timeout}ms'
                ),
            )
        except TransportError as exc:
            return AttemptOutcome(attempt=attempt_no, error=exc)

        return AttemptOutcome(attempt=attempt_no, response=response)

    async def execute(self, request: Request, base_url: str = '') -> ResultEnvelope:
        '''
        Execute `request` with authentication and retries.

        Parameters
        ----------
        request : Request
        base_url : str, optional
            Resolved against `request.target` when the target is relative

        Returns
        -------
        ResultEnvelope
        '''
        url = str(build_url(base_url, request.target, request.params))
        state = _State.ATTEMPTING
        attempt_no = 1
        force_refresh = False
        outcome: AttemptOutcome | None = None
        verdict: Classification | None = None

        while state is not _State.DONE:
            if state is _State.ATTEMPTING:
                outcome = await self._attempt(request, url, attempt_no, force_refresh)
                has_more = self._policy.has_attempts_left(attempt_no)
                verdict = classify(outcome, attempts_remaining=has_more)
                logger.debug(
                    f'{request.method.value} {url} attempt {attempt_no}/'
                    f'{self._policy.max_attempts}: {verdict.detail}'
                )
                state = (
                    _State.WAITING if verdict.is_retryable and has_more
                    else _State.DONE
                )

            elif state is _State.WAITING:
                delay = self._policy.get_delay(attempt_no)
                logger.warning(
                    f'{request.method.value} {url} failed ({verdict.detail}), '
                    f'retrying in {delay:.2f}s '
                    f'(attempt {attempt_no + 1}/{self._policy.max_attempts})'
                )
                await asyncio.sleep(delay)
                force_refresh = verdict.auth_expired
                attempt_no += 1
                state = _State.ATTEMPTING

        envelope = ResultEnvelope.from_outcome(outcome, verdict)
        if not envelope.success:
            logger.info(
                f'{request.method.value} {url} gave up after {attempt_no} '
                f'attempt(s): {envelope.error_message}'
            )
        return envelope
