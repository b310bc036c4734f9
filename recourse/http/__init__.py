'''
**recourse.http**
---------

The request execution pipeline behind `recourse.HttpClient`: the options
snapshot, the retry delay policy, the outcome classifier, the executor
state machine and the result envelopes it produces. The httpx-backed
transport lives here too, any object implementing `Transport` can stand
in for it.
'''
from recourse.http._classify import Classification, OutcomeTag, Verdict, classify
from recourse.http._executor import RequestExecutor
from recourse.http._models import (
    AttemptOutcome,
    AuthenticationError,
    FailureKind,
    HttpMethod,
    RawResponse,
    Request,
    TransportError,
)
from recourse.http._options import ConfigurationError, HttpClientOptions, RetryStrategy
from recourse.http._result import (
    DeserializationError,
    EmptyBodyError,
    HttpStatusError,
    ResultEnvelope,
    ResultError,
    TypedResultEnvelope,
    deserialize,
)
from recourse.http._retry import RetryPolicy, next_delay
from recourse.http._transport import HttpxTransport, Transport
from recourse.http._urls import build_url

__all__ = [
    'AttemptOutcome',
    'AuthenticationError',
    'Classification',
    'ConfigurationError',
    'DeserializationError',
    'EmptyBodyError',
    'FailureKind',
    'HttpClientOptions',
    'HttpMethod',
    'HttpStatusError',
    'HttpxTransport',
    'OutcomeTag',
    'RawResponse',
    'Request',
    'RequestExecutor',
    'ResultEnvelope',
    'ResultError',
    'RetryPolicy',
    'RetryStrategy',
    'Transport',
    'TransportError',
    'TypedResultEnvelope',
    'Verdict',
    'build_url',
    'classify',
    'deserialize',
    'next_delay',
]
