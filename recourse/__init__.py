'''
**recourse**
---------

An async HTTP client wrapper with pluggable authentication, retries
with configurable backoff and uniform result envelopes.

    async with HttpClient('https://api.example.com', HttpClientOptions(
        max_attempts=4,
        auth_client=BasicAuth('user', 'secret'),
    )) as client:
        result = await client.get_as('/users/1', User)
        user = result.get_value_or_throw()
'''
from recourse.api_client import HttpClient
from recourse.auth import AuthProvider, BasicAuth, ClientCredentialsAuth, DelegateAuth
from recourse.http import (
    ConfigurationError,
    DeserializationError,
    EmptyBodyError,
    HttpClientOptions,
    HttpMethod,
    HttpStatusError,
    Request,
    ResultEnvelope,
    ResultError,
    RetryStrategy,
    TypedResultEnvelope,
)

__version__ = '0.1.0'

__all__ = [
    'AuthProvider',
    'BasicAuth',
    'ClientCredentialsAuth',
    'ConfigurationError',
    'DelegateAuth',
    'DeserializationError',
    'EmptyBodyError',
    'HttpClient',
    'HttpClientOptions',
    'HttpMethod',
    'HttpStatusError',
    'Request',
    'ResultEnvelope',
    'ResultError',
    'RetryStrategy',
    'TypedResultEnvelope',
]
