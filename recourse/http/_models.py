import enum
import dataclasses as dc
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any


class HttpMethod(str, enum.Enum):
    GET = 'GET'
    POST = 'POST'
    PUT = 'PUT'
    PATCH = 'PATCH'
    DELETE = 'DELETE'


class FailureKind(str, enum.Enum):
    TIMEOUT = 'timeout'
    NETWORK = 'network'
    HTTP = 'http'
    DESERIALIZATION = 'deserialization'


class TransportError(Exception):
    '''
    Raised by a transport when an attempt never produced an HTTP exchange
    (the request timed out or the connection failed).

    Parent: Exception
    '''

    def __init__(self, kind: FailureKind, message: str) -> None:
        super().__init__(message)
        self.kind: FailureKind = kind
        self.message: str = message


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dc.dataclass(frozen=True, slots=True)
class Request:
    '''
    A logical request, immutable once built. `target` is resolved against
    the client's base URL unless it is already absolute.
    '''
    method: HttpMethod
    target: str
    body: bytes | None = None
    headers: Mapping[str, str] = dc.field(default_factory=dict)
    params: Mapping[str, Any] = dc.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'method', HttpMethod(self.method))
        object.__setattr__(self, 'headers', _freeze(self.headers))
        object.__setattr__(self, 'params', _freeze(self.params))


@dc.dataclass(frozen=True, slots=True)
class RawResponse:
    status_code: int
    headers: Mapping[str, str] = dc.field(default_factory=dict)
    content: bytes = b''
    url: str | None = None


@dc.dataclass(frozen=True, slots=True)
class AttemptOutcome:
    '''
    What a single attempt produced: either a completed HTTP exchange
    or the transport failure that prevented one.
    '''
    attempt: int
    response: RawResponse | None = None
    error: TransportError | None = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError('AttemptOutcome needs exactly one of response or error')

    @property
    def status_code(self) -> int | None:
        return self.response.status_code if self.response else None


class AuthenticationError(Exception):
    '''
    Raised by an auth provider that could not obtain credentials
    (e.g. the token endpoint rejected the client).

    Parent: Exception
    '''
