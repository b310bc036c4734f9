'''
result envelopes returned by the request executor.

Every call resolves to a `ResultEnvelope`, successful or not; the only
places that raise are the two opt-in helpers `ensure_success()` and
`get_value_or_throw()`.
'''
import json
import typing
import dataclasses as dc
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from recourse.http._classify import Classification, OutcomeTag, Verdict
from recourse.http._models import AttemptOutcome, FailureKind

T = TypeVar('T')


class ResultError(Exception):
    '''
    Base for the errors raised when a caller unwraps a failed result.

    Parent: Exception
    '''

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.status_code: int | None = status_code


class HttpStatusError(ResultError):
    '''
    The call failed at the HTTP or transport level.

    Parent: ResultError
    '''


class DeserializationError(ResultError):
    '''
    The HTTP call succeeded but its body could not be parsed.

    Parent: ResultError
    '''


class EmptyBodyError(ResultError):
    '''
    The HTTP call succeeded but there was no value in the body.

    Parent: ResultError
    '''


@dc.dataclass(frozen=True)
class ResultEnvelope:
    success: bool
    status_code: int | None = None
    error_message: str | None = None
    error_kind: FailureKind | None = None
    tag: OutcomeTag | None = None
    headers: Mapping[str, str] = dc.field(default_factory=dict)
    content: bytes = b''
    attempts: int = 1

    @property
    def not_found(self) -> bool:
        return self.status_code == 404

    @property
    def text(self) -> str:
        return self.content.decode('utf-8', errors='replace')

    def _failure_message(self) -> str:
        reason = self.error_message or 'request failed'
        if self.status_code is None:
            return f'Request failed after {self.attempts} attempt(s): {reason}'
        return f'Request failed with status {self.status_code}: {reason}'

    def ensure_success(self) -> 'ResultEnvelope':
        '''
        Raise when the call was not successful, otherwise do nothing.

        Returns
        -------
        ResultEnvelope
            The envelope itself, for chaining

        Raises
        ------
        HttpStatusError
            If `success` is false; carries the status code and message
        '''
        if not self.success:
            raise HttpStatusError(self._failure_message(), self.status_code)
        return self

    @classmethod
    def from_outcome(
        cls,
        outcome: AttemptOutcome,
        classification: Classification,
    ) -> 'ResultEnvelope':
        if outcome.error is not None:
            return cls(
                success=False,
                error_message=classification.detail,
                error_kind=outcome.error.kind,
                attempts=outcome.attempt,
            )

        response = outcome.response
        success = classification.verdict is Verdict.SUCCESS
        return cls(
            success=success,
            status_code=response.status_code,
            error_message=None if success else classification.detail,
            error_kind=None if success else FailureKind.HTTP,
            tag=classification.tag,
            headers=response.headers,
            content=response.content,
            attempts=outcome.attempt,
        )


@dc.dataclass(frozen=True)
class TypedResultEnvelope(ResultEnvelope, Generic[T]):
    '''
    A result whose body was parsed as JSON into a target type. `value`
    is only set when the call succeeded and the body was non-empty and
    parseable; a parse failure turns the envelope unsuccessful.
    '''
    value: T | None = None

    def get_value_or_throw(self) -> T:
        '''
        Unwrap the parsed value.

        Returns
        -------
        T

        Raises
        ------
        DeserializationError
            If the body could not be parsed into the target type
        HttpStatusError
            If the call failed at the HTTP or transport level
        EmptyBodyError
            If the call succeeded without a body to parse
        '''
        if not self.success:
            if self.error_kind is FailureKind.DESERIALIZATION:
                raise DeserializationError(self._failure_message(), self.status_code)
            raise HttpStatusError(self._failure_message(), self.status_code)

        if self.value is None:
            raise EmptyBodyError(
                f'Response with status {self.status_code} had no value to return',
                self.status_code,
            )
        return self.value

    @classmethod
    def from_envelope(
        cls,
        envelope: ResultEnvelope,
        into: type[T] | Any = None,
    ) -> 'TypedResultEnvelope[T]':
        fields = {f.name: getattr(envelope, f.name) for f in dc.fields(ResultEnvelope)}
        if not envelope.success or not envelope.content.strip():
            return cls(**fields)

        try:
            value = deserialize(envelope.content, into)
        except (ValueError, TypeError) as exc:
            fields.update(
                success=False,
                error_kind=FailureKind.DESERIALIZATION,
                error_message=f'Could not parse response body as {_type_name(into)}: {exc}',
            )
            return cls(**fields)

        return cls(**fields, value=value)


_PLAIN_TYPES = (dict, list, str, int, float, bool)


def _type_name(into: Any) -> str:
    if into is None:
        return 'JSON'
    return getattr(into, '__name__', None) or repr(into)


def _convert(converter: Any, *args: Any, **kwargs: Any) -> Any:
    try:
        return converter(*args, **kwargs)
    except (ValueError, TypeError):
        raise
    except Exception as exc:
        raise ValueError(f'{type(exc).__name__}: {exc}') from exc


def _coerce(data: Any, into: Any) -> Any:
    if into is None or into is Any or into is object:
        return data

    origin = typing.get_origin(into)
    if origin is not None:
        if isinstance(origin, type) and not isinstance(data, origin):
            raise TypeError(f'expected {origin.__name__}, got {type(data).__name__}')
        return data

    if dc.is_dataclass(into) and isinstance(into, type):
        if not isinstance(data, dict):
            raise TypeError(f'expected an object, got {type(data).__name__}')
        return _convert(into, **data)

    if hasattr(into, 'model_validate'):
        return _convert(into.model_validate, data)

    if into in _PLAIN_TYPES:
        if into is float and isinstance(data, int) and not isinstance(data, bool):
            return float(data)
        if not isinstance(data, into) or (into is int and isinstance(data, bool)):
            raise TypeError(f'expected {into.__name__}, got {type(data).__name__}')
        return data

    if callable(into):
        return _convert(into, data)

    raise TypeError(f'cannot deserialize into {into!r}')


def deserialize(content: bytes | str, into: type[T] | Any = None) -> T:
    '''
    Parse a JSON body and coerce it into `into`.

    Dataclasses are built from the object's keys, classes with a
    `model_validate` classmethod (pydantic models) validate the data,
    builtin containers and scalars are type checked, and any other
    callable is called with the parsed value. `None` returns the raw
    JSON value.

    Raises
    ------
    ValueError
        If the body is not valid JSON, validation fails or the
        converter raises anything other than a `TypeError`
    TypeError
        If the parsed value does not fit the target type
    '''
    data = json.loads(content)
    return _coerce(data, into)
