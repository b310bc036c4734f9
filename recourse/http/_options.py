import enum
import os
import logging
import dataclasses as dc
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recourse.auth import AuthProvider


logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    '''
    Raised when client options are malformed (e.g. a non-positive
    attempt budget). Raised at construction, never mid-request.

    Parent: ValueError
    '''


class RetryStrategy(str, enum.Enum):
    CONSTANT = 'constant'
    LINEAR = 'linear'
    EXPONENTIAL = 'exponential'


DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 1_000


def _env(prefix: str, name: str) -> str | None:
    value = os.getenv(f'{prefix}{name}')
    if value is None or not value.strip():
        return None
    return value.strip()


def _int_env(prefix: str, name: str, default: int) -> int:
    value = _env(prefix, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f'Ignoring unparsable {prefix}{name}={value!r}')
        return default


def _strategy_env(prefix: str, name: str, default: RetryStrategy) -> RetryStrategy:
    value = _env(prefix, name)
    if value is None:
        return default
    try:
        return RetryStrategy(value.lower())
    except ValueError:
        logger.warning(f'Ignoring unknown {prefix}{name}={value!r}')
        return default


@dc.dataclass(frozen=True, slots=True)
class HttpClientOptions:
    '''
    Configuration snapshot for an `HttpClient`. Read-only once built and
    shared by every call the client issues.

    Attributes
    ----------
    timeout : int
        Upper bound for a single attempt, in milliseconds.
    max_attempts : int
        Total attempts per call, including the first. 1 disables retries.
    retry_delay : int
        Base delay between attempts, in milliseconds.
    retry_strategy : RetryStrategy
        How the base delay grows with the attempt number.
    auth_client : AuthProvider | None
        Supplies the authorization header for every attempt.
    custom_headers : Mapping[str, str]
        Headers sent with every request, overridable per call.
    '''
    timeout: int = DEFAULT_TIMEOUT_MS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: int = DEFAULT_RETRY_DELAY_MS
    retry_strategy: RetryStrategy = RetryStrategy.EXPONENTIAL
    auth_client: 'AuthProvider | None' = None
    custom_headers: Mapping[str, str] = dc.field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            raise ConfigurationError(
                f'max_attempts must be at least 1, got {self.max_attempts}'
            )
        if self.timeout <= 0:
            raise ConfigurationError(f'timeout must be positive, got {self.timeout}')
        if self.retry_delay < 0:
            raise ConfigurationError(
                f'retry_delay cannot be negative, got {self.retry_delay}'
            )
        try:
            strategy = RetryStrategy(self.retry_strategy)
        except ValueError as exc:
            raise ConfigurationError(
                f'Unknown retry strategy: {self.retry_strategy!r}'
            ) from exc

        object.__setattr__(self, 'retry_strategy', strategy)
        object.__setattr__(
            self, 'custom_headers', MappingProxyType(dict(self.custom_headers))
        )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay / 1000

    @classmethod
    def from_env(
        cls,
        prefix: str = 'RECOURSE_',
        *,
        auth_client: 'AuthProvider | None' = None,
        custom_headers: Mapping[str, str] | None = None,
    ) -> 'HttpClientOptions':
        '''
        Build options from environment variables, evaluated at call time.
        Unparsable values fall back to the defaults.

        Recognized variables (with the default prefix): `RECOURSE_HTTP_TIMEOUT`,
        `RECOURSE_HTTP_MAX_ATTEMPTS`, `RECOURSE_HTTP_RETRY_DELAY`,
        `RECOURSE_HTTP_RETRY_STRATEGY`.

        Returns
        -------
        HttpClientOptions
        '''
        return cls(
            timeout=_int_env(prefix, 'HTTP_TIMEOUT', DEFAULT_TIMEOUT_MS),
            max_attempts=_int_env(prefix, 'HTTP_MAX_ATTEMPTS', DEFAULT_MAX_ATTEMPTS),
            retry_delay=_int_env(prefix, 'HTTP_RETRY_DELAY', DEFAULT_RETRY_DELAY_MS),
            retry_strategy=_strategy_env(
                prefix, 'HTTP_RETRY_STRATEGY', RetryStrategy.EXPONENTIAL
            ),
            auth_client=auth_client,
            custom_headers=custom_headers or {},
        )
