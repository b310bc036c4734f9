'''
**recourse.auth**
-----------------

Pluggable authentication for `recourse.HttpClient`. The client only ever
talks to the `AuthProvider` protocol: it asks for a header right before
every attempt and forces a `refresh_token()` after a 401/403. Providers
own their staleness policy and serialize their own refreshes, since a
single provider is shared by every concurrent call of a client.

Variants shipped here: `BasicAuth`, `ClientCredentialsAuth` (OAuth2) and
`DelegateAuth`. Anything else implementing the two coroutines works too.
'''
import asyncio
import base64
import time
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

import httpx

from recourse.http._models import AuthenticationError, FailureKind, TransportError


logger = logging.getLogger(__name__)


@runtime_checkable
class AuthProvider(Protocol):

    async def refresh_token(self) -> None:
        '''Obtain a fresh credential, replacing any cached one.'''
        ...

    async def get_auth_header(self) -> tuple[str, str]:
        '''Return the `(name, value)` header pair, refreshing first if needed.'''
        ...


class BasicAuth:
    '''
    HTTP basic authentication, the credential never expires so
    refreshing is a no-op.
    '''
    __slots__ = ('_header',)

    def __init__(self, username: str, password: str) -> None:
        token = base64.b64encode(f'{username}:{password}'.encode()).decode('ascii')
        self._header: tuple[str, str] = ('Authorization', f'Basic {token}')

    async def refresh_token(self) -> None:
        return None

    async def get_auth_header(self) -> tuple[str, str]:
        return self._header


class DelegateAuth:
    '''
    Delegates token acquisition to a user supplied coroutine function.
    The token is cached until `refresh_token()` is called; concurrent
    callers share one fetch. Failures of `fetch_token` surface as
    `AuthenticationError`.

    Parameters
    ----------
    fetch_token : Callable[[], Awaitable[str]]
        Returns a fresh token each time it is awaited
    header_name : str, optional
        by default 'Authorization'
    scheme : str | None, optional
        Prefix for the header value, by default 'Bearer'; `None`
        sends the bare token
    '''

    def __init__(
        self,
        fetch_token: Callable[[], Awaitable[str]],
        *,
        header_name: str = 'Authorization',
        scheme: str | None = 'Bearer',
    ) -> None:
        self._fetch_token = fetch_token
        self._header_name: str = header_name
        self._scheme: str | None = scheme
        self._token: str | None = None
        self._generation: int = 0
        self._lock = asyncio.Lock()

    async def _fetch(self) -> None:
        try:
            self._token = await self._fetch_token()
        except AuthenticationError:
            raise
        except Exception as exc:
            raise AuthenticationError(f'Token delegate failed: {exc!r}') from exc
        self._generation += 1

    async def refresh_token(self) -> None:
        seen = self._generation
        async with self._lock:
            if self._generation == seen:
                await self._fetch()

    async def get_auth_header(self) -> tuple[str, str]:
        if self._token is None:
            seen = self._generation
            async with self._lock:
                if self._generation == seen and self._token is None:
                    await self._fetch()
        value = f'{self._scheme} {self._token}' if self._scheme else self._token
        return self._header_name, value


class ClientCredentialsAuth:
    '''
    OAuth2 client credentials grant. The access token is cached until
    shortly before it expires; concurrent callers needing a refresh share
    one in-flight token request.

    Parameters
    ----------
    token_url : str
    client_id : str
    client_secret : str
    scope : str | None, optional
    expiry_skew : float, optional
        Seconds before the advertised expiry at which the token counts
        as stale, by default 30
    timeout : float, optional
        Timeout for the token request in seconds, by default 10
    client : httpx.AsyncClient | None, optional
        Client used for the token request, one is created if omitted
    '''

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        *,
        scope: str | None = None,
        expiry_skew: float = 30.0,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token_url: str = token_url
        self._client_id: str = client_id
        self._client_secret: str = client_secret
        self._scope: str | None = scope
        self._expiry_skew: float = expiry_skew
        self._timeout: float = timeout
        self._client: httpx.AsyncClient = client or httpx.AsyncClient()

        self._access_token: str | None = None
        self._expires_at: float | None = None
        self._generation: int = 0
        self._lock = asyncio.Lock()

    @property
    def is_stale(self) -> bool:
        if self._access_token is None:
            return True
        if self._expires_at is None:
            return False
        return time.monotonic() >= self._expires_at - self._expiry_skew

    async def _request_token(self) -> None:
        data = {
            'grant_type': 'client_credentials',
            'client_id': self._client_id,
            'client_secret': self._client_secret,
        }
        if self._scope:
            data['scope'] = self._scope

        try:
            response = await self._client.post(
                self._token_url,
                data=data,
                headers={'Accept': 'application/json'},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(
                FailureKind.TIMEOUT, f'token request to {self._token_url} timed out'
            ) from exc
        except httpx.TransportError as exc:
            raise TransportError(
                FailureKind.NETWORK, f'token request to {self._token_url} failed: {exc!r}'
            ) from exc

        if response.is_error:
            raise AuthenticationError(
                f'Token endpoint answered {response.status_code}: {response.text[:200]}'
            )

        try:
            payload = response.json()
            token = payload['access_token']
            expires_in = payload.get('expires_in')
            lifetime = float(expires_in) if expires_in is not None else None
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise AuthenticationError(
                f'Token endpoint returned an unusable body: {exc!r}'
            ) from exc

        self._access_token = token
        self._expires_at = time.monotonic() + lifetime if lifetime is not None else None
        self._generation += 1
        logger.debug(f'Obtained access token from {self._token_url} (expires_in={expires_in})')

    async def refresh_token(self) -> None:
        '''
        Fetch a new access token. Callers that queued up behind an
        in-flight refresh reuse its result instead of issuing another.
        '''
        seen = self._generation
        async with self._lock:
            if self._generation != seen:
                return
            await self._request_token()

    async def get_auth_header(self) -> tuple[str, str]:
        if self.is_stale:
            seen = self._generation
            async with self._lock:
                if self._generation == seen and self.is_stale:
                    await self._request_token()
        return 'Authorization', f'Bearer {self._access_token}'

    async def aclose(self) -> None:
        await self._client.aclose()
