import asyncio
import base64
from urllib.parse import parse_qs

import httpx
import pytest

from recourse.auth import AuthProvider, BasicAuth, ClientCredentialsAuth, DelegateAuth
from recourse.http import AuthenticationError, FailureKind, TransportError


TOKEN_URL = 'https://auth.test/oauth/token'


class TokenServer:
    def __init__(self, expires_in=3600, status=200, delay=0.0):
        self.requests = []
        self.expires_in = expires_in
        self.status = status
        self.delay = delay

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(parse_qs(request.content.decode()))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.status != 200:
            return httpx.Response(self.status, json={'error': 'invalid_client'})
        body = {'access_token': f'tok-{len(self.requests)}', 'token_type': 'bearer'}
        if self.expires_in is not None:
            body['expires_in'] = self.expires_in
        return httpx.Response(200, json=body)


def credentials_auth(server: TokenServer, **kwargs) -> ClientCredentialsAuth:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return ClientCredentialsAuth(TOKEN_URL, 'my-id', 'my-secret', client=client, **kwargs)


@pytest.mark.asyncio
async def test_basic_auth_header():
    auth = BasicAuth('alice', 's3cret')
    await auth.refresh_token()
    name, value = await auth.get_auth_header()

    assert name == 'Authorization'
    assert value == 'Basic ' + base64.b64encode(b'alice:s3cret').decode()


def test_variants_satisfy_the_protocol():
    async def fetch():
        return 't'

    assert isinstance(BasicAuth('a', 'b'), AuthProvider)
    assert isinstance(DelegateAuth(fetch), AuthProvider)
    assert isinstance(credentials_auth(TokenServer()), AuthProvider)


@pytest.mark.asyncio
async def test_delegate_auth_caches_until_refreshed():
    tokens = iter(['first', 'second'])

    async def fetch():
        return next(tokens)

    auth = DelegateAuth(fetch)
    assert await auth.get_auth_header() == ('Authorization', 'Bearer first')
    assert await auth.get_auth_header() == ('Authorization', 'Bearer first')

    await auth.refresh_token()
    assert await auth.get_auth_header() == ('Authorization', 'Bearer second')


@pytest.mark.asyncio
async def test_delegate_auth_custom_header_without_scheme():
    async def fetch():
        return 'key-123'

    auth = DelegateAuth(fetch, header_name='X-Api-Key', scheme=None)
    assert await auth.get_auth_header() == ('X-Api-Key', 'key-123')


@pytest.mark.asyncio
async def test_client_credentials_fetches_and_caches_token():
    server = TokenServer()
    auth = credentials_auth(server, scope='read write')

    assert await auth.get_auth_header() == ('Authorization', 'Bearer tok-1')
    assert await auth.get_auth_header() == ('Authorization', 'Bearer tok-1')

    assert len(server.requests) == 1
    form = server.requests[0]
    assert form['grant_type'] == ['client_credentials']
    assert form['client_id'] == ['my-id']
    assert form['client_secret'] == ['my-secret']
    assert form['scope'] == ['read write']


@pytest.mark.asyncio
async def test_client_credentials_refreshes_stale_tokens():
    server = TokenServer(expires_in=10)
    auth = credentials_auth(server, expiry_skew=30)

    await auth.get_auth_header()
    assert auth.is_stale
    assert await auth.get_auth_header() == ('Authorization', 'Bearer tok-2')


@pytest.mark.asyncio
async def test_client_credentials_without_expiry_never_goes_stale():
    server = TokenServer(expires_in=None)
    auth = credentials_auth(server)

    await auth.get_auth_header()
    assert not auth.is_stale


@pytest.mark.asyncio
async def test_forced_refresh_replaces_the_token():
    server = TokenServer()
    auth = credentials_auth(server)

    await auth.get_auth_header()
    await auth.refresh_token()
    assert await auth.get_auth_header() == ('Authorization', 'Bearer tok-2')


@pytest.mark.asyncio
async def test_concurrent_refreshes_are_coalesced():
    server = TokenServer(delay=0.01)
    auth = credentials_auth(server)

    headers = await asyncio.gather(*(auth.get_auth_header() for _ in range(5)))

    assert len(server.requests) == 1
    assert set(headers) == {('Authorization', 'Bearer tok-1')}


@pytest.mark.asyncio
async def test_concurrent_forced_refreshes_share_one_request():
    server = TokenServer(delay=0.01)
    auth = credentials_auth(server)

    await asyncio.gather(*(auth.refresh_token() for _ in range(4)))

    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_rejected_client_raises_authentication_error():
    auth = credentials_auth(TokenServer(status=401))
    with pytest.raises(AuthenticationError, match='401'):
        await auth.get_auth_header()


@pytest.mark.asyncio
async def test_unreachable_token_endpoint_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError('refused', request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    auth = ClientCredentialsAuth(TOKEN_URL, 'id', 'secret', client=client)

    with pytest.raises(TransportError) as exc_info:
        await auth.get_auth_header()
    assert exc_info.value.kind is FailureKind.NETWORK


@pytest.mark.asyncio
async def test_unparsable_expiry_raises_authentication_error():
    auth = credentials_auth(TokenServer(expires_in='soon'))
    with pytest.raises(AuthenticationError, match='unusable body'):
        await auth.get_auth_header()


@pytest.mark.asyncio
async def test_delegate_failures_raise_authentication_error():
    async def fetch():
        raise RuntimeError('vault unavailable')

    auth = DelegateAuth(fetch)
    with pytest.raises(AuthenticationError, match='vault unavailable') as exc_info:
        await auth.get_auth_header()
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_delegate_concurrent_callers_share_one_fetch():
    calls = 0

    async def fetch():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return f'token-{calls}'

    auth = DelegateAuth(fetch)
    headers = await asyncio.gather(*(auth.get_auth_header() for _ in range(5)))

    assert calls == 1
    assert set(headers) == {('Authorization', 'Bearer token-1')}

    await asyncio.gather(*(auth.refresh_token() for _ in range(3)))
    assert calls == 2
