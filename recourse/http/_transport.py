import asyncio
import ssl
import socket
import contextlib
import logging
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

import httpcore
import httpx

from recourse.http._models import FailureKind, RawResponse, TransportError


logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    '''
    Performs exactly one raw HTTP call. Implementations raise
    `TransportError` when no HTTP exchange happened (timeout, connection
    failure); any status code, including 5xx, is a normal return.
    '''

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
        timeout: float,
    ) -> RawResponse: ...

    async def aclose(self) -> None: ...


def _base_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=100,
        max_keepalive_connections=20,
        keepalive_expiry=15,
    )


def get_socket_options() -> list[tuple]:
    '''
    cross platform socket options for TCP connections

    Returns
    -------
    list[SockOpt]
    '''
    opts = []

    if hasattr(socket, "TCP_NODELAY"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_NODELAY, 1))

    if hasattr(socket, "SO_KEEPALIVE"):
        opts.append((socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1))

    if hasattr(socket, "TCP_KEEPIDLE"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, 60))

    if hasattr(socket, "TCP_KEEPINTVL"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, 10))

    return opts


def modern_ssl_context() -> ssl.SSLContext:
    '''
    SSL context restricted to TLS 1.2+ with hostname verification,
    offering h2 and http/1.1 over ALPN.

    Returns
    -------
    ssl.SSLContext
    '''
    ctx = ssl.create_default_context(purpose=ssl.Purpose.SERVER_AUTH)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED

    with contextlib.suppress(NotImplementedError):
        ctx.set_alpn_protocols(["h2", "http/1.1"])

    ctx.options |= ssl.OP_NO_COMPRESSION
    return ctx


class HttpxTransport:
    '''
    The default transport, a single attempt through `httpx.AsyncClient`.
    Redirects are followed; httpx, httpcore and OS level network errors
    are mapped to `TransportError`, as are request errors that leave no
    usable response (redirect loops, undecodable bodies).
    '''

    _NETWORK_ERRORS = (
        ConnectionError,
        httpx.TransportError,
        httpcore.ConnectError,
        httpcore.NetworkError,
        ssl.SSLError,
        OSError,
    )
    _TIMEOUT_ERRORS = (
        asyncio.TimeoutError,
        httpx.TimeoutException,
        httpcore.TimeoutException,
    )

    def __init__(
        self,
        *,
        http2: bool = True,
        trust_env: bool = False,
        follow_redirects: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if client is None:
            client = httpx.AsyncClient(
                transport=httpx.AsyncHTTPTransport(
                    http2=http2,
                    socket_options=get_socket_options(),
                    verify=modern_ssl_context(),
                    trust_env=trust_env,
                    limits=_base_limits(),
                ),
                follow_redirects=follow_redirects,
                trust_env=trust_env,
            )
        self._client: httpx.AsyncClient = client

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
        timeout: float,
    ) -> RawResponse:
        logger.debug(f'Sending request: {method} {url}')
        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                content=body,
                timeout=timeout,
            )
        except self._TIMEOUT_ERRORS as exc:
            raise TransportError(
                FailureKind.TIMEOUT, f'{method} {url} timed out after {timeout}s'
            ) from exc
        except self._NETWORK_ERRORS as exc:
            raise TransportError(
                FailureKind.NETWORK, f'{method} {url} failed: {exc!r}'
            ) from exc
        except httpx.RequestError as exc:
            raise TransportError(
                FailureKind.NETWORK, f'{method} {url} could not complete: {exc!r}'
            ) from exc

        return RawResponse(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
            url=str(response.url),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
