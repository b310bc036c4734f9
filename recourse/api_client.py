'''
**recourse.api_client**
-----------------

The caller facing client. Each verb method builds an immutable `Request`
and hands it to the `RequestExecutor`; the `*_as` variants additionally
parse the JSON body into a target type. Nothing here raises for HTTP or
network failures, inspect the returned envelope or unwrap it with
`ensure_success()` / `get_value_or_throw()`.
'''
import json
import logging
from collections.abc import Mapping
from typing import Any, Self, TypeVar

from recourse.http import (
    HttpClientOptions,
    HttpMethod,
    HttpxTransport,
    Request,
    RequestExecutor,
    ResultEnvelope,
    Transport,
    TypedResultEnvelope,
)


logger = logging.getLogger(__name__)

T = TypeVar('T')

def encode_body(
    json_body: Any = None,
    content: bytes | str | None = None,
) -> tuple[bytes | None, dict[str, str]]:
    '''
    Turn a JSON payload or raw content into request bytes plus the
    headers the payload implies. As in httpx, `json_body=None` means no
    JSON payload; send the literal `null` with `content=b'null'`.

    Returns
    -------
    tuple[bytes | None, dict[str, str]]
    '''
    if json_body is not None and content is not None:
        raise ValueError('Pass either json or content, not both')

    if json_body is not None:
        body = json.dumps(json_body, separators=(',', ':')).encode('utf-8')
        return body, {'Content-Type': 'application/json'}

    if isinstance(content, str):
        return content.encode('utf-8'), {}
    return content, {}


class HttpClient:
    '''
    HTTP client with pluggable auth, retries with backoff and result
    envelopes.

    Parameters
    ----------
    base_url : str
        Relative request targets are resolved against this
    options : HttpClientOptions | None, optional
        The configuration snapshot, defaults are used if omitted
    transport : Transport | None, optional
        Performs the raw calls, an `HttpxTransport` by default
    '''
    base_url: str = ''

    def __init__(
        self,
        base_url: str | None = None,
        options: HttpClientOptions | None = None,
        *,
        transport: Transport | None = None,
    ) -> None:
        self.base_url = base_url if base_url is not None else self.base_url
        self._options: HttpClientOptions = options or HttpClientOptions()
        self._transport: Transport = transport or HttpxTransport()
        self._executor = RequestExecutor(self._transport, self._options)

    @property
    def options(self) -> HttpClientOptions:
        return self._options

    def build_request(
        self,
        method: HttpMethod | str,
        target: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        content: bytes | str | None = None,
    ) -> Request:
        body, implied = encode_body(json, content)
        all_headers = dict(headers or {})
        given = {name.lower() for name in all_headers}
        for name, value in implied.items():
            if name.lower() not in given:
                all_headers[name] = value
        return Request(
            method=HttpMethod(method.upper() if isinstance(method, str) else method),
            target=target,
            body=body,
            headers=all_headers,
            params=params or {},
        )

    async def send(self, request: Request) -> ResultEnvelope:
        return await self._executor.execute(request, self.base_url)

    async def send_as(
        self,
        request: Request,
        into: type[T] | Any = None,
    ) -> TypedResultEnvelope[T]:
        envelope = await self.send(request)
        typed = TypedResultEnvelope.from_envelope(envelope, into)
        if envelope.success and not typed.success:
            logger.debug(f'{request.method.value} {request.target}: {typed.error_message}')
        return typed

    async def request(
        self,
        method: HttpMethod | str,
        target: str,
        **kwargs: Any,
    ) -> ResultEnvelope:
        return await self.send(self.build_request(method, target, **kwargs))

    async def request_as(
        self,
        method: HttpMethod | str,
        target: str,
        into: type[T] | Any = None,
        **kwargs: Any,
    ) -> TypedResultEnvelope[T]:
        return await self.send_as(self.build_request(method, target, **kwargs), into)

    async def get(self, target: str, **kwargs: Any) -> ResultEnvelope:
        return await self.request(HttpMethod.GET, target, **kwargs)

    async def post(self, target: str, **kwargs: Any) -> ResultEnvelope:
        return await self.request(HttpMethod.POST, target, **kwargs)

    async def put(self, target: str, **kwargs: Any) -> ResultEnvelope:
        return await self.request(HttpMethod.PUT, target, **kwargs)

    async def patch(self, target: str, **kwargs: Any) -> ResultEnvelope:
        return await self.request(HttpMethod.PATCH, target, **kwargs)

    async def delete(self, target: str, **kwargs: Any) -> ResultEnvelope:
        return await self.request(HttpMethod.DELETE, target, **kwargs)

    async def get_as(
        self, target: str, into: type[T] | Any = None, **kwargs: Any
    ) -> TypedResultEnvelope[T]:
        return await self.request_as(HttpMethod.GET, target, into, **kwargs)

    async def post_as(
        self, target: str, into: type[T] | Any = None, **kwargs: Any
    ) -> TypedResultEnvelope[T]:
        return await self.request_as(HttpMethod.POST, target, into, **kwargs)

    async def put_as(
        self, target: str, into: type[T] | Any = None, **kwargs: Any
    ) -> TypedResultEnvelope[T]:
        return await self.request_as(HttpMethod.PUT, target, into, **kwargs)

    async def patch_as(
        self, target: str, into: type[T] | Any = None, **kwargs: Any
    ) -> TypedResultEnvelope[T]:
        return await self.request_as(HttpMethod.PATCH, target, into, **kwargs)

    async def delete_as(
        self, target: str, into: type[T] | Any = None, **kwargs: Any
    ) -> TypedResultEnvelope[T]:
        return await self.request_as(HttpMethod.DELETE, target, into, **kwargs)

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
