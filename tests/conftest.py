import asyncio

from recourse.http import FailureKind, RawResponse, TransportError


class SequenceTransport:
    '''
    Replays a fixed sequence of outcomes, repeating the last one. Items
    are `RawResponse`s, ints (status codes) or exceptions to raise.
    '''

    def __init__(self, outcomes):
        self._outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    async def send(self, method, url, headers, body, timeout):
        self.calls.append({
            'method': method,
            'url': url,
            'headers': headers,
            'body': body,
            'timeout': timeout,
        })
        item = self._outcomes[min(len(self.calls) - 1, len(self._outcomes) - 1)]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, int):
            return RawResponse(status_code=item)
        return item

    async def aclose(self) -> None:
        self.closed = True


class SlowTransport(SequenceTransport):

    def __init__(self, delay: float, outcomes=(200,)):
        super().__init__(outcomes)
        self.delay = delay

    async def send(self, method, url, headers, body, timeout):
        await asyncio.sleep(self.delay)
        return await super().send(method, url, headers, body, timeout)


class CountingAuth:
    '''Hands out `Bearer token-<n>` where n is the number of refreshes.'''

    def __init__(self, header_name: str = 'Authorization'):
        self.header_name = header_name
        self.refreshes = 0
        self.header_calls = 0
        self.events = []

    async def refresh_token(self) -> None:
        self.refreshes += 1
        self.events.append('refresh')

    async def get_auth_header(self) -> tuple[str, str]:
        self.header_calls += 1
        self.events.append('header')
        return self.header_name, f'Bearer token-{self.refreshes}'


def network_error(message: str = 'connection refused') -> TransportError:
    return TransportError(FailureKind.NETWORK, message)
