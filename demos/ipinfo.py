import asyncio
import logging
import sys
import dataclasses as dc

from recourse import HttpClient, HttpClientOptions, RetryStrategy


@dc.dataclass(slots=True)
class IpRecord:
    ip: str
    city: str | None = None
    country: str | None = None
    org: str | None = None
    loc: str | None = None
    timezone: str | None = None

    @classmethod
    def from_json(cls, data: dict) -> 'IpRecord':
        names = {f.name for f in dc.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


def record_str(record: IpRecord) -> str:
    sep = '-------------------------'
    result = f'\n{sep}\n'
    for field in dc.fields(record):
        value = getattr(record, field.name, None) or 'N/A'
        result += f'{field.name}: {value}\n'
    return result + sep


async def main() -> int:
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')
    if len(sys.argv) < 2:
        ip_addr = input('Enter an IP address to lookup: ').strip()
    else:
        ip_addr = sys.argv[1].strip()

    options = HttpClientOptions(
        timeout=5_000,
        max_attempts=3,
        retry_delay=500,
        retry_strategy=RetryStrategy.LINEAR,
        custom_headers={'Accept': 'application/json'},
    )
    async with HttpClient('https://ipinfo.io', options) as client:
        result = await client.get_as(f'/{ip_addr}/json', IpRecord.from_json)

    if result.not_found:
        print(f'No information for {ip_addr}')
        return 1
    if not result.success:
        print(f'Error fetching IP information: {result.error_message}')
        return 1

    print(record_str(result.get_value_or_throw()))
    return 0


if __name__ == '__main__':
    sys.exit(
        asyncio.run(main())
    )
