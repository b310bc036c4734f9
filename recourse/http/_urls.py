from collections.abc import Mapping
from typing import Any

import httpx


def build_url(
    base_url: str | httpx.URL,
    target: str,
    params: Mapping[str, Any] | None = None,
) -> httpx.URL:
    '''
    Resolve a request target against the client's base URL and merge in
    query parameters. Absolute targets are used as they are; relative
    ones are appended to the base path, so `https://api.test/v1` and
    `/users` give `https://api.test/v1/users`.

    Parameters
    ----------
    base_url : str | httpx.URL
    target : str
    params : Mapping[str, Any] | None, optional
        Query parameters; `None` values are dropped

    Returns
    -------
    httpx.URL
    '''
    url = httpx.URL(target)
    if not url.is_absolute_url:
        base = httpx.URL(base_url or '')
        base_path = base.raw_path.split(b'?', 1)[0]
        if not base_path.endswith(b'/'):
            base_path += b'/'
        url = base.copy_with(raw_path=base_path + url.raw_path.lstrip(b'/'))

    if params:
        url = url.copy_merge_params(
            {key: value for key, value in params.items() if value is not None}
        )
    return url
