from __future__ import annotations

from typing import Dict, Optional, Union

import httpx

ALLOWED_SCHEMES = ("http", "https")


class InvalidRequestError(ValueError):
    pass


def build_request(
    method: str,
    url: str,
    content: Optional[Union[str, bytes]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Request:
    """Build an outbound request, rejecting URLs no worker could dispatch.

    Only absolute http(s) URLs with a host are accepted; anything else
    raises InvalidRequestError here, in the caller's context.
    """
    try:
        u = httpx.URL(url)
    except Exception as e:
        raise InvalidRequestError(f"bad url {url!r}: {e}") from e

    if u.scheme not in ALLOWED_SCHEMES:
        raise InvalidRequestError(f"scheme not allowed: {url!r}")
    if not u.host:
        raise InvalidRequestError(f"missing host: {url!r}")

    return httpx.Request(method.upper(), u, content=content, headers=headers)
