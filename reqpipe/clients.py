from __future__ import annotations

from enum import IntFlag

import httpx

DEFAULT_TIMEOUT_SEC = 30.0


class ClientOptions(IntFlag):
    """Bitmask of options for new_client."""

    NONE = 0
    # Hand back the 3xx response instead of following it
    NO_REDIRECTS = 1
    # Skip verification of TLS certificates
    SKIP_VERIFY = 2


def new_default_client(timeout: float = DEFAULT_TIMEOUT_SEC) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


def new_client(
    opts: ClientOptions = ClientOptions.NONE,
    timeout: float = DEFAULT_TIMEOUT_SEC,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        verify=not (opts & ClientOptions.SKIP_VERIFY),
        follow_redirects=not (opts & ClientOptions.NO_REDIRECTS),
    )
