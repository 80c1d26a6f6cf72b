"""Unit tests for client construction helpers."""

from __future__ import annotations

import httpx
import pytest

from reqpipe.clients import DEFAULT_TIMEOUT_SEC, ClientOptions, new_client, new_default_client


@pytest.mark.asyncio
async def test_default_client_follows_redirects_with_timeout() -> None:
    async with new_default_client() as client:
        assert client.follow_redirects is True
        assert client.timeout == httpx.Timeout(DEFAULT_TIMEOUT_SEC)


@pytest.mark.asyncio
async def test_no_redirects_option() -> None:
    async with new_client(ClientOptions.NO_REDIRECTS) as client:
        assert client.follow_redirects is False


@pytest.mark.asyncio
async def test_combined_options_and_custom_timeout() -> None:
    opts = ClientOptions.NO_REDIRECTS | ClientOptions.SKIP_VERIFY
    async with new_client(opts, timeout=5) as client:
        assert client.follow_redirects is False
        assert client.timeout == httpx.Timeout(5)


def test_options_are_a_bitmask() -> None:
    opts = ClientOptions.NO_REDIRECTS | ClientOptions.SKIP_VERIFY
    assert opts & ClientOptions.SKIP_VERIFY
    assert not (ClientOptions.NO_REDIRECTS & ClientOptions.SKIP_VERIFY)
