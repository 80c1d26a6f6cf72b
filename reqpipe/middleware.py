"""Callback middleware: functions that take a ProcFn and return a ProcFn.

Wrapped callbacks are coroutine functions; the pipeline awaits them.
"""
from __future__ import annotations

import inspect
from typing import Callable, Optional

import httpx

from .types import ProcFn

Middleware = Callable[[ProcFn], ProcFn]


async def _call(
    fn: ProcFn,
    req: httpx.Request,
    resp: Optional[httpx.Response],
    err: Optional[Exception],
) -> None:
    res = fn(req, resp, err)
    if inspect.isawaitable(res):
        await res


def close_body(fn: ProcFn) -> ProcFn:
    """Run fn, then close the response (if there is one)."""

    async def wrapped(req, resp, err):
        try:
            await _call(fn, req, resp, err)
        finally:
            if resp is not None:
                await resp.aclose()

    return wrapped


def if_no_error(fn: ProcFn) -> ProcFn:
    """Only run fn when the request completed without a transport error."""

    async def wrapped(req, resp, err):
        if err is not None:
            return
        await _call(fn, req, resp, err)

    return wrapped


def wrap(fn: ProcFn, *middleware: Middleware) -> ProcFn:
    # Applied in order, so the last middleware runs outermost.
    for m in middleware:
        fn = m(fn)
    return fn
