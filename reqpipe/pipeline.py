from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, List, Optional

import httpx

from .builders import build_request
from .clients import new_default_client
from .rate_limit import HostRateLimiter, host_key
from .types import ProcFn, WorkItem

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 6

# Queue marker: one per worker, enqueued by close()
_CLOSED = object()


class PipelineClosedError(RuntimeError):
    pass


class Pipeline:
    """Fixed pool of workers executing submitted requests.

    Workers start on the first submit (or an explicit start()), pull work
    items off a single shared queue, optionally pass the per-host rate
    limiter, send the request and hand (request, response, error) to the
    item's callback. close() stops submission; workers drain whatever was
    accepted and exit. wait() returns once every worker has exited.

    A callback that raises is not isolated from the caller: the first such
    exception is re-raised by wait(). The worker that ran it keeps serving
    the queue, so the pool stays at its configured size.

    Concurrency, client, rate limit and streaming are frozen once the
    first worker launches: their setters become no-ops.

    There is no pool-wide cancellation; the only timeout is the client's
    per-request timeout.
    """

    def __init__(
        self,
        concurrency: int = DEFAULT_CONCURRENCY,
        client: Optional[httpx.AsyncClient] = None,
        *,
        stream: bool = False,
    ):
        _check_concurrency(concurrency)
        self._concurrency = int(concurrency)
        # default client is built in start() when none was injected
        self._client: Optional[httpx.AsyncClient] = client
        self._owns_client = False
        self._stream = bool(stream)

        self._queue: asyncio.Queue = asyncio.Queue()
        self._workers: List[asyncio.Task] = []
        self._running = False
        self._closed = False
        self._failure: Optional[BaseException] = None

        self.limiter = HostRateLimiter(0)
        self._rate_limited = False

    async def __aenter__(self) -> "Pipeline":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
        await self.wait()

    # ---- configuration (frozen after start) ----

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def client(self) -> Optional[httpx.AsyncClient]:
        return self._client

    @property
    def running(self) -> bool:
        return self._running

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def rate_limited(self) -> bool:
        return self._rate_limited

    def _frozen(self, what: str) -> bool:
        if self._running:
            logger.debug("pipeline running; ignoring %s change", what)
            return True
        return False

    def set_rate_limit(self, seconds: float) -> None:
        """Minimum delay between requests to the same host; 0 disables."""
        if self._frozen("rate limit"):
            return
        seconds = float(seconds)
        self._rate_limited = seconds > 0
        self.limiter.min_interval_sec = max(seconds, 0.0)

    def set_client(self, client: httpx.AsyncClient) -> None:
        if self._frozen("client"):
            return
        self._client = client

    def set_concurrency(self, concurrency: int) -> None:
        if self._frozen("concurrency"):
            return
        _check_concurrency(concurrency)
        self._concurrency = int(concurrency)

    # ---- lifecycle ----

    def start(self) -> None:
        if self._running:
            return
        if self._closed:
            raise PipelineClosedError("pipeline closed before it was started")
        self._running = True

        if self._client is None:
            self._client = new_default_client()
            self._owns_client = True

        for i in range(self._concurrency):
            self._workers.append(
                asyncio.create_task(self._work(i), name=f"reqpipe-worker-{i}")
            )
        logger.debug(
            "started %d workers (rate limit %.3fs)",
            self._concurrency,
            self.limiter.min_interval_sec if self._rate_limited else 0.0,
        )

    async def submit(self, request: httpx.Request, fn: ProcFn) -> None:
        """Hand a request to the pool.

        Returns once a worker has accepted the item; the callback runs
        later, on that worker. Cancelling the caller before a worker
        accepts withdraws the item.
        """
        if self._closed:
            raise PipelineClosedError("submit called after close")
        self.start()

        accepted = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((WorkItem(request, fn), accepted))
        await accepted

    async def request(self, method: str, url: str, fn: ProcFn, **kwargs: Any) -> None:
        req = build_request(method, url, **kwargs)
        await self.submit(req, fn)

    async def get(self, url: str, fn: ProcFn, **kwargs: Any) -> None:
        await self.request("GET", url, fn, **kwargs)

    async def post(
        self,
        url: str,
        fn: ProcFn,
        content: Optional[bytes | str] = None,
        **kwargs: Any,
    ) -> None:
        await self.request("POST", url, fn, content=content, **kwargs)

    def close(self) -> None:
        """No further submissions; workers drain the queue and exit."""
        if self._closed:
            return
        self._closed = True
        for _ in self._workers:
            self._queue.put_nowait(_CLOSED)

    async def wait(self) -> None:
        """Block until every worker has exited.

        Only returns after close(); before that the workers keep waiting
        for more items. Re-raises the first callback exception, if any.
        """
        try:
            await asyncio.gather(*self._workers)
        finally:
            if self._closed and self._owns_client:
                await self._client.aclose()

        if self._failure is not None:
            raise self._failure

    # ---- workers ----

    async def _work(self, index: int) -> None:
        while True:
            entry = await self._queue.get()
            if entry is _CLOSED:
                break

            item, accepted = entry
            if accepted.cancelled():
                continue
            accepted.set_result(None)

            try:
                await self._dispatch(item)
            except Exception as e:
                logger.exception("callback failed on worker %d", index)
                if self._failure is None:
                    self._failure = e

        logger.debug("worker %d drained", index)

    async def _dispatch(self, item: WorkItem) -> None:
        req = item.request
        if self._rate_limited:
            await self.limiter.wait(host_key(req))

        resp: Optional[httpx.Response] = None
        err: Optional[Exception] = None
        try:
            resp = await self._client.send(req, stream=self._stream)
        except httpx.HTTPError as e:
            logger.debug("%s %s failed: %s", req.method, req.url, e)
            err = e

        res = item.fn(req, resp, err)
        if inspect.isawaitable(res):
            await res


def _check_concurrency(concurrency: int) -> None:
    if int(concurrency) < 1:
        raise ValueError("concurrency must be >= 1")
