from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import httpx

from .builders import InvalidRequestError
from .clients import DEFAULT_TIMEOUT_SEC, ClientOptions, new_client
from .export import export_results
from .pipeline import DEFAULT_CONCURRENCY, Pipeline
from .rate_limit import host_key
from .settings import get_bool, get_float, get_int
from .types import FetchResult, FetchStatus

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _elapsed_ms(resp: httpx.Response) -> int:
    try:
        return int(resp.elapsed.total_seconds() * 1000)
    except RuntimeError:
        # elapsed is only set once the client has streamed the body itself
        return 0


def read_urls(lines: Iterable[str]) -> List[str]:
    """Non-blank, non-comment lines, stripped."""
    out = []
    for line in lines:
        s = line.strip()
        if s and not s.startswith("#"):
            out.append(s)
    return out


async def fetch_all(
    urls: List[str],
    client: httpx.AsyncClient,
    concurrency: int = DEFAULT_CONCURRENCY,
    rate_limit: float = 0.0,
    method: str = "GET",
) -> List[FetchResult]:
    results: List[FetchResult] = []

    def record(req: httpx.Request, resp: Optional[httpx.Response], err: Optional[Exception]) -> None:
        if err is not None or resp is None:
            results.append(
                FetchResult(
                    url=str(req.url),
                    host=host_key(req),
                    status=FetchStatus.ERROR,
                    error=str(err) or type(err).__name__,
                    timestamp_iso=_now_iso(),
                )
            )
            return

        results.append(
            FetchResult(
                url=str(req.url),
                host=host_key(req),
                status=FetchStatus.OK if resp.status_code < 400 else FetchStatus.HTTP_ERROR,
                http_status=resp.status_code,
                elapsed_ms=_elapsed_ms(resp),
                timestamp_iso=_now_iso(),
            )
        )

    pipeline = Pipeline(concurrency, client)
    pipeline.set_rate_limit(rate_limit)

    async with pipeline:
        for url in urls:
            try:
                await pipeline.request(method, url, record)
            except InvalidRequestError as e:
                logger.warning("skipping %s: %s", url, e)
                results.append(
                    FetchResult(
                        url=url,
                        host="",
                        status=FetchStatus.INVALID,
                        error=str(e),
                        timestamp_iso=_now_iso(),
                    )
                )

    return sorted(results, key=lambda r: r.url)


async def _run(args: argparse.Namespace, urls: List[str]) -> List[FetchResult]:
    opts = ClientOptions.NONE
    if args.no_redirects or not get_bool("follow_redirects", True):
        opts |= ClientOptions.NO_REDIRECTS
    if args.insecure or not get_bool("verify_tls", True):
        opts |= ClientOptions.SKIP_VERIFY

    async with new_client(opts, timeout=args.timeout) as client:
        start = time.monotonic()
        results = await fetch_all(
            urls,
            client,
            concurrency=args.concurrency,
            rate_limit=args.rate_limit,
            method=args.method,
        )
        logger.info("fetched %d url(s) in %.2fs", len(results), time.monotonic() - start)
        return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="reqpipe: fetch URLs through a bounded, per-host rate-limited pipeline"
    )
    parser.add_argument("urls", nargs="*", help="URLs to fetch")
    parser.add_argument(
        "--input", "-i", help="File with one URL per line ('-' for stdin)"
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=get_int("concurrency", DEFAULT_CONCURRENCY),
        help="Number of concurrent workers",
    )
    parser.add_argument(
        "--rate-limit",
        type=float,
        default=get_float("rate_limit", 0.0),
        help="Minimum seconds between requests to the same host (0 disables)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=get_float("timeout", DEFAULT_TIMEOUT_SEC),
        help="Per-request timeout in seconds",
    )
    parser.add_argument("--method", choices=["GET", "HEAD"], default="GET")
    parser.add_argument(
        "--no-redirects", action="store_true", help="Do not follow redirects"
    )
    parser.add_argument(
        "--insecure", action="store_true", help="Skip TLS certificate verification"
    )
    parser.add_argument(
        "--format", choices=["csv", "json"], default="csv", help="Export format"
    )
    parser.add_argument(
        "--no-export", action="store_true", help="Print results without exporting"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler("reqpipe.log"), logging.StreamHandler()],
    )

    urls = list(args.urls)
    if args.input == "-":
        urls.extend(read_urls(sys.stdin))
    elif args.input:
        with open(args.input, "r", encoding="utf-8") as f:
            urls.extend(read_urls(f))

    if not urls:
        parser.error("no URLs given")
    if args.concurrency < 1:
        parser.error("--concurrency must be >= 1")

    results = asyncio.run(_run(args, urls))

    for r in results:
        if r.status == FetchStatus.OK:
            mark = "✓"
            msg = f"{r.http_status} {r.elapsed_ms}ms"
        elif r.status == FetchStatus.HTTP_ERROR:
            mark = "✗"
            msg = f"{r.http_status} {r.elapsed_ms}ms"
        else:
            mark = "?"
            msg = r.error or "error"
        print(f"[{mark}] {r.status.value:10} {r.url} {msg}")

    if not args.no_export:
        out = export_results(results, args.format)
        print(f"\nExported: {out}")
    print("Log: reqpipe.log")

    return 1 if any(r.failed for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
