from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx

# Completion callback: (request, response or None, error or None).
# Response may be None whenever error is set; callbacks must check.
ProcFn = Callable[
    [httpx.Request, Optional[httpx.Response], Optional[Exception]],
    Union[None, Awaitable[None]],
]


@dataclass(frozen=True)
class WorkItem:
    request: httpx.Request
    fn: ProcFn


class FetchStatus(str, Enum):
    OK = "ok"
    HTTP_ERROR = "http_error"
    ERROR = "error"
    INVALID = "invalid"


@dataclass
class FetchResult:
    url: str
    host: str
    status: FetchStatus
    http_status: Optional[int] = None
    elapsed_ms: int = 0
    error: Optional[str] = None
    timestamp_iso: str = ""

    @property
    def failed(self) -> bool:
        return self.status != FetchStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        return d
