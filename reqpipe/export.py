from __future__ import annotations

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .types import FetchResult

FIELDNAMES = [
    "url",
    "host",
    "status",
    "http_status",
    "elapsed_ms",
    "timestamp_iso",
    "error",
]


def export_results(
    results: List[FetchResult],
    fmt: str = "csv",
    out_dir: Optional[Path] = None,
) -> str:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    fmt = (fmt or "csv").lower().strip()
    base = Path(out_dir) if out_dir is not None else Path(".")

    if fmt == "json":
        filename = base / f"reqpipe_{ts}.json"
        with open(filename, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in results], f, indent=2)
        return str(filename)

    filename = base / f"reqpipe_{ts}.csv"
    with open(filename, "w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=FIELDNAMES)
        w.writeheader()
        for r in results:
            w.writerow(r.to_dict())
    return str(filename)
