"""
Structured event lines for the record service.

Operators follow backend selection and API failures through these events:
`record_store_selected`, `record_store_fallback`, `record_store_closed`,
`record_store_error` and `api_server_started`. Each is one JSON object per
line on stdout, separate from the human-oriented `logging` output.
"""

from __future__ import annotations

import json
import os
import time
import uuid
from typing import Any, Dict, Optional

SERVICE_NAME_ENV = "RECORDS_SERVICE_NAME"
DEFAULT_SERVICE_NAME = "polycloud-dns"


def build_log_context(*, tool: str) -> Dict[str, Any]:
    """
    Build the fields shared by every event one component emits.

    `tool` names the emitting component (`store_selector`, `api_server`,
    `main`). Record values never go in here; callers pass names and keys only.
    """
    return {
        "tool": tool,
        "request_id": str(uuid.uuid4()),
        "ts_ms": int(time.time() * 1000),
        "service": os.getenv(SERVICE_NAME_ENV, DEFAULT_SERVICE_NAME),
    }


def log_event(event: str, *, ctx: Dict[str, Any], data: Optional[Dict[str, Any]] = None) -> None:
    """
    Write one event line.

    Non-JSON values in `data` (enums, tuples of endpoints) are rendered with
    `str`, so an event is never dropped over a serialization detail.
    """
    line = {**ctx, "event": event}
    if data:
        line["data"] = data
    print(json.dumps(line, sort_keys=True, default=str), flush=True)
