"""
Timing helpers for observability.

- Durations use monotonic time (immune to clock changes)
- Metrics are emitted as JSONL events via observability.logger
- Never aggregate: one measurement = one log event
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


def record_metric(
    name: str,
    value_ms: int,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a single duration metric."""
    log_event({
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": value_ms,
        "session_id": session_id,
        "details": details or {},
    })


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Measure the duration of a block.

    Guarantees:
    - The metric is emitted exactly once, even if the block raises
    - The block's exception is never suppressed
    - The yielded dict can be filled with extra details before exit

    Usage:
        with timed("live_open_latency", session_id=sid) as extra:
            await transport.open(...)
            extra["model"] = model
    """
    extra: dict[str, Any] = dict(details or {})
    start_ns = time.monotonic_ns()
    ok = False
    try:
        yield extra
        ok = True
    finally:
        extra["ok"] = ok
        record_metric(
            name,
            (time.monotonic_ns() - start_ns) // 1_000_000,
            session_id=session_id,
            details=extra,
        )
