"""Exchange metrics computed from the audit log.

Latency percentiles, token usage per model, stream terminations and error
rates.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from contracts.audit import AuditEntry, AuditEvent

from bindings.audit.logger import read_entries

_FINISH_EVENTS = {AuditEvent.REQUEST_END, AuditEvent.STREAM_END}


def compute_metrics(log_path: str | Path, *, since: datetime | None = None) -> dict[str, Any]:
    """Aggregate every exchange recorded in *log_path*."""
    entries = read_entries(log_path)
    if since:
        entries = [e for e in entries if e.ts >= since]

    return {
        "latency": _latency(entries),
        "tokens": _token_usage(entries),
        "streams": _stream_terminations(entries),
        "errors": _errors(entries),
    }


def _latency(entries: list[AuditEntry]) -> dict[str, Any]:
    """p50/p95/p99 seconds between a request's start and its last event."""
    starts: dict[str, datetime] = {}
    durations: list[float] = []
    for e in entries:
        if e.event == AuditEvent.REQUEST_START:
            starts[e.request_id] = e.ts
        elif e.event in _FINISH_EVENTS and e.request_id in starts:
            durations.append((e.ts - starts.pop(e.request_id)).total_seconds())

    if not durations:
        return {"p50": 0, "p95": 0, "p99": 0, "count": 0}

    durations.sort()
    last = len(durations) - 1

    def pick(q: float) -> float:
        return round(durations[min(int(len(durations) * q), last)], 3)

    return {"p50": pick(0.50), "p95": pick(0.95), "p99": pick(0.99), "count": len(durations)}


def _token_usage(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    """Sum prompt/completion tokens per model, busiest model first."""
    per_model: dict[str, dict[str, int]] = {}
    for e in entries:
        usage = e.detail.get("usage") if e.event in _FINISH_EVENTS else None
        if not usage:
            continue
        totals = per_model.setdefault(
            e.model or "unknown",
            {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
        )
        for key in totals:
            totals[key] += usage.get(key) or 0

    rows = [{"model": m, **t} for m, t in per_model.items()]
    return sorted(rows, key=lambda r: -r["total_tokens"])


def _stream_terminations(entries: list[AuditEntry]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for e in entries:
        if e.event == AuditEvent.STREAM_END:
            how = e.detail.get("termination", "")
            counts[how] = counts.get(how, 0) + 1
        elif e.event == AuditEvent.DECODE_ERROR:
            counts["decode_error"] = counts.get("decode_error", 0) + 1
    return counts


def _errors(entries: list[AuditEntry]) -> dict[str, Any]:
    total = sum(1 for e in entries if e.event == AuditEvent.REQUEST_START)
    failed = [e for e in entries if e.event == AuditEvent.REQUEST_ERROR]
    decode = sum(1 for e in entries if e.event == AuditEvent.DECODE_ERROR)

    by_status: dict[str, int] = {}
    for e in failed:
        status = str(e.detail.get("status_code") or "none")
        by_status[status] = by_status.get(status, 0) + 1

    return {
        "total_requests": total,
        "request_errors": len(failed),
        "decode_errors": decode,
        "by_status": by_status,
        "error_rate": round((len(failed) + decode) / max(total, 1), 4),
    }
