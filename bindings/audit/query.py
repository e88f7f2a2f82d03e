"""Read-only audit log queries used by the CLI and metrics."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from contracts.audit import AuditEntry, AuditEvent

from bindings.audit.logger import read_entries


def query_by_request(log_path: str | Path, request_id: str) -> list[AuditEntry]:
    """Return all audit entries for a given request_id, oldest first."""
    return [e for e in read_entries(log_path) if e.request_id == request_id]


def query_filtered(
    log_path: str | Path,
    *,
    event: AuditEvent | None = None,
    operation: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[AuditEntry], int]:
    """Return paginated, filtered audit entries.

    Returns (entries, total_matching_count), most recent first.
    """
    filtered = read_entries(log_path)

    if event is not None:
        filtered = [e for e in filtered if e.event == event]
    if operation is not None:
        filtered = [e for e in filtered if e.operation == operation]
    if since is not None:
        filtered = [e for e in filtered if e.ts >= since]
    if until is not None:
        filtered = [e for e in filtered if e.ts <= until]

    total = len(filtered)
    filtered.sort(key=lambda e: e.ts, reverse=True)
    return filtered[offset : offset + limit], total
