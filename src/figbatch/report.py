"""CSV summary of an upload run."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from figbatch.constants import SUMMARY_CSV_HEADER
from figbatch.models import UploadRowState

logger = logging.getLogger(__name__)


def format_timestamp(value: datetime | None) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _duration(state: UploadRowState) -> str:
    if state.started_at is None or state.completed_at is None:
        return ""
    return f"{(state.completed_at - state.started_at).total_seconds():.2f}"


def _warnings(state: UploadRowState) -> str:
    warnings = (state.result or {}).get("warnings") or []
    return "; ".join(str(w) for w in warnings)


def summary_rows(states: Iterable[UploadRowState]) -> list[list[str]]:
    return [
        [
            state.id,
            state.status.value,
            state.error or "",
            _warnings(state),
            format_timestamp(state.started_at),
            format_timestamp(state.completed_at),
            _duration(state),
        ]
        for state in states
    ]


def build_summary_csv(states: Iterable[UploadRowState]) -> str:
    """Render the summary CSV, header first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(SUMMARY_CSV_HEADER)
    writer.writerows(summary_rows(states))
    return buffer.getvalue()


def write_summary_csv(states: Iterable[UploadRowState], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(SUMMARY_CSV_HEADER)
        rows = summary_rows(states)
        writer.writerows(rows)
    logger.info("Wrote upload summary for %d rows to %s", len(rows), path)
    return path
