"""Versioned contract for the machine-readable batch summary."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

BATCH_SUMMARY = "iislogs_to_excel.batch_summary"

CONTRACT_VERSIONS = {
    BATCH_SUMMARY: "1.0.0",
}


def utc_now_iso(now: datetime | None = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_contract(name: str) -> dict[str, str]:
    """Name and version block embedded in every JSON document; unknown names raise KeyError."""
    return {"name": name, "version": CONTRACT_VERSIONS[name]}


def build_run_summary(
    *,
    tool: str,
    command: str,
    input_path: Path,
    status: str = "ok",
    output_paths: list[Path] | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_folder": str(input_path),
        "output_files": [str(path) for path in output_paths or []],
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }
