from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from dlcpacker.config import APP_NAME, APP_VERSION
from dlcpacker.core.pipeline import count_outcomes
from dlcpacker.models import PipelineIssue, RunSummary


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _issues_out(issues: List[PipelineIssue]) -> List[Dict[str, Any]]:
    return [
        {
            "level": i.level,
            "code": i.code,
            "message": i.message,
            "project": i.project,
            "step": i.step,
        }
        for i in issues
    ]


def build_run_report_dict(
    summary: RunSummary,
    tool_name: str = APP_NAME,
    tool_version: str = APP_VERSION,
) -> Dict[str, Any]:
    projects_out: List[Dict[str, Any]] = []
    for r in summary.reports:
        names = r.names
        projects_out.append(
            {
                "folder_name": r.project.folder_name,
                "input_path": r.project.path,
                "package_name": names.package_name_lower if names else None,
                "state": r.state,
                "partial": r.partial,
                "asset_count": r.asset_count,
                "artifact": r.artifact,
                "issues": _issues_out(r.issues),
            }
        )

    return {
        "tool": tool_name,
        "version": tool_version,
        "timestamp_utc": _utc_now_iso(),
        "input_root": summary.input_root,
        "output_root": summary.output_root,
        "counts": count_outcomes(summary),
        "issues": _issues_out(summary.issues),
        "projects": projects_out,
    }


def write_run_report_json(report: Dict[str, Any], report_path: str) -> str:
    path = Path(report_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # surrogateescape writes undecodable path bytes back out unchanged
    with path.open("w", encoding="utf-8", errors="surrogateescape") as f:
        json.dump(report, f, indent=2, ensure_ascii=False)

    return str(path)
