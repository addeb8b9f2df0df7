from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from dlcpacker.models import AssetFile, PipelineIssue

COPIED = "copied"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class StageSummary:
    total: int
    copied: int
    skipped: int
    failed: int


def ensure_dir(path: str) -> Path:
    """Create `path` and any missing parents; fine if it already exists."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def copy_into(src: str, dest_dir: str) -> Tuple[str, Optional[PipelineIssue]]:
    """
    Copy a single file by basename into dest_dir (safe-copy, never overwrite).

    Returns (outcome, issue). An existing destination is a silent skip; any
    other failure is reported, not raised.
    """
    src_path = Path(src)
    dst = Path(dest_dir) / src_path.name

    if dst.exists():
        return SKIPPED, None

    try:
        shutil.copy2(src_path, dst)
    except OSError as e:
        return FAILED, PipelineIssue(
            "ERROR",
            "COPY_FAILED",
            f"Copy failed: {src_path} -> {dest_dir} ({e})",
        )
    return COPIED, None


def stage_files(files: Iterable[AssetFile], dest_dir: str) -> Tuple[StageSummary, List[PipelineIssue]]:
    issues: List[PipelineIssue] = []
    total = copied = skipped = failed = 0

    # sorted so the first of two same-named files always wins
    for f in sorted(files, key=lambda a: a.path):
        total += 1
        outcome, issue = copy_into(f.path, dest_dir)
        if outcome == COPIED:
            copied += 1
        elif outcome == SKIPPED:
            skipped += 1
        else:
            failed += 1
        if issue is not None:
            issues.append(issue)

    summary = StageSummary(total=total, copied=copied, skipped=skipped, failed=failed)
    return summary, issues


def remove_tree(path: str) -> Optional[PipelineIssue]:
    """Recursively delete `path`; a missing path is fine, failures are returned."""
    p = Path(path)
    if not p.exists() and not p.is_symlink():
        return None
    try:
        if p.is_dir() and not p.is_symlink():
            shutil.rmtree(p)
        else:
            p.unlink()
    except OSError as e:
        return PipelineIssue(
            "WARNING",
            "CLEANUP_FAILED",
            f"Failed removing '{p}' ({e})",
        )
    return None


def relocate(src: str, dst: str) -> Path:
    """Move (not copy) a single file to `dst`. Raises OSError on failure."""
    dst_path = Path(dst)
    dst_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dst_path))
    return dst_path


def is_empty_dir(path: str) -> bool:
    p = Path(path)
    try:
        return p.is_dir() and not any(p.iterdir())
    except OSError:
        return False
