from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, List, Set, Tuple

from dlcpacker.models import AssetFile, PipelineIssue

ASSET_EXTENSIONS: FrozenSet[str] = frozenset({"ymap", "ymf", "ytyp", "ydr", "ytd", "ybn"})


@dataclass(frozen=True)
class AssetScan:
    root: str
    files: FrozenSet[AssetFile]
    skipped: Tuple[PipelineIssue, ...]  # one entry per subtree or entry that could not be read

    @property
    def total(self) -> int:
        return len(self.files)

    def sorted_paths(self) -> List[str]:
        return sorted(f.path for f in self.files)


def normalize_extensions(extensions: Iterable[str]) -> FrozenSet[str]:
    return frozenset(str(e).strip().lower().lstrip(".") for e in extensions if str(e).strip())


def _normalize_ext(name: str) -> str:
    # suffix includes dot; normalize to lower without dot. "" means no extension
    return Path(name).suffix.lower().lstrip(".")


def _skip_issue(directory: str, error: OSError) -> PipelineIssue:
    if isinstance(error, FileNotFoundError):
        return PipelineIssue(
            "WARNING",
            "SCAN_DIR_NOT_FOUND",
            f"Sub-directory not found or inaccessible during scan: '{directory}'",
        )
    if isinstance(error, PermissionError):
        return PipelineIssue(
            "WARNING",
            "SCAN_PERMISSION_DENIED",
            f"Permission denied to access sub-directory during scan: '{directory}'",
        )
    return PipelineIssue(
        "ERROR",
        "SCAN_UNEXPECTED_ERROR",
        f"Unexpected error traversing sub-directory '{directory}' ({error})",
    )


def _entry_issue(path: str, error: Exception) -> PipelineIssue:
    if isinstance(error, PermissionError):
        return PipelineIssue(
            "WARNING",
            "SCAN_PERMISSION_DENIED",
            f"Permission denied to inspect '{path}' during scan",
        )
    return PipelineIssue(
        "WARNING",
        "SCAN_ENTRY_UNREADABLE",
        f"Could not inspect '{path}' during scan ({error})",
    )


def scan_assets(root: str, extensions: Iterable[str] = ASSET_EXTENSIONS) -> AssetScan:
    """
    Depth-first walk of `root` collecting files whose extension is whitelisted.

    Never raises for an unreadable subtree: the subtree is left out of the
    result and described in `AssetScan.skipped` instead. An entry that cannot
    be inspected (a broken link loop, say) is reported on its own and its
    siblings are still scanned. Symlinked directories are not descended into;
    file paths are resolved so one file reached twice counts once.
    """
    allow = normalize_extensions(extensions)
    found: Set[AssetFile] = set()
    skipped: List[PipelineIssue] = []

    stack: List[str] = [str(root)]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                            continue
                        if not entry.is_file():
                            continue
                        ext = _normalize_ext(entry.name)
                        if ext in allow:
                            found.add(AssetFile(path=str(Path(entry.path).resolve()), ext=ext))
                    except (OSError, RuntimeError) as e:
                        # RuntimeError: symlink loop from resolve() before 3.13
                        skipped.append(_entry_issue(entry.path, e))
        except OSError as e:
            skipped.append(_skip_issue(current, e))

    return AssetScan(root=str(root), files=frozenset(found), skipped=tuple(skipped))
