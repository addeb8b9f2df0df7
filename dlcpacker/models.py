from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class PipelineIssue:
    level: str  # INFO | WARNING | ERROR
    code: str   # stable short identifier (e.g. SCAN_PERMISSION_DENIED)
    message: str
    project: Optional[str] = None  # raw project folder name when applicable
    step: Optional[str] = None     # pipeline step that raised the issue, e.g. "render_manifests"


@dataclass(frozen=True)
class MappingProject:
    path: str
    folder_name: str


@dataclass(frozen=True)
class NameSet:
    slug_lower: str
    slug_upper: str
    package_name_lower: str
    package_name_upper: str
    level_hash: str


@dataclass(frozen=True)
class AssetFile:
    path: str  # resolved absolute path
    ext: str   # normalized (lower, no dot)


@dataclass
class ProjectReport:
    project: MappingProject
    state: str
    names: Optional[NameSet] = None
    asset_count: int = 0
    artifact: Optional[str] = None
    partial: bool = False
    issues: List[PipelineIssue] = field(default_factory=list)


@dataclass
class RunSummary:
    input_root: str
    output_root: str
    reports: List[ProjectReport] = field(default_factory=list)
    issues: List[PipelineIssue] = field(default_factory=list)

    def count(self, state: str) -> int:
        return sum(1 for r in self.reports if r.state == state)
