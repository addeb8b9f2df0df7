from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dlcpacker.models import MappingProject, PipelineIssue


@dataclass
class DiscoveryResult:
    root: str
    projects: List[MappingProject] = field(default_factory=list)
    issues: List[PipelineIssue] = field(default_factory=list)

    @property
    def fatal(self) -> bool:
        return any(i.level.upper() == "ERROR" for i in self.issues)


def list_projects(root: str) -> DiscoveryResult:
    """
    One-level listing of project folders under `root`, sorted by name.
    Non-directory entries are ignored. An unreadable root is reported as an
    ERROR issue with zero projects.
    """
    result = DiscoveryResult(root=str(root))
    root_path = Path(root)

    try:
        entries = sorted(root_path.iterdir(), key=lambda p: p.name)
    except FileNotFoundError:
        result.issues.append(
            PipelineIssue(
                "ERROR",
                "INPUT_ROOT_NOT_FOUND",
                f"The input directory ('{root}') was not found. Create it and place your mapping folders inside.",
            )
        )
        return result
    except PermissionError:
        result.issues.append(
            PipelineIssue(
                "ERROR",
                "INPUT_ROOT_PERMISSION_DENIED",
                f"Permission denied to access the input directory ('{root}').",
            )
        )
        return result
    except OSError as e:
        result.issues.append(
            PipelineIssue(
                "ERROR",
                "INPUT_ROOT_UNREADABLE",
                f"Error reading input directory '{root}' ({e})",
            )
        )
        return result

    for p in entries:
        try:
            is_dir = p.is_dir()
        except OSError:
            is_dir = False
        if is_dir:
            result.projects.append(MappingProject(path=str(p), folder_name=p.name))

    if not result.projects:
        result.issues.append(
            PipelineIssue(
                "WARNING",
                "NO_PROJECTS",
                f"No subfolders found in '{root}'. Place your mapping folders inside it.",
            )
        )

    return result
