from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from dlcpacker.core.archive import ArchiveBuilder, ArchiveResult, GtaUtilArchiveBuilder, archive_path_for
from dlcpacker.core.discovery import list_projects
from dlcpacker.core.errors import PackagerError
from dlcpacker.core.manifest import render_content_manifest, render_setup_manifest, write_manifest
from dlcpacker.core.naming import derive_names
from dlcpacker.core.scanner import AssetScan, scan_assets
from dlcpacker.core.settings import PackagerConfig
from dlcpacker.core.staging import ensure_dir, is_empty_dir, relocate, remove_tree, stage_files
from dlcpacker.models import MappingProject, NameSet, PipelineIssue, ProjectReport, RunSummary

logger = logging.getLogger(__name__)

_LEVELS = {"ERROR": logging.ERROR, "WARNING": logging.WARNING, "INFO": logging.INFO}


class ProjectState(str, Enum):
    DISCOVERED = "Discovered"
    NAMES_DERIVED = "NamesDerived"
    ASSETS_SCANNED = "AssetsScanned"
    INNER_STAGED = "InnerStaged"
    INNER_ARCHIVE_BUILT = "InnerArchiveBuilt"
    RELOCATED = "Relocated"
    MANIFESTS_RENDERED = "ManifestsRendered"
    OUTER_ARCHIVE_BUILT = "OuterArchiveBuilt"
    CLEANED_UP = "CleanedUp"
    DONE = "Done"
    SKIPPED_EMPTY = "SkippedEmpty"
    SKIPPED_UNREADABLE = "SkippedUnreadable"
    SKIPPED_INVALID_NAME = "SkippedInvalidName"
    FAILED = "Failed"


TERMINAL_STATES = frozenset(
    {
        ProjectState.DONE,
        ProjectState.SKIPPED_EMPTY,
        ProjectState.SKIPPED_UNREADABLE,
        ProjectState.SKIPPED_INVALID_NAME,
        ProjectState.FAILED,
    }
)

SKIPPED_STATES = frozenset(
    {ProjectState.SKIPPED_EMPTY, ProjectState.SKIPPED_UNREADABLE, ProjectState.SKIPPED_INVALID_NAME}
)


def log_issue(issue: PipelineIssue) -> None:
    prefix = f"[{issue.project}] " if issue.project else ""
    logger.log(_LEVELS.get(issue.level.upper(), logging.INFO), "%s%s: %s", prefix, issue.code, issue.message)


class ProjectPipeline:
    """
    Drives one project through the package-assembly states.

    Each non-terminal state owns exactly one step; a step returns the next
    state. Any OSError/PackagerError escaping a step takes the single failure
    transition: record it, clean up this project's staging areas, end in
    FAILED. Archive-build failures are recorded and the run carries on,
    producing a partial result.
    """

    def __init__(
        self,
        project: MappingProject,
        config: PackagerConfig,
        builder: ArchiveBuilder,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.project = project
        self.config = config
        self.builder = builder
        self.clock = clock

        self.report = ProjectReport(project=project, state=ProjectState.DISCOVERED.value)
        self.names: Optional[NameSet] = None
        self.scan: Optional[AssetScan] = None
        self._inner_result: Optional[ArchiveResult] = None
        self._current_step: Optional[str] = None
        # everything created for this project that must not outlive the run
        self._staging: List[Path] = []
        self._intermediates: List[Path] = []

        self._steps: Dict[ProjectState, Callable[[], ProjectState]] = {
            ProjectState.DISCOVERED: self._derive_names,
            ProjectState.NAMES_DERIVED: self._scan_assets,
            ProjectState.ASSETS_SCANNED: self._stage_inner,
            ProjectState.INNER_STAGED: self._build_inner,
            ProjectState.INNER_ARCHIVE_BUILT: self._relocate_inner,
            ProjectState.RELOCATED: self._render_manifests,
            ProjectState.MANIFESTS_RENDERED: self._build_outer,
            ProjectState.OUTER_ARCHIVE_BUILT: self._clean_up,
            ProjectState.CLEANED_UP: self._finish,
        }

    # -------------------------
    # Paths
    # -------------------------
    @property
    def output_dir(self) -> Path:
        return Path(self.config.output_root) / self._require_names().package_name_lower

    @property
    def inner_staging_dir(self) -> Path:
        return self.output_dir / f"temp_{self._require_names().slug_lower}_rpf_input"

    @property
    def outer_staging_dir(self) -> Path:
        return self.output_dir / "temp_final_dlc_input"

    # -------------------------
    # Driver
    # -------------------------
    def run(self) -> ProjectReport:
        state = ProjectState.DISCOVERED
        while state not in TERMINAL_STATES:
            step = self._steps[state]
            self._current_step = step.__name__.lstrip("_")
            try:
                state = step()
            except (OSError, PackagerError) as e:
                self._issue("ERROR", "STEP_FAILED", f"{self._current_step} failed: {e}")
                state = self._fail()
            self.report.state = state.value
            logger.debug("[%s] -> %s", self.project.folder_name, state.value)
        return self.report

    def _require_names(self) -> NameSet:
        if self.names is None:
            raise PackagerError("package names have not been derived yet")
        return self.names

    def _issue(self, level: str, code: str, message: str) -> None:
        issue = PipelineIssue(
            level=level,
            code=code,
            message=message,
            project=self.project.folder_name,
            step=self._current_step,
        )
        self.report.issues.append(issue)
        log_issue(issue)

    def _adopt(self, issue: PipelineIssue) -> None:
        self._issue(issue.level, issue.code, issue.message)

    # -------------------------
    # Steps
    # -------------------------
    def _derive_names(self) -> ProjectState:
        path = Path(self.project.path)
        try:
            is_dir = path.is_dir()
            exists = is_dir or path.exists()
        except PermissionError:
            self._issue("WARNING", "PROJECT_PERMISSION_DENIED", f"Permission denied to access input directory: '{path}'")
            return ProjectState.SKIPPED_UNREADABLE
        if not exists:
            self._issue("WARNING", "PROJECT_NOT_FOUND", f"Input directory not found: '{path}'")
            return ProjectState.SKIPPED_UNREADABLE
        if not is_dir:
            self._issue("WARNING", "PROJECT_NOT_A_DIRECTORY", f"Path is not a directory: '{path}'")
            return ProjectState.SKIPPED_UNREADABLE

        names = derive_names(self.project.folder_name, self.config.level_hash)
        if not names.slug_lower:
            self._issue(
                "WARNING",
                "NAME_EMPTY",
                f"Folder name '{self.project.folder_name}' has no letters or digits to build a package name from.",
            )
            return ProjectState.SKIPPED_INVALID_NAME

        self.names = names
        self.report.names = names
        logger.info(
            "--- Starting mapping DLC creation for: \"%s\" (DLC: %s, Base Name: %s) ---",
            self.project.folder_name,
            names.package_name_lower,
            names.slug_lower,
        )
        return ProjectState.NAMES_DERIVED

    def _scan_assets(self) -> ProjectState:
        logger.info("Scanning input directory '%s' for mapping files...", self.project.path)
        self.scan = scan_assets(self.project.path, self.config.asset_extensions)
        for issue in self.scan.skipped:
            self._adopt(issue)

        self.report.asset_count = self.scan.total
        if self.scan.total == 0:
            exts = ", ".join(f".{e}" for e in sorted(self.config.asset_extensions))
            self._issue(
                "WARNING",
                "NO_ASSETS",
                f"No mapping files ({exts}) found in '{self.project.path}'. Skipping this mapping.",
            )
            issue = remove_tree(str(self.output_dir))
            if issue is not None:
                self._adopt(issue)
            return ProjectState.SKIPPED_EMPTY
        return ProjectState.ASSETS_SCANNED

    def _stage_inner(self) -> ProjectState:
        if self.scan is None:
            raise PackagerError("assets have not been scanned yet")
        ensure_dir(str(self.output_dir))
        self._staging.append(self.inner_staging_dir)
        self._clear_staging(self.inner_staging_dir)
        ensure_dir(str(self.inner_staging_dir))

        summary, issues = stage_files(self.scan.files, str(self.inner_staging_dir))
        for issue in issues:
            self._adopt(issue)
        logger.info(
            "  Copied %d mapping files to %s (skipped=%d, failed=%d)",
            summary.copied,
            self.inner_staging_dir,
            summary.skipped,
            summary.failed,
        )
        if summary.copied == 0:
            raise PackagerError(f"none of the {summary.total} asset file(s) could be staged")
        return ProjectState.INNER_STAGED

    def _build_inner(self) -> ProjectState:
        names = self._require_names()
        result = self._run_builder(str(self.inner_staging_dir), names.slug_lower)
        self._inner_result = result
        if result.succeeded:
            self._intermediates.append(Path(result.archive_path))

        # inner input is no longer needed once the tool has run
        issue = remove_tree(str(self.inner_staging_dir))
        if issue is not None:
            self._adopt(issue)
        else:
            self._staging.remove(self.inner_staging_dir)
            logger.info("  Cleaned up temporary folder: %s", self.inner_staging_dir)
        return ProjectState.INNER_ARCHIVE_BUILT

    def _relocate_inner(self) -> ProjectState:
        names = self._require_names()
        self._staging.append(self.outer_staging_dir)
        self._clear_staging(self.outer_staging_dir)
        platform_dir = self.outer_staging_dir / self.config.platform_folder
        ensure_dir(str(platform_dir))

        archive_name = f"{names.slug_lower}.{self.builder.archive_extension}"
        src = archive_path_for(str(self.output_dir), names.slug_lower, self.builder.archive_extension)
        if self._inner_result is None or not self._inner_result.succeeded or not src.is_file():
            self.report.partial = True
            self._issue(
                "WARNING",
                "INNER_ARCHIVE_MISSING",
                f"{archive_name} was not built; the package will not contain mapping assets.",
            )
            return ProjectState.RELOCATED

        relocate(str(src), str(platform_dir / archive_name))
        if src in self._intermediates:
            self._intermediates.remove(src)
        logger.info("  Moved %s to %s", archive_name, Path(self.config.platform_folder) / archive_name)
        return ProjectState.RELOCATED

    def _render_manifests(self) -> ProjectState:
        names = self._require_names()
        content = render_content_manifest(names, self.config.level_hash)
        write_manifest(content, str(self.outer_staging_dir / self.config.content_manifest_name))
        logger.info("  Generated final %s for %s", self.config.content_manifest_name, names.package_name_lower)

        setup = render_setup_manifest(names, self.clock())
        write_manifest(setup, str(self.outer_staging_dir / self.config.setup_manifest_name))
        logger.info("  Generated final %s for %s", self.config.setup_manifest_name, names.package_name_lower)
        return ProjectState.MANIFESTS_RENDERED

    def _build_outer(self) -> ProjectState:
        self._run_builder(str(self.outer_staging_dir), self.config.outer_archive_name)
        return ProjectState.OUTER_ARCHIVE_BUILT

    def _clean_up(self) -> ProjectState:
        self._remove_staging()
        return ProjectState.CLEANED_UP

    def _finish(self) -> ProjectState:
        artifact = archive_path_for(
            str(self.output_dir), self.config.outer_archive_name, self.builder.archive_extension
        )
        if artifact.is_file():
            self.report.artifact = str(artifact)
            logger.info(
                "Mapping package for \"%s\" created. Check the \"%s\" folder.",
                self.project.folder_name,
                self.output_dir,
            )
        else:
            self.report.partial = True
            self._drop_output_if_empty()
            logger.warning("Mapping package for \"%s\" finished without %s.", self.project.folder_name, artifact.name)
        return ProjectState.DONE

    # -------------------------
    # Helpers
    # -------------------------
    def _run_builder(self, input_dir: str, archive_name: str) -> ArchiveResult:
        logger.info("  Building %s.%s from %s", archive_name, self.builder.archive_extension, input_dir)
        result = self.builder.build(input_dir, str(self.output_dir), archive_name)
        if result.succeeded:
            if result.diagnostic:
                logger.info("  %s", result.diagnostic)
            logger.info("  Successfully created %s.", result.archive_path)
        else:
            self.report.partial = True
            self._issue(
                "ERROR",
                "ARCHIVE_BUILD_FAILED",
                f"Error creating {result.archive_path}: {result.diagnostic}",
            )
        return result

    def _clear_staging(self, path: Path) -> None:
        # leftovers from an interrupted run would shadow the current assets
        issue = remove_tree(str(path))
        if issue is not None:
            self._adopt(issue)
            raise PackagerError(f"could not clear stale staging folder '{path}'")

    def _remove_staging(self) -> None:
        for path in list(reversed(self._staging)) + list(self._intermediates):
            issue = remove_tree(str(path))
            if issue is not None:
                self._adopt(issue)
            else:
                logger.info("  Cleaned up temporary path: %s", path)
        self._staging.clear()
        self._intermediates.clear()

    def _drop_output_if_empty(self) -> None:
        if self.names is None:
            return
        if is_empty_dir(str(self.output_dir)):
            issue = remove_tree(str(self.output_dir))
            if issue is not None:
                self._adopt(issue)

    def _fail(self) -> ProjectState:
        self._remove_staging()
        self._drop_output_if_empty()
        return ProjectState.FAILED


def count_outcomes(summary: RunSummary) -> Dict[str, int]:
    counts = {"built": 0, "partial": 0, "skipped": 0, "failed": 0}
    skipped = {s.value for s in SKIPPED_STATES}
    for r in summary.reports:
        if r.state == ProjectState.DONE.value:
            counts["partial" if r.partial else "built"] += 1
        elif r.state in skipped:
            counts["skipped"] += 1
        elif r.state == ProjectState.FAILED.value:
            counts["failed"] += 1
    return counts


def default_builder(config: PackagerConfig) -> ArchiveBuilder:
    return GtaUtilArchiveBuilder(config.archive_tool, archive_extension=config.archive_extension)


def run_all(
    config: PackagerConfig,
    builder: Optional[ArchiveBuilder] = None,
    progress_cb: Optional[Callable[[int, int, str], None]] = None,
    is_cancelled: Optional[Callable[[], bool]] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> RunSummary:
    """
    Build a package for every project folder under config.input_root.

    Projects run one at a time in discovery order. A project that fails or is
    skipped never stops the run; only an unreadable input root ends it early.
    """
    builder = builder or default_builder(config)
    summary = RunSummary(input_root=config.input_root, output_root=config.output_root)

    discovery = list_projects(config.input_root)
    for issue in discovery.issues:
        summary.issues.append(issue)
        log_issue(issue)
    if discovery.fatal:
        return summary

    total = len(discovery.projects)
    for idx, project in enumerate(discovery.projects, start=1):
        if is_cancelled and is_cancelled():
            issue = PipelineIssue("WARNING", "RUN_CANCELLED", "Build cancelled by user.", project.folder_name)
            summary.issues.append(issue)
            log_issue(issue)
            break

        if progress_cb:
            progress_cb(idx, total, project.folder_name)

        pipeline = ProjectPipeline(project, config, builder, clock=clock)
        summary.reports.append(pipeline.run())

    counts = count_outcomes(summary)
    logger.info(
        "All mapping packages processed: built=%d, partial=%d, skipped=%d, failed=%d",
        counts["built"],
        counts["partial"],
        counts["skipped"],
        counts["failed"],
    )
    return summary
