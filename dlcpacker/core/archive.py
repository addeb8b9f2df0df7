"""Adapters around the external archive tool."""
from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, runtime_checkable

DEFAULT_ARCHIVE_EXTENSION = "rpf"


@dataclass(frozen=True)
class ArchiveResult:
    succeeded: bool
    diagnostic: str
    archive_path: str
    command: Sequence[str] = ()


@runtime_checkable
class ArchiveBuilder(Protocol):
    """Turns a staging directory into `<output_dir>/<archive_name>.<archive_extension>`."""

    archive_extension: str

    def build(self, input_dir: str, output_dir: str, archive_name: str) -> ArchiveResult:
        ...


def archive_path_for(output_dir: str, archive_name: str, extension: str) -> Path:
    return Path(output_dir) / f"{archive_name}.{extension}"


class GtaUtilArchiveBuilder:
    """
    Runs `<tool> createarchive --input DIR --output DIR --name NAME`.

    Never raises: a missing tool, a non-zero exit, or a run that exits cleanly
    without producing the archive all come back as a failed ArchiveResult with
    the captured output as diagnostic text.
    """

    def __init__(self, tool_path: str, archive_extension: str = DEFAULT_ARCHIVE_EXTENSION):
        self.tool_path = str(tool_path)
        self.archive_extension = archive_extension

    def command_for(self, input_dir: str, output_dir: str, archive_name: str) -> List[str]:
        return [
            self.tool_path,
            "createarchive",
            "--input",
            str(input_dir),
            "--output",
            str(output_dir),
            "--name",
            archive_name,
        ]

    @staticmethod
    def format_command(command: Sequence[str]) -> str:
        return " ".join(shlex.quote(part) for part in command)

    def build(self, input_dir: str, output_dir: str, archive_name: str) -> ArchiveResult:
        command = self.command_for(input_dir, output_dir, archive_name)
        expected = archive_path_for(output_dir, archive_name, self.archive_extension)

        try:
            process = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            return ArchiveResult(
                succeeded=False,
                diagnostic=f"Could not run archive tool '{self.tool_path}': {e}",
                archive_path=str(expected),
                command=command,
            )

        diagnostic = _join_output(process.stdout, process.stderr)
        if process.returncode != 0:
            return ArchiveResult(
                succeeded=False,
                diagnostic=f"Exit code {process.returncode}: {self.format_command(command)}\n{diagnostic}".rstrip(),
                archive_path=str(expected),
                command=command,
            )

        if not expected.is_file():
            return ArchiveResult(
                succeeded=False,
                diagnostic=f"Archive tool exited cleanly but did not produce {expected}\n{diagnostic}".rstrip(),
                archive_path=str(expected),
                command=command,
            )

        return ArchiveResult(succeeded=True, diagnostic=diagnostic, archive_path=str(expected), command=command)


def _join_output(stdout: Optional[str], stderr: Optional[str]) -> str:
    parts = []
    if stdout and stdout.strip():
        parts.append(f"stdout: {stdout.strip()}")
    if stderr and stderr.strip():
        parts.append(f"stderr: {stderr.strip()}")
    return "\n".join(parts)
