import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from dlcpacker.core.archive import ArchiveBuilder, GtaUtilArchiveBuilder


class TestGtaUtilArchiveBuilder(unittest.TestCase):
    def test_satisfies_protocol(self):
        self.assertIsInstance(GtaUtilArchiveBuilder("gtautil"), ArchiveBuilder)

    def test_command_shape(self):
        builder = GtaUtilArchiveBuilder("/opt/gtautil")
        cmd = builder.command_for("/in dir", "/out", "dlc")
        self.assertEqual(
            cmd,
            ["/opt/gtautil", "createarchive", "--input", "/in dir", "--output", "/out", "--name", "dlc"],
        )

    def test_success_requires_archive_file(self):
        with tempfile.TemporaryDirectory() as td:
            builder = GtaUtilArchiveBuilder("gtautil")

            def fake_run(command, **kwargs):
                (Path(td) / "dlc.rpf").write_bytes(b"RPF7")
                return subprocess.CompletedProcess(command, 0, stdout="Done\n", stderr="")

            with mock.patch("dlcpacker.core.archive.subprocess.run", side_effect=fake_run) as run:
                result = builder.build("/stage", td, "dlc")

            self.assertTrue(result.succeeded)
            self.assertEqual(result.archive_path, str(Path(td) / "dlc.rpf"))
            self.assertIn("Done", result.diagnostic)
            kwargs = run.call_args.kwargs
            self.assertTrue(kwargs["capture_output"])
            self.assertFalse(kwargs["check"])

    def test_clean_exit_without_archive_is_failure(self):
        with tempfile.TemporaryDirectory() as td:
            builder = GtaUtilArchiveBuilder("gtautil")
            done = subprocess.CompletedProcess([], 0, stdout="", stderr="")
            with mock.patch("dlcpacker.core.archive.subprocess.run", return_value=done):
                result = builder.build("/stage", td, "dlc")
            self.assertFalse(result.succeeded)
            self.assertIn("did not produce", result.diagnostic)

    def test_non_zero_exit_is_failure(self):
        with tempfile.TemporaryDirectory() as td:
            builder = GtaUtilArchiveBuilder("gtautil")
            failed = subprocess.CompletedProcess([], 3, stdout="", stderr="bad input folder")
            with mock.patch("dlcpacker.core.archive.subprocess.run", return_value=failed):
                result = builder.build("/stage", td, "dlc")
            self.assertFalse(result.succeeded)
            self.assertIn("Exit code 3", result.diagnostic)
            self.assertIn("bad input folder", result.diagnostic)

    def test_missing_tool_is_failure_not_exception(self):
        with tempfile.TemporaryDirectory() as td:
            builder = GtaUtilArchiveBuilder(str(Path(td) / "no-such-gtautil"))
            result = builder.build(td, td, "dlc")
            self.assertFalse(result.succeeded)
            self.assertIn("Could not run archive tool", result.diagnostic)


if __name__ == "__main__":
    unittest.main()
