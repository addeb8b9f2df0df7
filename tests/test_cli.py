import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fakes import ZipArchiveBuilder

from dlcpacker import __main__ as cli
from dlcpacker.core import pipeline


class TestCli(unittest.TestCase):
    def _run(self, argv):
        stream = io.StringIO()
        real_configure = cli.configure_logging

        def configure(verbosity=0):
            return real_configure(verbosity, stream)

        with mock.patch.object(cli, "configure_logging", side_effect=configure):
            code = cli.main(argv)
        return code, stream.getvalue()

    def test_missing_input_root_exits_cleanly(self):
        with tempfile.TemporaryDirectory() as td:
            out = Path(td) / "out"
            code, log = self._run(["--input", str(Path(td) / "nope"), "--output", str(out)])
            self.assertEqual(code, 0)
            self.assertIn("INPUT_ROOT_NOT_FOUND", log)
            self.assertFalse(out.exists())

    def test_headless_run_with_report(self):
        with tempfile.TemporaryDirectory() as td:
            inp = Path(td) / "in"
            out = Path(td) / "out"
            (inp / "Test Area").mkdir(parents=True)
            (inp / "Test Area" / "test.ymap").write_bytes(b"x")

            with mock.patch.object(pipeline, "default_builder", return_value=ZipArchiveBuilder()):
                code, log = self._run(["--input", str(inp), "--output", str(out), "--report"])

            self.assertEqual(code, 0)
            self.assertTrue((out / "dlc_testarea" / "dlc.rpf").is_file())
            report = json.loads((out / "build_report.json").read_text(encoding="utf-8"))
            self.assertEqual(report["counts"]["built"], 1)
            self.assertIn("Starting mapping DLC creation", log)

    def test_config_file_and_bad_config(self):
        with tempfile.TemporaryDirectory() as td:
            bad = Path(td) / "bad.json"
            bad.write_text("[]", encoding="utf-8")
            code, log = self._run(["--config", str(bad)])
            self.assertEqual(code, 2)
            self.assertIn("Config error", log)


if __name__ == "__main__":
    unittest.main()
