from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from dlcpacker.config import APP_NAME, APP_VERSION, REPORT_FILENAME
from dlcpacker.core.errors import ConfigError
from dlcpacker.core.pipeline import run_all
from dlcpacker.core.reporting import build_run_report_dict, write_run_report_json
from dlcpacker.core.settings import default_config, load_config
from dlcpacker.logging_setup import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dlcpacker",
        description="Build mapping DLC packages from folders of map asset files.",
    )
    parser.add_argument("--input", help="Folder holding one subfolder per mapping project.")
    parser.add_argument("--output", help="Folder that receives one dlc_<name>/ folder per project.")
    parser.add_argument("--tool", help="Path to the archive tool (gtautil).")
    parser.add_argument("--level-hash", help="Level name hash written to content.xml.")
    parser.add_argument("--config", help="JSON config file; command-line flags override it.")
    parser.add_argument("--report", action="store_true", help=f"Write {REPORT_FILENAME} into the output folder.")
    parser.add_argument("--gui", action="store_true", help="Open the desktop window instead of running headless.")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    return parser


def _run_gui() -> int:
    from PySide6.QtWidgets import QApplication

    from dlcpacker.ui.main_window import MainWindow

    app = QApplication.instance() or QApplication(sys.argv)
    window = MainWindow()
    window.show()
    return app.exec()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.gui:
        return _run_gui()

    logger = configure_logging(args.verbose)

    try:
        config = load_config(args.config) if args.config else default_config()
    except ConfigError as e:
        logger.error("Config error: %s", e)
        return 2

    config = config.with_overrides(
        input_root=args.input,
        output_root=args.output,
        archive_tool=args.tool,
        level_hash=args.level_hash,
    )

    summary = run_all(config)

    if args.report and summary.reports:
        path = write_run_report_json(
            build_run_report_dict(summary),
            str(Path(config.output_root) / REPORT_FILENAME),
        )
        logger.info("Report written: %s", path)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
