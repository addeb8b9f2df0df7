import logging
import os

from PySide6.QtCore import Qt, QObject, QThread, Signal
from PySide6.QtWidgets import (
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QFileDialog,
    QListWidget,
    QListWidgetItem,
    QPlainTextEdit,
    QSplitter,
    QMessageBox,
    QProgressBar,
)

from dlcpacker.config import APP_NAME, APP_VERSION, LOGGER_NAME
from dlcpacker.core.discovery import list_projects
from dlcpacker.core.naming import derive_names
from dlcpacker.core.pipeline import count_outcomes, run_all
from dlcpacker.core.scanner import scan_assets
from dlcpacker.core.settings import default_config


class _SignalLogHandler(logging.Handler):
    """Forwards pipeline log records to the window from the worker thread."""

    def __init__(self, signal):
        super().__init__()
        self._signal = signal
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        self._signal.emit(self.format(record))


class BuildWorker(QObject):
    progress = Signal(int, int, str)   # current, total, project folder name
    message = Signal(str)
    finished = Signal(object)          # RunSummary

    def __init__(self, config, builder=None):
        super().__init__()
        self.config = config
        self.builder = builder
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    def run(self):
        def _is_cancelled():
            return self._cancelled

        def _progress(i, total, name):
            self.progress.emit(i, total, f"{i}/{total}  {name}")

        logger = logging.getLogger(LOGGER_NAME)
        handler = _SignalLogHandler(self.message)
        logger.addHandler(handler)
        if logger.level == logging.NOTSET:
            logger.setLevel(logging.INFO)
        try:
            summary = run_all(
                self.config,
                builder=self.builder,
                progress_cb=_progress,
                is_cancelled=_is_cancelled,
            )
        finally:
            logger.removeHandler(handler)
        self.finished.emit(summary)


class MainWindow(QMainWindow):
    def __init__(self, builder=None):
        super().__init__()
        self.setWindowTitle(f"{APP_NAME} (v{APP_VERSION})")
        self.setMinimumSize(960, 640)

        defaults = default_config()

        # State
        self._builder = builder
        self._build_thread = None
        self._build_worker = None
        self._last_summary = None

        root = QWidget()
        self.setCentralWidget(root)

        main_layout = QVBoxLayout(root)
        main_layout.setContentsMargins(12, 12, 12, 12)
        main_layout.setSpacing(10)

        # -------------------------
        # Folders + tool
        # -------------------------
        self.input_edit = QLineEdit()
        self.input_edit.setPlaceholderText("Folder with one subfolder per mapping...")
        self.input_edit.setText(defaults.input_root)

        btn_input = QPushButton("Browse...")
        btn_input.clicked.connect(self.pick_input_folder)

        input_row = QHBoxLayout()
        input_row.addWidget(QLabel("Input:"))
        input_row.addWidget(self.input_edit, 1)
        input_row.addWidget(btn_input)

        self.output_edit = QLineEdit()
        self.output_edit.setPlaceholderText("Folder that receives dlc_<name>/ packages...")
        self.output_edit.setText(defaults.output_root)

        btn_output = QPushButton("Browse...")
        btn_output.clicked.connect(self.pick_output_folder)

        output_row = QHBoxLayout()
        output_row.addWidget(QLabel("Output:"))
        output_row.addWidget(self.output_edit, 1)
        output_row.addWidget(btn_output)

        self.tool_edit = QLineEdit()
        self.tool_edit.setPlaceholderText("Path to gtautil")
        self.tool_edit.setText(defaults.archive_tool)

        btn_tool = QPushButton("Browse...")
        btn_tool.clicked.connect(self.pick_tool)

        self.level_hash_edit = QLineEdit()
        self.level_hash_edit.setText(defaults.level_hash)
        self.level_hash_edit.setMaximumWidth(160)

        tool_row = QHBoxLayout()
        tool_row.addWidget(QLabel("Archive tool:"))
        tool_row.addWidget(self.tool_edit, 1)
        tool_row.addWidget(btn_tool)
        tool_row.addWidget(QLabel("Level hash:"))
        tool_row.addWidget(self.level_hash_edit)

        main_layout.addLayout(input_row)
        main_layout.addLayout(output_row)
        main_layout.addLayout(tool_row)

        # -------------------------
        # Actions
        # -------------------------
        action_row = QHBoxLayout()
        action_row.addStretch(1)

        self.btn_scan = QPushButton("Scan")
        self.btn_scan.clicked.connect(self.on_scan_clicked)

        self.btn_build = QPushButton("Build")
        self.btn_build.clicked.connect(self.on_build_clicked)

        action_row.addWidget(self.btn_scan)
        action_row.addWidget(self.btn_build)
        main_layout.addLayout(action_row)

        # -------------------------
        # Progress + Cancel
        # -------------------------
        prog_row = QHBoxLayout()

        self.progress = QProgressBar()
        self.progress.setRange(0, 100)
        self.progress.setValue(0)

        self.btn_cancel = QPushButton("Cancel")
        self.btn_cancel.setEnabled(False)
        self.btn_cancel.clicked.connect(self.on_cancel_clicked)

        prog_row.addWidget(QLabel("Progress:"))
        prog_row.addWidget(self.progress, 1)
        prog_row.addWidget(self.btn_cancel)
        main_layout.addLayout(prog_row)

        # -------------------------
        # Results + Logs
        # -------------------------
        splitter = QSplitter(Qt.Horizontal)

        results_panel = QWidget()
        results_layout = QVBoxLayout(results_panel)
        results_layout.setContentsMargins(0, 0, 0, 0)
        results_layout.addWidget(QLabel("Results"))
        self.results_list = QListWidget()
        results_layout.addWidget(self.results_list, 1)

        logs_panel = QWidget()
        logs_layout = QVBoxLayout(logs_panel)
        logs_layout.setContentsMargins(0, 0, 0, 0)
        logs_layout.addWidget(QLabel("Log"))
        self.log_box = QPlainTextEdit()
        self.log_box.setReadOnly(True)
        self.log_box.setPlaceholderText("Logs will appear here...")
        logs_layout.addWidget(self.log_box, 1)

        splitter.addWidget(results_panel)
        splitter.addWidget(logs_panel)
        splitter.setSizes([520, 440])
        main_layout.addWidget(splitter, 1)

        self.log("Ready. Choose folders and the archive tool, then Scan / Build.")

        # stable IDs for UI tests
        self.input_edit.setObjectName("input_edit")
        self.output_edit.setObjectName("output_edit")
        self.tool_edit.setObjectName("tool_edit")
        self.level_hash_edit.setObjectName("level_hash_edit")
        self.btn_scan.setObjectName("btn_scan")
        self.btn_build.setObjectName("btn_build")
        self.btn_cancel.setObjectName("btn_cancel")
        self.results_list.setObjectName("results_list")
        self.log_box.setObjectName("log_box")
        self.progress.setObjectName("progress")

    # -------------------------
    # UI Helpers
    # -------------------------
    def log(self, msg: str):
        self.log_box.appendPlainText(msg)

    def add_result(self, level: str, message: str):
        item = QListWidgetItem(f"[{level}] {message}")

        lvl = level.upper().strip()
        if lvl == "ERROR":
            item.setForeground(Qt.red)
        elif lvl == "WARNING":
            item.setForeground(Qt.darkYellow)
        else:
            item.setForeground(Qt.darkGreen)

        self.results_list.addItem(item)

    def pick_input_folder(self):
        folder = QFileDialog.getExistingDirectory(self, "Select Input Folder")
        if folder:
            self.input_edit.setText(os.path.normpath(folder))
            self.log(f"Input folder set: {folder}")

    def pick_output_folder(self):
        folder = QFileDialog.getExistingDirectory(self, "Select Output Folder")
        if folder:
            self.output_edit.setText(os.path.normpath(folder))
            self.log(f"Output folder set: {folder}")

    def pick_tool(self):
        path, _ = QFileDialog.getOpenFileName(self, "Select Archive Tool")
        if path:
            self.tool_edit.setText(os.path.normpath(path))
            self.log(f"Archive tool set: {path}")

    def _current_config(self):
        input_path = self.input_edit.text().strip()
        output_path = self.output_edit.text().strip()

        if not input_path or not os.path.isdir(input_path):
            QMessageBox.warning(self, "Missing Input", "Please choose a valid input folder.")
            return None
        if not output_path:
            QMessageBox.warning(self, "Missing Output", "Please choose an output folder.")
            return None

        return default_config().with_overrides(
            input_root=input_path,
            output_root=output_path,
            archive_tool=self.tool_edit.text().strip() or None,
            level_hash=self.level_hash_edit.text().strip() or None,
        )

    def _set_busy(self, busy: bool):
        self.btn_cancel.setEnabled(busy)
        self.btn_scan.setEnabled(not busy)
        self.btn_build.setEnabled(not busy)

    # -------------------------
    # Scan (preview only, writes nothing)
    # -------------------------
    def on_scan_clicked(self):
        self.results_list.clear()

        config = self._current_config()
        if config is None:
            return

        self.log("---- SCAN START ----")
        self.log(f"Input:   {config.input_root}")
        self.log(f"Output:  {config.output_root}")

        discovery = list_projects(config.input_root)
        for i in discovery.issues:
            self.add_result(i.level, f"{i.code}: {i.message}")
        if discovery.fatal:
            self.log("---- SCAN BLOCKED ----")
            return

        self.add_result("INFO", f"Found {len(discovery.projects)} project folder(s).")
        for project in discovery.projects:
            names = derive_names(project.folder_name, config.level_hash)
            scan = scan_assets(project.path, config.asset_extensions)
            for i in scan.skipped:
                self.add_result(i.level, f"{project.folder_name}: {i.code}: {i.message}")

            if not names.slug_lower:
                self.add_result("WARNING", f"{project.folder_name}: no usable package name; will be skipped.")
            elif scan.total == 0:
                self.add_result("WARNING", f"{project.folder_name}: no mapping files; will be skipped.")
            else:
                self.add_result(
                    "INFO",
                    f"{project.folder_name} -> {names.package_name_lower}/ ({scan.total} mapping file(s))",
                )

        self.log(f"Scanned {len(discovery.projects)} project folder(s).")
        self.log("---- SCAN DONE ----")

    # -------------------------
    # Build
    # -------------------------
    def on_build_clicked(self):
        config = self._current_config()
        if config is None:
            return

        self.results_list.clear()
        self.progress.setValue(0)
        self._set_busy(True)

        self.log("---- BUILD START ----")

        self._build_thread = QThread()
        self._build_worker = BuildWorker(config, builder=self._builder)
        self._build_worker.moveToThread(self._build_thread)

        self._build_thread.started.connect(self._build_worker.run)
        self._build_worker.progress.connect(self._on_build_progress)
        self._build_worker.message.connect(self.log)
        self._build_worker.finished.connect(self._on_build_finished)

        self._build_worker.finished.connect(self._build_thread.quit)
        self._build_worker.finished.connect(self._build_worker.deleteLater)
        self._build_thread.finished.connect(self._build_thread.deleteLater)

        self._build_thread.start()

    def _on_build_progress(self, current: int, total: int, message: str):
        # a project counts as done once the next one starts
        pct = int(((current - 1) / max(total, 1)) * 100)
        self.progress.setValue(pct)
        self.log(message)

    def _on_build_finished(self, summary):
        self._set_busy(False)
        self._last_summary = summary

        for i in summary.issues:
            self.add_result(i.level, f"{i.code}: {i.message}")

        counts = count_outcomes(summary)
        self.add_result(
            "INFO",
            f"Build done: built={counts['built']}, partial={counts['partial']}, "
            f"skipped={counts['skipped']}, failed={counts['failed']}",
        )

        def _pri(i):
            return {"ERROR": 0, "WARNING": 1, "INFO": 2}.get(i.level.upper(), 3)

        for report in summary.reports:
            label = report.artifact or report.state
            self.add_result("INFO", f"{report.project.folder_name}: {label}")
            for i in sorted(report.issues, key=_pri):
                self.add_result(i.level, f"{report.project.folder_name}: {i.code}: {i.message}")

        if counts["failed"] == 0:
            self.progress.setValue(100)

        self.log("---- BUILD DONE ----")

    def on_cancel_clicked(self):
        if self._build_worker:
            self._build_worker.cancel()
            self.log("Cancel requested...")
            self.add_result("WARNING", "Cancel requested; the current project will finish first.")
