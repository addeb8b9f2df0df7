APP_NAME = "Mapping DLC Packager"
APP_VERSION = "1.0.0"

LOGGER_NAME = "dlcpacker"
REPORT_FILENAME = "build_report.json"
