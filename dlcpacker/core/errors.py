from __future__ import annotations


class PackagerError(RuntimeError):
    """Base error for failures the pipeline knows how to report."""


class TemplateError(PackagerError, ValueError):
    """Raised when a manifest template references an undeclared placeholder."""


class ConfigError(PackagerError):
    """Raised when a configuration file cannot be used."""
