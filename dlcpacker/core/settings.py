from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet

from dlcpacker.core.errors import ConfigError
from dlcpacker.core.naming import DEFAULT_LEVEL_HASH
from dlcpacker.core.scanner import ASSET_EXTENSIONS, normalize_extensions


@dataclass(frozen=True)
class PackagerConfig:
    input_root: str = "inputmaps"
    output_root: str = "outputmaps"
    archive_tool: str = str(Path("utils") / "gtautil")
    asset_extensions: FrozenSet[str] = field(default=ASSET_EXTENSIONS)  # lower, no dot
    archive_extension: str = "rpf"
    platform_folder: str = "x64"
    level_hash: str = DEFAULT_LEVEL_HASH
    outer_archive_name: str = "dlc"
    content_manifest_name: str = "content.xml"
    setup_manifest_name: str = "setup2.xml"

    def with_overrides(self, **changes: Any) -> "PackagerConfig":
        # None means "not given" (e.g. an unset CLI flag)
        given = {k: v for k, v in changes.items() if v is not None}
        if "asset_extensions" in given:
            given["asset_extensions"] = normalize_extensions(given["asset_extensions"])
        return replace(self, **given)


def default_config() -> PackagerConfig:
    return PackagerConfig()


def to_json_dict(config: PackagerConfig) -> Dict[str, Any]:
    d = asdict(config)
    d["asset_extensions"] = sorted(config.asset_extensions)
    return d


def _str_field(d: Dict[str, Any], key: str, default: str) -> str:
    value = d.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Config field '{key}' must be a non-empty string.")
    return value.strip()


def from_json_dict(d: Dict[str, Any]) -> PackagerConfig:
    if not isinstance(d, dict):
        raise ConfigError("Config must be a JSON object.")

    base = default_config()

    exts_in = d.get("asset_extensions")
    if exts_in is None:
        exts = base.asset_extensions
    elif isinstance(exts_in, list):
        exts = normalize_extensions(exts_in)
    else:
        raise ConfigError("Config field 'asset_extensions' must be a list.")
    if not exts:
        raise ConfigError("Config field 'asset_extensions' must name at least one extension.")

    return PackagerConfig(
        input_root=_str_field(d, "input_root", base.input_root),
        output_root=_str_field(d, "output_root", base.output_root),
        archive_tool=_str_field(d, "archive_tool", base.archive_tool),
        asset_extensions=exts,
        archive_extension=_str_field(d, "archive_extension", base.archive_extension).lstrip("."),
        platform_folder=_str_field(d, "platform_folder", base.platform_folder).strip("/\\"),
        level_hash=_str_field(d, "level_hash", base.level_hash),
        outer_archive_name=_str_field(d, "outer_archive_name", base.outer_archive_name),
        content_manifest_name=_str_field(d, "content_manifest_name", base.content_manifest_name),
        setup_manifest_name=_str_field(d, "setup_manifest_name", base.setup_manifest_name),
    )


def load_config(path: str) -> PackagerConfig:
    p = Path(path)
    try:
        d = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config '{p}': {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config '{p}' is not valid JSON: {e}") from e
    return from_json_dict(d)


def save_config(config: PackagerConfig, path: str) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(to_json_dict(config), indent=2), encoding="utf-8")
    return p
