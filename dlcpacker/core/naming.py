from __future__ import annotations

import re

from dlcpacker.models import NameSet

DLC_PREFIX = "dlc_"
DEFAULT_LEVEL_HASH = "MO_JIM_L11"

_NOT_LOWER_ALNUM_RE = re.compile(r"[^a-z0-9]")
_NOT_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


def slugify_lower(name: str) -> str:
    # lowercase first, then drop anything outside [a-z0-9] (no separator)
    return _NOT_LOWER_ALNUM_RE.sub("", name.lower())


def slugify_upper(name: str) -> str:
    return _NOT_ALNUM_RE.sub("", name).upper()


def derive_names(folder_name: str, level_hash: str = DEFAULT_LEVEL_HASH) -> NameSet:
    """
    Derive every identifier a project needs from its folder name.
    Pure and total: "My Map!" -> mymap / MYMAP / dlc_mymap / dlc_MYMAP.
    """
    slug_lower = slugify_lower(folder_name)
    slug_upper = slugify_upper(folder_name)
    return NameSet(
        slug_lower=slug_lower,
        slug_upper=slug_upper,
        package_name_lower=DLC_PREFIX + slug_lower,
        package_name_upper=DLC_PREFIX + slug_upper,
        level_hash=level_hash,
    )
