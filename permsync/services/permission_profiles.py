"""Load named permission profiles from the JSON manifest."""

import json
from pathlib import Path
from typing import Dict, Optional

from permsync.infra.config import config
from permsync.models.permission import PermissionProfile

_profiles: Dict[str, Dict[str, PermissionProfile]] = {}


def load_permission_profiles(path: Optional[str] = None) -> Dict[str, PermissionProfile]:
    """
    Read every profile in a manifest file.

    Args:
        path: Manifest path, defaults to PERMISSION_PROFILE_PATH

    Returns:
        Profiles keyed by name
    """
    path = path or config.PERMISSION_PROFILE_PATH
    if path not in _profiles:
        manifest = json.loads(Path(path).read_text(encoding="utf-8"))
        _profiles[path] = {
            profile.name: profile
            for profile in (PermissionProfile(**entry) for entry in manifest.get("profiles", []))
        }
    return _profiles[path]


def get_permission_profile(name: str, path: Optional[str] = None) -> PermissionProfile:
    """
    Get a profile by name.

    Raises:
        ValueError: If the manifest has no profile with that name
    """
    profiles = load_permission_profiles(path)
    if name not in profiles:
        raise ValueError(f"Unknown permission profile: {name}")
    return profiles[name]
