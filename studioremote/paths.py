"""Well-known filesystem locations."""

import os
from pathlib import Path

SYSTEM_CONFIG_DIR = Path("/etc/android-studio-remote")
LEGACY_CONFIG_NAME = ".android-studio-remote.conf"
LEGACY_STATUS_NAME = ".android-studio-remote.status"
SYSTEMD_DIR = Path("/etc/systemd/system")
ANDROID_STUDIO_DIR = Path("/opt/android-studio")
LOCAL_BIN_DIR = Path("/usr/local/bin")
LOCK_PATH = Path("/run/lock/studioremote.lock")


def get_system_config_path() -> Path:
    """Return path to the authoritative config record.

    Priority:
    1. STUDIOREMOTE_CONFIG environment variable (if set)
    2. /etc/android-studio-remote/config.conf
    """
    if "STUDIOREMOTE_CONFIG" in os.environ:
        return Path(os.environ["STUDIOREMOTE_CONFIG"])
    return SYSTEM_CONFIG_DIR / "config.conf"


def get_legacy_config_paths(home: Path, homes_root: Path = Path("/home")) -> list[Path]:
    """Return per-user config locations accepted for backward compatibility.

    The invoking user's copy comes first, then every other home directory,
    then root's.
    """
    paths = [home / LEGACY_CONFIG_NAME]
    if homes_root.is_dir():
        for user_home in sorted(homes_root.iterdir()):
            candidate = user_home / LEGACY_CONFIG_NAME
            if candidate not in paths:
                paths.append(candidate)
    root_copy = Path("/root") / LEGACY_CONFIG_NAME
    if root_copy not in paths:
        paths.append(root_copy)
    return paths
