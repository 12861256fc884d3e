"""Configuration record loading, validation and persistence.

The record is a plain ``KEY=VALUE`` file shared by every invocation::

    # Android Studio remote desktop
    # Install user: alice
    NOVNC_PORT=23456
    VNC_PASSWORD="s3cretpass"
    VNC_PORT=5901
    INSTALL_USER=alice
    CREATED_AT=2026-10-17T09:30:00+00:00

Exactly one authoritative copy lives at the system path. Older installs kept
a copy in the user's home directory; those are still read but never written.
"""

import contextlib
import fcntl
import logging
import os
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .context import HostContext
from .errors import ConfigError, StudioRemoteError
from .files import remove_path, write_file

MIN_PORT = 1024
MAX_PORT = 65535
MIN_PASSWORD_LENGTH = 6
DEFAULT_VNC_PORT = 5901
LOCK_MODE = 0o666

REQUIRED_KEYS = ("NOVNC_PORT", "VNC_PASSWORD", "INSTALL_USER")

_logging = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class ConfigRecord:
    """The persisted installation settings."""
    novnc_port: int
    vnc_password: str
    install_user: str
    vnc_port: int = DEFAULT_VNC_PORT
    created_at: str = field(default_factory=_now)

    def __post_init__(self):
        if not isinstance(self.novnc_port, int) or not (
            MIN_PORT <= self.novnc_port <= MAX_PORT
        ):
            raise ValueError(
                f"NOVNC_PORT must be between {MIN_PORT} and {MAX_PORT}"
            )
        if not isinstance(self.vnc_port, int) or not (0 < self.vnc_port <= MAX_PORT):
            raise ValueError("VNC_PORT must be a valid port number")
        if not self.vnc_password or len(self.vnc_password) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"VNC_PASSWORD must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if not self.install_user:
            raise ValueError("INSTALL_USER must be a non-empty string")


def _quote(value: str) -> str:
    # _unquote strips exactly one pair, so inner quotes and spaces survive
    return f"\"{value}\""


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_config_text(text: str) -> ConfigRecord:
    """Parse ``KEY=VALUE`` text into a validated record.

    Blank lines and ``#`` comments are ignored; unknown keys are tolerated so
    records written by newer versions still load.

    Raises:
        ConfigError: On malformed lines, missing keys or invalid values.
    """
    values: dict[str, str] = {}
    for line_num, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            raise ConfigError(
                f"Config syntax error at line {line_num}: expected KEY=VALUE\n{raw_line}"
            )
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            raise ConfigError(f"Config syntax error at line {line_num}: empty key")
        values[key] = _unquote(value)

    for key in REQUIRED_KEYS:
        if key not in values:
            raise ConfigError(f"Missing required field: {key}")

    try:
        novnc_port = int(values["NOVNC_PORT"])
        vnc_port = int(values.get("VNC_PORT", DEFAULT_VNC_PORT))
    except ValueError:
        raise ConfigError("NOVNC_PORT and VNC_PORT must be integers")

    try:
        return ConfigRecord(
            novnc_port=novnc_port,
            vnc_password=values["VNC_PASSWORD"],
            install_user=values["INSTALL_USER"],
            vnc_port=vnc_port,
            created_at=values.get("CREATED_AT") or _now(),
        )
    except ValueError as e:
        raise ConfigError(str(e))


def render_config_text(record: ConfigRecord) -> str:
    return (
        "# Android Studio remote desktop\n"
        f"# Generated: {record.created_at}\n"
        f"# Install user: {record.install_user}\n"
        "\n"
        f"NOVNC_PORT={record.novnc_port}\n"
        f"VNC_PASSWORD={_quote(record.vnc_password)}\n"
        f"VNC_PORT={record.vnc_port}\n"
        f"INSTALL_USER={record.install_user}\n"
        f"CREATED_AT={record.created_at}\n"
    )


def find_config_path(ctx: HostContext) -> Path | None:
    """Locate the config record: system path first, then legacy copies."""
    if ctx.system_config_path.is_file():
        return ctx.system_config_path
    for candidate in ctx.legacy_config_paths:
        if candidate.is_file():
            return candidate
    return None


def load_config(ctx: HostContext) -> ConfigRecord | None:
    """Load the config record, or None when no copy exists.

    Raises:
        ConfigError: If a copy exists but cannot be read or parsed.
    """
    path = find_config_path(ctx)
    if path is None:
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except PermissionError:
        raise ConfigError(f"Permission denied reading config file: {path}")
    except UnicodeDecodeError:
        raise ConfigError(f"Config file is not valid UTF-8: {path}")
    except OSError as e:
        raise ConfigError(f"Error reading config file {path}: {e}")

    _logging.debug(f"Loaded config from {path}")
    try:
        return parse_config_text(text)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}")


def save_config(ctx: HostContext, record: ConfigRecord) -> Path:
    """Write the record to the system path and return that path."""
    path = ctx.system_config_path
    try:
        write_file(ctx, path, render_config_text(record), mode=0o644, privileged=True)
    except (OSError, StudioRemoteError) as e:
        raise ConfigError(f"Failed to write config to {path}: {e}")
    _logging.debug(f"Saved config to {path}")
    return path


def update_config(ctx: HostContext, **changes) -> ConfigRecord:
    """Apply ``changes`` to the current record and persist the result.

    Raises:
        ConfigError: If no record exists or the new values are invalid.
    """
    record = load_config(ctx)
    if record is None:
        raise ConfigError("Config file not found")
    try:
        updated = replace(record, **changes)
    except ValueError as e:
        raise ConfigError(str(e))
    save_config(ctx, updated)
    return updated


def delete_config(ctx: HostContext) -> None:
    """Remove the system copy and any legacy per-user copies."""
    remove_path(ctx, ctx.system_config_path, privileged=True)
    for candidate in ctx.legacy_config_paths:
        if candidate.is_file():
            try:
                remove_path(ctx, candidate, privileged=not candidate.is_relative_to(ctx.home))
            except (OSError, StudioRemoteError) as e:
                raise ConfigError(f"Failed to remove legacy config {candidate}: {e}")


def _open_lock_file(path: Path) -> int:
    # Another account may own the file; O_CREAT on it is refused in sticky dirs
    try:
        return os.open(path, os.O_RDONLY)
    except FileNotFoundError:
        pass
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_RDONLY | os.O_CREAT, LOCK_MODE)
    try:
        os.fchmod(fd, LOCK_MODE)
    except PermissionError:
        _logging.debug(f"Lock file {path} is owned by another account")
    return fd


@contextlib.contextmanager
def config_lock(ctx: HostContext) -> Iterator[None]:
    """Hold an exclusive lock around read-compute-write sequences.

    Raises:
        ConfigError: If the lock file cannot be opened or locked.
    """
    try:
        fd = _open_lock_file(ctx.lock_path)
    except OSError as e:
        raise ConfigError(f"Cannot open lock file {ctx.lock_path}: {e}")
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except OSError as e:
            raise ConfigError(f"Cannot lock {ctx.lock_path}: {e}")
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


__all__ = [
    "ConfigRecord",
    "MIN_PORT",
    "MAX_PORT",
    "MIN_PASSWORD_LENGTH",
    "DEFAULT_VNC_PORT",
    "parse_config_text",
    "render_config_text",
    "find_config_path",
    "load_config",
    "save_config",
    "update_config",
    "delete_config",
    "config_lock",
]
