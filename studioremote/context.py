"""Host context shared by every operation.

The context is built once at startup from the invoking user and the config
search paths. Operations receive it explicitly instead of looking up the
current user or home directory themselves.
"""

import getpass
import os
import pwd
from dataclasses import dataclass, field
from pathlib import Path

from .paths import (
    ANDROID_STUDIO_DIR,
    LOCAL_BIN_DIR,
    LOCK_PATH,
    SYSTEMD_DIR,
    get_legacy_config_paths,
    get_system_config_path,
)

VNC_BASE_PORT = 5900
DEFAULT_DISPLAY = 1


@dataclass
class HostContext:
    user: str
    home: Path
    system_config_path: Path
    legacy_config_paths: list[Path] = field(default_factory=list)
    systemd_dir: Path = SYSTEMD_DIR
    android_studio_dir: Path = ANDROID_STUDIO_DIR
    bin_dir: Path = LOCAL_BIN_DIR
    lock_path: Path = LOCK_PATH
    display: int = DEFAULT_DISPLAY
    is_root: bool = False
    use_sudo: bool = True

    @property
    def vnc_dir(self) -> Path:
        return self.home / ".vnc"

    @property
    def vnc_passwd_path(self) -> Path:
        return self.vnc_dir / "passwd"

    @property
    def xstartup_path(self) -> Path:
        return self.vnc_dir / "xstartup"

    @property
    def ssl_dir(self) -> Path:
        return self.vnc_dir / "ssl"

    @property
    def pem_path(self) -> Path:
        return self.ssl_dir / "novnc.pem"

    @property
    def desktop_dir(self) -> Path:
        return self.home / "Desktop"

    @property
    def vnc_port(self) -> int:
        return VNC_BASE_PORT + self.display

    @property
    def vnc_unit(self) -> str:
        return f"vncserver@{self.display}.service"

    @property
    def novnc_unit(self) -> str:
        return "novnc.service"

    def sudo(self, command: str) -> str:
        """Prefix a command with sudo when not already running as root."""
        return f"sudo {command}" if self.use_sudo else command

    @classmethod
    def from_environment(
        cls, user: str | None = None, config_path: Path | None = None
    ) -> "HostContext":
        """Build the context for the invoking user.

        This is the only place that consults the process environment.
        """
        user = user or getpass.getuser()
        try:
            home = Path(pwd.getpwnam(user).pw_dir)
        except KeyError:
            home = Path.home()
        is_root = os.geteuid() == 0
        return cls(
            user=user,
            home=home,
            system_config_path=config_path or get_system_config_path(),
            legacy_config_paths=get_legacy_config_paths(home),
            is_root=is_root,
            use_sudo=not is_root,
        )


__all__ = ["HostContext", "VNC_BASE_PORT", "DEFAULT_DISPLAY"]
