"""Idempotent install/configure actions, one per component.

Every action either completes so that a following probe reports the
component PRESENT, or raises ActionError. Re-running an action on a
component that is already present leaves observable state unchanged.
"""

import logging
import os
import shlex
from pathlib import Path
from typing import Awaitable, Callable

from ..config import ConfigRecord
from ..context import HostContext
from ..errors import ActionError
from ..execution import DEFAULT_TIMEOUT, INSTALL_TIMEOUT, run_command_async
from ..files import write_file
from .. import firewall, services
from . import components
from .components import REDROID_CONTAINER, Component

ANDROID_STUDIO_URL = (
    "https://redirector.gvt1.com/edgedl/android/studio/ide-zips/"
    "2024.2.1.11/android-studio-2024.2.1.11-linux.tar.gz"
)
CHROME_DEB_URL = (
    "https://dl.google.com/linux/direct/google-chrome-stable_current_amd64.deb"
)
CHROME_PACKAGE = "google-chrome-stable"
REDROID_IMAGE = "redroid/redroid:12.0.0_64only-latest"
ADB_PORT = 5555
CERT_SUBJECT = "/C=CN/ST=State/L=City/O=Organization/CN=localhost"
CERT_DAYS = 365

BASE_PACKAGES = [
    "wget",
    "curl",
    "git",
    "unzip",
    "net-tools",
    "ca-certificates",
    "gnupg",
    "lsb-release",
    "software-properties-common",
]

PACKAGES = {
    Component.XFCE: ["xfce4", "xfce4-goodies", "dbus-x11"],
    Component.TIGERVNC: ["tigervnc-standalone-server", "tigervnc-common"],
    Component.NOVNC: ["novnc", "python3-websockify", "python3-numpy"],
    Component.JAVA: ["openjdk-17-jdk"],
    Component.CHINESE_INPUT: [
        "fcitx5",
        "fcitx5-chinese-addons",
        "fcitx5-frontend-gtk3",
        "im-config",
        "fonts-noto-cjk",
    ],
    Component.CLIPBOARD: ["autocutsel"],
}

XSTARTUP = """#!/bin/bash
unset SESSION_MANAGER
unset DBUS_SESSION_BUS_ADDRESS
export XKL_XMODMAP_DISABLE=1
if command -v fcitx5 >/dev/null 2>&1; then
    export GTK_IM_MODULE=fcitx
    export QT_IM_MODULE=fcitx
    export XMODIFIERS=@im=fcitx
    fcitx5 -d
fi
if command -v autocutsel >/dev/null 2>&1; then
    autocutsel -fork
    autocutsel -selection PRIMARY -fork
fi
exec startxfce4
"""

_logging = logging.getLogger(__name__)

Action = Callable[[HostContext, ConfigRecord], Awaitable[str]]


async def _run(
    component: str,
    command: str,
    timeout: int = DEFAULT_TIMEOUT,
    input_text: str | None = None,
) -> str:
    output, returncode = await run_command_async(
        command, timeout=timeout, input_text=input_text
    )
    if returncode != 0:
        _logging.error(f"{component}: '{command}' exited with {returncode}")
        raise ActionError(component, f"'{command}' failed", output)
    return output


def _apt_install(ctx: HostContext, packages: list[str]) -> str:
    return ctx.sudo(
        "env DEBIAN_FRONTEND=noninteractive apt-get install -y "
        "-o Dpkg::Options::=--force-confdef -o Dpkg::Options::=--force-confold "
        + " ".join(packages)
    )


def _desktop_entry(name: str, icon: str, exec_line: str, categories: str) -> str:
    return f"""[Desktop Entry]
Version=1.0
Type=Application
Name={name}
Icon={icon}
Exec={exec_line}
Categories={categories}
Terminal=false
StartupNotify=true
"""


def _write_user_file(component: str, ctx: HostContext, path: Path, content: str, mode: int) -> None:
    try:
        write_file(ctx, path, content, mode=mode)
    except OSError as e:
        raise ActionError(component, f"failed to write {path}: {e}")


async def install_base_deps(ctx: HostContext) -> str:
    await _run("base", ctx.sudo("apt-get update"), timeout=INSTALL_TIMEOUT)
    return await _run("base", _apt_install(ctx, BASE_PACKAGES), timeout=INSTALL_TIMEOUT)


def _package_action(component: Component) -> Action:
    async def action(ctx: HostContext, record: ConfigRecord) -> str:
        return await _run(
            component.value,
            _apt_install(ctx, PACKAGES[component]),
            timeout=INSTALL_TIMEOUT,
        )

    action.__name__ = f"install_{component.name.lower()}"
    return action


async def configure_vnc(ctx: HostContext, record: ConfigRecord) -> str:
    """Write the VNC credential file and session startup script.

    The credential file is derived only from the recorded password, so
    re-running produces the same file.
    """
    try:
        ctx.vnc_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ActionError("vnc-config", f"failed to create {ctx.vnc_dir}: {e}")
    passwd = shlex.quote(str(ctx.vnc_passwd_path))
    output = await _run(
        "vnc-config",
        f"vncpasswd -f > {passwd}",
        input_text=record.vnc_password + "\n",
    )
    try:
        os.chmod(ctx.vnc_passwd_path, 0o600)
    except OSError as e:
        raise ActionError("vnc-config", f"failed to restrict {ctx.vnc_passwd_path}: {e}")
    _write_user_file("vnc-config", ctx, ctx.xstartup_path, XSTARTUP, 0o755)
    return output


async def generate_ssl_cert(
    ctx: HostContext, record: ConfigRecord | None = None, force: bool = False
) -> str:
    """Create the self-signed TLS bundle unless it already exists."""
    if ctx.pem_path.is_file() and not force:
        _logging.debug(f"TLS bundle already present at {ctx.pem_path}")
        return "TLS certificate already present"

    try:
        ctx.ssl_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ActionError("ssl", f"failed to create {ctx.ssl_dir}: {e}")
    key_path = ctx.ssl_dir / "novnc.key"
    crt_path = ctx.ssl_dir / "novnc.crt"
    output = await _run(
        "ssl",
        "openssl req -x509 -nodes -newkey rsa:2048 "
        f"-keyout {shlex.quote(str(key_path))} "
        f"-out {shlex.quote(str(crt_path))} "
        f"-days {CERT_DAYS} -subj {shlex.quote(CERT_SUBJECT)}",
    )
    try:
        bundle = key_path.read_text() + crt_path.read_text()
    except OSError as e:
        raise ActionError("ssl", f"failed to read generated certificate: {e}")
    _write_user_file("ssl", ctx, ctx.pem_path, bundle, 0o600)
    return output


async def install_android_studio(ctx: HostContext, record: ConfigRecord) -> str:
    archive = "/tmp/android-studio.tar.gz"
    target = shlex.quote(str(ctx.android_studio_dir))
    await _run(
        "android-studio",
        f"wget -q -O {archive} {shlex.quote(ANDROID_STUDIO_URL)}",
        timeout=INSTALL_TIMEOUT,
    )
    await _run("android-studio", ctx.sudo(f"rm -rf {target}"))
    await _run(
        "android-studio",
        ctx.sudo(f"tar -xzf {archive} -C {shlex.quote(str(ctx.android_studio_dir.parent))}"),
        timeout=INSTALL_TIMEOUT,
    )
    await _run("android-studio", f"rm -f {archive}")

    studio_sh = ctx.android_studio_dir / "bin" / "studio.sh"
    _write_user_file(
        "android-studio",
        ctx,
        ctx.desktop_dir / "android-studio.desktop",
        _desktop_entry(
            "Android Studio",
            str(ctx.android_studio_dir / "bin" / "studio.svg"),
            str(studio_sh),
            "Development;IDE;",
        ),
        0o755,
    )
    return await _run(
        "android-studio",
        ctx.sudo(f"ln -sf {shlex.quote(str(studio_sh))} {shlex.quote(str(ctx.bin_dir / 'android-studio'))}"),
    )


async def install_chrome(ctx: HostContext, record: ConfigRecord) -> str:
    deb = "/tmp/google-chrome.deb"
    await _run("chrome", f"wget -q -O {deb} {CHROME_DEB_URL}", timeout=INSTALL_TIMEOUT)
    output = await _run("chrome", _apt_install(ctx, [deb]), timeout=INSTALL_TIMEOUT)
    await _run("chrome", f"rm -f {deb}")

    for alternative in ("x-www-browser", "gnome-www-browser"):
        alt_output, returncode = await run_command_async(
            ctx.sudo(f"update-alternatives --set {alternative} /usr/bin/google-chrome-stable")
        )
        if returncode != 0:
            _logging.warning(f"Could not set {alternative}: {alt_output}")

    _write_user_file(
        "chrome",
        ctx,
        ctx.home / ".config" / "xfce4" / "helpers.rc",
        "WebBrowser=google-chrome\n",
        0o644,
    )
    _write_user_file(
        "chrome",
        ctx,
        ctx.desktop_dir / "google-chrome.desktop",
        _desktop_entry(
            "Google Chrome",
            "google-chrome",
            "/usr/bin/google-chrome-stable %U",
            "Network;WebBrowser;",
        ),
        0o755,
    )
    return output


async def setup_vnc_service(ctx: HostContext, record: ConfigRecord) -> str:
    await services.install_services(ctx, record)
    await services.restart_unit(ctx, ctx.vnc_unit, "vnc-service")
    return f"{ctx.vnc_unit} running"


async def setup_novnc_service(ctx: HostContext, record: ConfigRecord) -> str:
    await services.install_services(ctx, record)
    await services.restart_unit(ctx, ctx.novnc_unit, "novnc-service")
    await firewall.open_port(ctx, record.novnc_port)
    return f"{ctx.novnc_unit} listening on {record.novnc_port}"


async def install_chinese_input(ctx: HostContext, record: ConfigRecord) -> str:
    output = await _run(
        "chinese-input",
        _apt_install(ctx, PACKAGES[Component.CHINESE_INPUT]),
        timeout=INSTALL_TIMEOUT,
    )
    await _run("chinese-input", "im-config -n fcitx5")
    return output


def binderfs_mounted(mounts_path: Path = Path("/proc/mounts")) -> bool:
    """Return True if a binderfs filesystem is mounted."""
    try:
        mounts = mounts_path.read_text()
    except OSError:
        return False
    return any(
        len(fields) >= 3 and fields[2] == "binder"
        for fields in (line.split() for line in mounts.splitlines())
    )


def redroid_run_command(with_binderfs: bool) -> str:
    volume = "-v /dev/binderfs:/dev/binderfs " if with_binderfs else ""
    return (
        f"docker run -itd --privileged --restart unless-stopped "
        f"--name {REDROID_CONTAINER} {volume}"
        f"-p {ADB_PORT}:5555 {REDROID_IMAGE}"
    )


async def install_redroid(ctx: HostContext, record: ConfigRecord) -> str:
    await _run("redroid", _apt_install(ctx, ["docker.io"]), timeout=INSTALL_TIMEOUT)

    _, exists = await run_command_async(
        ctx.sudo(f"docker inspect {REDROID_CONTAINER}")
    )
    if exists == 0:
        await _run("redroid", ctx.sudo(f"docker rm -f {REDROID_CONTAINER}"))

    output = await _run(
        "redroid",
        ctx.sudo(redroid_run_command(binderfs_mounted())),
        timeout=INSTALL_TIMEOUT,
    )
    await firewall.open_port(ctx, ADB_PORT, comment="ADB for Redroid")
    return output


async def purge_packages(ctx: HostContext) -> str:
    """Remove the component packages dpkg reports as installed.

    apt-get refuses the whole purge when any named package is unknown, so
    packages that were never installed are left off the command line.
    """
    packages = [p for group in PACKAGES.values() for p in group]
    packages.append(CHROME_PACKAGE)
    installed = [p for p in packages if components.package_installed(p)]
    if not installed:
        _logging.info("No component packages installed; skipping purge")
        return ""

    await _run(
        "uninstall",
        ctx.sudo(
            "env DEBIAN_FRONTEND=noninteractive apt-get purge -y " + " ".join(installed)
        ),
        timeout=INSTALL_TIMEOUT,
    )
    return await _run(
        "uninstall",
        ctx.sudo("env DEBIAN_FRONTEND=noninteractive apt-get autoremove --purge -y"),
        timeout=INSTALL_TIMEOUT,
    )


async def remove_redroid(ctx: HostContext) -> None:
    """Remove the Redroid container; a missing container or docker is fine."""
    output, returncode = await run_command_async(
        ctx.sudo(f"docker rm -f {REDROID_CONTAINER}")
    )
    if returncode != 0:
        _logging.warning(f"Could not remove {REDROID_CONTAINER} container: {output}")


ACTIONS: dict[Component, Action] = {
    Component.XFCE: _package_action(Component.XFCE),
    Component.TIGERVNC: _package_action(Component.TIGERVNC),
    Component.NOVNC: _package_action(Component.NOVNC),
    Component.JAVA: _package_action(Component.JAVA),
    Component.ANDROID_STUDIO: install_android_studio,
    Component.CHROME: install_chrome,
    Component.VNC_CONFIG: configure_vnc,
    Component.SSL: generate_ssl_cert,
    Component.VNC_SERVICE: setup_vnc_service,
    Component.NOVNC_SERVICE: setup_novnc_service,
    Component.CHINESE_INPUT: install_chinese_input,
    Component.CLIPBOARD: _package_action(Component.CLIPBOARD),
    Component.REDROID: install_redroid,
}


def get_action(component: Component) -> Action:
    return ACTIONS[component]


__all__ = [
    "ACTIONS",
    "ADB_PORT",
    "BASE_PACKAGES",
    "PACKAGES",
    "XSTARTUP",
    "get_action",
    "install_base_deps",
    "configure_vnc",
    "generate_ssl_cert",
    "binderfs_mounted",
    "redroid_run_command",
    "purge_packages",
    "remove_redroid",
]
