"""systemd unit rendering and service lifecycle.

Two units are managed: the TigerVNC display server (a ``vncserver@.service``
template instantiated for one display) and the websockify bridge
(``novnc.service``). Unit content is a pure function of the config record
and the host context.
"""

import logging
from enum import Enum

from .config import ConfigRecord
from .context import HostContext
from .errors import ActionError, StudioRemoteError
from .execution import DEFAULT_TIMEOUT, SERVICE_TIMEOUT, run_command_async
from .files import remove_path, write_file

VNC_GEOMETRY = "1920x1080"
VNC_DEPTH = 24
NOVNC_WEB_ROOT = "/usr/share/novnc"
VNC_TEMPLATE_UNIT = "vncserver@.service"

_logging = logging.getLogger(__name__)


class ServiceState(Enum):
    NOT_INSTALLED = "not-installed"
    STOPPED = "stopped"
    RUNNING = "running"


def render_vnc_unit(ctx: HostContext) -> str:
    return f"""[Unit]
Description=TigerVNC Server for display %i
After=syslog.target network.target

[Service]
Type=simple
User={ctx.user}
PAMName=login
PIDFile={ctx.vnc_dir}/%H:%i.pid
ExecStartPre=-/usr/bin/vncserver -kill :%i
ExecStart=/usr/bin/vncserver :%i -fg -geometry {VNC_GEOMETRY} -depth {VNC_DEPTH} -localhost yes
ExecStop=/usr/bin/vncserver -kill :%i

[Install]
WantedBy=multi-user.target
"""


def render_novnc_unit(ctx: HostContext, record: ConfigRecord) -> str:
    return f"""[Unit]
Description=noVNC WebSocket Proxy
After={ctx.vnc_unit}
Requires={ctx.vnc_unit}

[Service]
Type=simple
User={ctx.user}
ExecStart=/usr/bin/websockify --web={NOVNC_WEB_ROOT} --cert={ctx.pem_path} {record.novnc_port} localhost:{record.vnc_port}
Restart=on-failure
RestartSec=5

[Install]
WantedBy=multi-user.target
"""


async def _systemctl(ctx: HostContext, *args: str, component: str = "services") -> str:
    command = ctx.sudo("systemctl " + " ".join(args))
    output, returncode = await run_command_async(command, timeout=SERVICE_TIMEOUT)
    if returncode != 0:
        raise ActionError(component, f"'{command}' failed", output)
    return output


async def is_active(unit: str) -> bool:
    _, returncode = await run_command_async(
        f"systemctl is-active --quiet {unit}", timeout=DEFAULT_TIMEOUT
    )
    return returncode == 0


async def service_state(ctx: HostContext, unit: str) -> ServiceState:
    unit_file = VNC_TEMPLATE_UNIT if unit == ctx.vnc_unit else unit
    if not (ctx.systemd_dir / unit_file).is_file():
        return ServiceState.NOT_INSTALLED
    if await is_active(unit):
        return ServiceState.RUNNING
    return ServiceState.STOPPED


def write_units(ctx: HostContext, record: ConfigRecord) -> None:
    """Write both unit files from the current record."""
    try:
        write_file(
            ctx, ctx.systemd_dir / VNC_TEMPLATE_UNIT, render_vnc_unit(ctx), privileged=True
        )
        write_file(
            ctx,
            ctx.systemd_dir / ctx.novnc_unit,
            render_novnc_unit(ctx, record),
            privileged=True,
        )
    except (OSError, StudioRemoteError) as e:
        raise ActionError("services", f"failed to write unit files: {e}")


async def install_services(ctx: HostContext, record: ConfigRecord) -> None:
    """Write units, reload systemd and enable both services (→ STOPPED)."""
    _logging.info("Installing systemd units")
    write_units(ctx, record)
    await _systemctl(ctx, "daemon-reload")
    await _systemctl(ctx, "enable", ctx.vnc_unit, ctx.novnc_unit)


async def start_services(ctx: HostContext) -> None:
    """Start the display server, then the bridge."""
    await _systemctl(ctx, "start", ctx.vnc_unit, component="vnc-service")
    await _systemctl(ctx, "start", ctx.novnc_unit, component="novnc-service")


async def stop_services(ctx: HostContext) -> None:
    """Stop the bridge, then the display server."""
    await _systemctl(ctx, "stop", ctx.novnc_unit, component="novnc-service")
    await _systemctl(ctx, "stop", ctx.vnc_unit, component="vnc-service")


async def restart_unit(ctx: HostContext, unit: str, component: str) -> None:
    await _systemctl(ctx, "restart", unit, component=component)


async def restart_services(ctx: HostContext) -> None:
    """Restart the display server, then the bridge."""
    await restart_unit(ctx, ctx.vnc_unit, "vnc-service")
    await restart_unit(ctx, ctx.novnc_unit, "novnc-service")


async def restart_display_server(ctx: HostContext) -> None:
    await restart_unit(ctx, ctx.vnc_unit, "vnc-service")


async def uninstall_services(ctx: HostContext) -> None:
    """Disable both services and remove their unit files (→ NOT_INSTALLED).

    Stopping or disabling a unit that is already gone is not an error.
    """
    units = f"{ctx.novnc_unit} {ctx.vnc_unit}"
    for verb in ("stop", "disable"):
        output, returncode = await run_command_async(
            ctx.sudo(f"systemctl {verb} {units}"), timeout=SERVICE_TIMEOUT
        )
        if returncode != 0:
            _logging.warning(f"systemctl {verb} returned {returncode}: {output}")

    try:
        remove_path(ctx, ctx.systemd_dir / VNC_TEMPLATE_UNIT, privileged=True)
        remove_path(ctx, ctx.systemd_dir / ctx.novnc_unit, privileged=True)
    except (OSError, StudioRemoteError) as e:
        raise ActionError("services", f"failed to remove unit files: {e}")
    await _systemctl(ctx, "daemon-reload")


async def tail_logs(ctx: HostContext, lines: int = 20) -> str:
    output, _ = await run_command_async(
        ctx.sudo(
            f"journalctl -u {ctx.novnc_unit} -u {ctx.vnc_unit} --no-pager -n {lines}"
        ),
        timeout=DEFAULT_TIMEOUT,
    )
    return output


__all__ = [
    "ServiceState",
    "render_vnc_unit",
    "render_novnc_unit",
    "is_active",
    "service_state",
    "write_units",
    "install_services",
    "start_services",
    "stop_services",
    "restart_unit",
    "restart_services",
    "restart_display_server",
    "uninstall_services",
    "tail_logs",
]
