"""Local firewall rules for the bridge port."""

import logging
import shutil
from enum import Enum

from .context import HostContext
from .errors import ActionError
from .execution import DEFAULT_TIMEOUT, run_command_async

_logging = logging.getLogger(__name__)


class FirewallBackend(Enum):
    UFW = "ufw"
    FIREWALLD = "firewalld"
    IPTABLES = "iptables"
    NONE = "none"


def detect_backend() -> FirewallBackend:
    """Pick the first firewall front-end available on the host."""
    if shutil.which("ufw"):
        return FirewallBackend.UFW
    if shutil.which("firewall-cmd"):
        return FirewallBackend.FIREWALLD
    if shutil.which("iptables"):
        return FirewallBackend.IPTABLES
    return FirewallBackend.NONE


def allow_commands(backend: FirewallBackend, port: int, comment: str) -> list[str]:
    if backend == FirewallBackend.UFW:
        return [f"ufw allow {port}/tcp comment '{comment}'"]
    if backend == FirewallBackend.FIREWALLD:
        return [
            f"firewall-cmd --add-port={port}/tcp --permanent",
            "firewall-cmd --reload",
        ]
    if backend == FirewallBackend.IPTABLES:
        return [f"iptables -I INPUT -p tcp --dport {port} -j ACCEPT"]
    return []


async def open_port(
    ctx: HostContext, port: int, comment: str = "noVNC for Android Studio"
) -> FirewallBackend:
    """Allow inbound TCP on ``port``. Previously opened ports stay open."""
    backend = detect_backend()
    if backend == FirewallBackend.NONE:
        _logging.warning(f"No firewall tool found; port {port} left as-is")
        return backend

    for command in allow_commands(backend, port, comment):
        output, returncode = await run_command_async(
            ctx.sudo(command), timeout=DEFAULT_TIMEOUT
        )
        if returncode != 0:
            raise ActionError("firewall", f"'{command}' failed", output)
    _logging.info(f"Opened port {port}/tcp via {backend.value}")
    return backend


__all__ = ["FirewallBackend", "detect_backend", "allow_commands", "open_port"]
