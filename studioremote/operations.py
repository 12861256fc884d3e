"""Operator-level operations built on the reconciler.

Each function here is what a menu entry or wizard step does. They take the
host context explicitly and raise ValidationError, ConfigError or
ActionError; presentation is left to the caller.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable

from . import firewall, services
from .config import (
    ConfigRecord,
    config_lock,
    delete_config,
    load_config,
    save_config,
    update_config,
)
from .context import HostContext
from .credentials import (
    generate_random_password,
    generate_random_port,
    validate_password,
    validate_port,
)
from .errors import ActionError, ConfigError, StudioRemoteError
from .execution import DEFAULT_TIMEOUT, run_command_async
from .files import remove_path
from .installer import (
    Component,
    Plan,
    PlanStep,
    StepResult,
    apply_plan,
    get_component,
    plan_components,
    plan_repair,
    probe_components,
    required_components,
)
from .installer.actions import (
    configure_vnc,
    install_base_deps,
    purge_packages,
    remove_redroid,
)
from .paths import LEGACY_STATUS_NAME

PUBLIC_IP_SERVICES = ("ifconfig.me", "ipinfo.io/ip")
PUBLIC_IP_PLACEHOLDER = "YOUR_SERVER_IP"
DESKTOP_SHORTCUTS = ("android-studio.desktop", "google-chrome.desktop")

# TigerVNC only reads the password file when the server starts.
RESTART_DISPLAY_ON_PASSWORD_CHANGE = True

_logging = logging.getLogger(__name__)


@dataclass
class RepairOutcome:
    plan: Plan
    results: list[StepResult]

    @property
    def healthy(self) -> bool:
        return self.plan.is_empty()

    @property
    def succeeded(self) -> bool:
        return all(r.status != "failed" for r in self.results)


def new_config(
    ctx: HostContext, port: int | None = None, password: str | None = None
) -> ConfigRecord:
    """Build a fresh record, generating a port or password when not supplied."""
    return ConfigRecord(
        novnc_port=port if port is not None else generate_random_port(),
        vnc_password=password or generate_random_password(),
        install_user=ctx.user,
    )


def ensure_config(ctx: HostContext) -> ConfigRecord:
    """Return the existing record, creating one with defaults if none exists."""
    record = load_config(ctx)
    if record is None:
        record = new_config(ctx)
        save_config(ctx, record)
        _logging.info(f"Created config with port {record.novnc_port}")
    return record


async def repair(
    ctx: HostContext,
    confirm: Callable[[Plan], bool] | None = None,
    on_step: Callable[[PlanStep], None] | None = None,
) -> RepairOutcome:
    """Probe, plan and apply the missing required components.

    Returns without changes when the host is healthy or ``confirm`` declines.
    """
    with config_lock(ctx):
        state = probe_components(ctx)
        plan = plan_repair(state)
        if plan.is_empty():
            return RepairOutcome(plan=plan, results=[])
        if confirm is not None and not confirm(plan):
            return RepairOutcome(plan=plan, results=[])
        record = ensure_config(ctx)
        results = await apply_plan(ctx, plan, record, on_step=on_step)
    return RepairOutcome(plan=plan, results=results)


async def full_install(
    ctx: HostContext,
    record: ConfigRecord,
    on_step: Callable[[PlanStep], None] | None = None,
) -> RepairOutcome:
    """Install every required component for a fresh or reinstalled host.

    The record is saved first so an interrupted install can be resumed by
    ``repair``.
    """
    with config_lock(ctx):
        save_config(ctx, record)
        await install_base_deps(ctx)
        plan = plan_components(required_components())
        results = await apply_plan(ctx, plan, record, on_step=on_step)
    return RepairOutcome(plan=plan, results=results)


async def install_addon(
    ctx: HostContext,
    component: Component,
    on_step: Callable[[PlanStep], None] | None = None,
) -> RepairOutcome:
    """Install an optional component together with any missing dependency."""
    spec = get_component(component)
    if not spec.optional:
        raise ValueError(f"{component.value} is not an optional component")

    with config_lock(ctx):
        state = probe_components(ctx, [*spec.dependencies, component])
        plan = plan_repair(state)
        if plan.is_empty():
            return RepairOutcome(plan=plan, results=[])
        record = ensure_config(ctx)
        results = await apply_plan(ctx, plan, record, on_step=on_step)
    return RepairOutcome(plan=plan, results=results)


async def change_port(ctx: HostContext, value: str | int) -> ConfigRecord:
    """Move the bridge to a new port.

    The units are rewritten before the record, so a failed rewrite leaves
    the record matching the running bridge. The previous port's firewall
    rule is left in place.
    """
    port = validate_port(value)
    with config_lock(ctx):
        current = require_config(ctx)
        record = replace(current, novnc_port=port)
        try:
            await services.install_services(ctx, record)
        except ActionError:
            _logging.error(f"Restoring units for port {current.novnc_port}")
            services.write_units(ctx, current)
            raise
        save_config(ctx, record)
        await firewall.open_port(ctx, port)
        await services.restart_services(ctx)
    _logging.info(f"Port changed to {port}")
    return record


async def change_password(ctx: HostContext, value: str) -> ConfigRecord:
    """Replace the VNC password in the credential file and the record."""
    password = validate_password(value)
    with config_lock(ctx):
        record = update_config(ctx, vnc_password=password)
        await configure_vnc(ctx, record)
        if RESTART_DISPLAY_ON_PASSWORD_CHANGE:
            await services.restart_display_server(ctx)
    _logging.info("VNC password changed")
    return record


async def uninstall(ctx: HostContext) -> None:
    """Remove every component, its generated artifacts and the config.

    Base tools (curl, wget, git) installed alongside the components stay.
    """
    with config_lock(ctx):
        await remove_redroid(ctx)
        await services.uninstall_services(ctx)
        await purge_packages(ctx)
        try:
            remove_path(ctx, ctx.android_studio_dir, privileged=True)
            remove_path(ctx, ctx.bin_dir / "android-studio", privileged=True)
            remove_path(ctx, ctx.vnc_dir)
            remove_path(ctx, ctx.home / LEGACY_STATUS_NAME)
            for shortcut in DESKTOP_SHORTCUTS:
                remove_path(ctx, ctx.desktop_dir / shortcut)
        except (OSError, StudioRemoteError) as e:
            raise ActionError("uninstall", str(e))
        delete_config(ctx)
    _logging.info("Uninstall complete")


async def get_public_ip() -> str:
    for service in PUBLIC_IP_SERVICES:
        output, returncode = await run_command_async(
            f"curl -s --max-time 5 {service}", timeout=DEFAULT_TIMEOUT
        )
        if returncode == 0 and output:
            return output.splitlines()[0].strip()
    return PUBLIC_IP_PLACEHOLDER


def access_url(host: str, record: ConfigRecord) -> str:
    return f"https://{host}:{record.novnc_port}/vnc.html"


async def service_states(ctx: HostContext) -> dict[str, services.ServiceState]:
    return {
        ctx.vnc_unit: await services.service_state(ctx, ctx.vnc_unit),
        ctx.novnc_unit: await services.service_state(ctx, ctx.novnc_unit),
    }


def require_config(ctx: HostContext) -> ConfigRecord:
    record = load_config(ctx)
    if record is None:
        raise ConfigError("Config file not found")
    return record


__all__ = [
    "RepairOutcome",
    "new_config",
    "ensure_config",
    "repair",
    "full_install",
    "install_addon",
    "change_port",
    "change_password",
    "uninstall",
    "get_public_ip",
    "access_url",
    "service_states",
    "require_config",
]
