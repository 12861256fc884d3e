"""Component registry and read-only probing."""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..context import HostContext

SUBPROCESS_TIMEOUT = 5

_logging = logging.getLogger(__name__)


class Component(Enum):
    XFCE = "xfce"
    TIGERVNC = "tigervnc"
    NOVNC = "novnc"
    JAVA = "java"
    ANDROID_STUDIO = "android-studio"
    CHROME = "chrome"
    VNC_CONFIG = "vnc-config"
    SSL = "ssl"
    VNC_SERVICE = "vnc-service"
    NOVNC_SERVICE = "novnc-service"
    CHINESE_INPUT = "chinese-input"
    CLIPBOARD = "clipboard"
    REDROID = "redroid"


class ComponentState(Enum):
    PRESENT = "present"
    MISSING = "missing"


@dataclass
class ComponentSpec:
    component: Component
    display_name: str
    probe: Callable[[HostContext], bool]
    dependencies: list[Component] = field(default_factory=list)
    optional: bool = False
    missing_hint: str = ""

    @property
    def name(self) -> str:
        return self.component.value


@dataclass
class InstallationState:
    """Probe snapshot: every probed component maps to exactly one state."""
    states: dict[Component, ComponentState]

    def __getitem__(self, component: Component) -> ComponentState:
        return self.states[component]

    def __contains__(self, component: Component) -> bool:
        return component in self.states

    @property
    def missing(self) -> list[Component]:
        return [c for c, s in self.states.items() if s == ComponentState.MISSING]

    @property
    def present(self) -> list[Component]:
        return [c for c, s in self.states.items() if s == ComponentState.PRESENT]

    def is_complete(self) -> bool:
        return not self.missing

    def is_empty(self) -> bool:
        return not self.present


def package_installed(package: str) -> bool:
    try:
        result = subprocess.run(
            ["dpkg-query", "-W", "-f=${Status}", package],
            capture_output=True,
            text=True,
            timeout=SUBPROCESS_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0 and "install ok installed" in result.stdout


def _binary_available(binary: str) -> bool:
    return shutil.which(binary) is not None


def _service_active(unit: str) -> bool:
    try:
        result = subprocess.run(
            ["systemctl", "is-active", "--quiet", unit],
            capture_output=True,
            timeout=SUBPROCESS_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0


def _container_running(name: str) -> bool:
    try:
        result = subprocess.run(
            ["docker", "inspect", "-f", "{{.State.Running}}", name],
            capture_output=True,
            text=True,
            timeout=SUBPROCESS_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


REDROID_CONTAINER = "redroid"

_BUILTIN_COMPONENTS = [
    ComponentSpec(
        component=Component.XFCE,
        display_name="XFCE desktop",
        probe=lambda ctx: package_installed("xfce4"),
        missing_hint="XFCE desktop is not installed",
    ),
    ComponentSpec(
        component=Component.TIGERVNC,
        display_name="TigerVNC",
        probe=lambda ctx: _binary_available("vncserver"),
        missing_hint="TigerVNC is not installed",
    ),
    ComponentSpec(
        component=Component.NOVNC,
        display_name="noVNC",
        probe=lambda ctx: package_installed("novnc"),
        missing_hint="noVNC is not installed",
    ),
    ComponentSpec(
        component=Component.JAVA,
        display_name="Java JDK",
        probe=lambda ctx: _binary_available("java"),
        missing_hint="Java JDK is not installed",
    ),
    ComponentSpec(
        component=Component.ANDROID_STUDIO,
        display_name="Android Studio",
        probe=lambda ctx: ctx.android_studio_dir.is_dir(),
        dependencies=[Component.JAVA],
        missing_hint="Android Studio is not installed",
    ),
    ComponentSpec(
        component=Component.CHROME,
        display_name="Google Chrome",
        probe=lambda ctx: _binary_available("google-chrome-stable"),
        missing_hint="Google Chrome is not installed",
    ),
    ComponentSpec(
        component=Component.VNC_CONFIG,
        display_name="VNC password",
        probe=lambda ctx: ctx.vnc_passwd_path.is_file(),
        dependencies=[Component.TIGERVNC],
        missing_hint="VNC password is not configured",
    ),
    ComponentSpec(
        component=Component.SSL,
        display_name="TLS certificate",
        probe=lambda ctx: ctx.pem_path.is_file(),
        dependencies=[Component.NOVNC],
        missing_hint="TLS certificate has not been generated",
    ),
    ComponentSpec(
        component=Component.VNC_SERVICE,
        display_name="VNC service",
        probe=lambda ctx: _service_active(ctx.vnc_unit),
        dependencies=[Component.VNC_CONFIG, Component.XFCE],
        missing_hint="VNC service is not running",
    ),
    ComponentSpec(
        component=Component.NOVNC_SERVICE,
        display_name="noVNC service",
        probe=lambda ctx: _service_active(ctx.novnc_unit),
        dependencies=[Component.SSL, Component.VNC_SERVICE],
        missing_hint="noVNC service is not running",
    ),
    ComponentSpec(
        component=Component.CHINESE_INPUT,
        display_name="Chinese input (fcitx5)",
        probe=lambda ctx: package_installed("fcitx5"),
        dependencies=[Component.XFCE],
        optional=True,
        missing_hint="Chinese input method is not installed",
    ),
    ComponentSpec(
        component=Component.CLIPBOARD,
        display_name="Clipboard sync (autocutsel)",
        probe=lambda ctx: _binary_available("autocutsel"),
        dependencies=[Component.TIGERVNC],
        optional=True,
        missing_hint="Clipboard sync is not installed",
    ),
    ComponentSpec(
        component=Component.REDROID,
        display_name="Redroid Android container",
        probe=lambda ctx: _container_running(REDROID_CONTAINER),
        optional=True,
        missing_hint="Redroid container is not running",
    ),
]


def get_all_components() -> dict[Component, ComponentSpec]:
    return {spec.component: spec for spec in _BUILTIN_COMPONENTS}


def get_component(component: Component) -> ComponentSpec:
    return get_all_components()[component]


def required_components() -> list[Component]:
    return [spec.component for spec in _BUILTIN_COMPONENTS if not spec.optional]


def optional_components() -> list[Component]:
    return [spec.component for spec in _BUILTIN_COMPONENTS if spec.optional]


def probe_components(
    ctx: HostContext, components: list[Component] | None = None
) -> InstallationState:
    """Classify each component as PRESENT or MISSING without touching the host.

    Defaults to the required set. A probe that raises is reported as MISSING.
    """
    specs = get_all_components()
    if components is None:
        components = required_components()

    states = {}
    for component in components:
        spec = specs[component]
        try:
            present = bool(spec.probe(ctx))
        except OSError as e:
            _logging.debug(f"Probe for {spec.name} failed: {e}")
            present = False
        states[component] = ComponentState.PRESENT if present else ComponentState.MISSING
        _logging.debug(f"Probe {spec.name}: {states[component].value}")

    return InstallationState(states=states)


def get_missing_components(
    ctx: HostContext, components: list[Component] | None = None
) -> list[Component]:
    return probe_components(ctx, components).missing


def has_any_installation(ctx: HostContext) -> bool:
    """Return True if any trace of a previous install exists."""
    if ctx.system_config_path.is_file():
        return True
    if ctx.android_studio_dir.is_dir():
        return True
    if (ctx.systemd_dir / ctx.novnc_unit).is_file():
        return True
    return any(path.is_file() for path in ctx.legacy_config_paths)


__all__ = [
    "Component",
    "ComponentState",
    "ComponentSpec",
    "InstallationState",
    "get_all_components",
    "get_component",
    "required_components",
    "optional_components",
    "probe_components",
    "package_installed",
    "get_missing_components",
    "has_any_installation",
    "REDROID_CONTAINER",
]
