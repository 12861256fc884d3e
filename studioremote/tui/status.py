"""Status display functions."""

import click

from ..installer import ComponentState, InstallationState, get_all_components
from ..services import ServiceState


def format_component_line(name: str, state: ComponentState, width: int = 28) -> str:
    icon = "✅" if state == ComponentState.PRESENT else "❌"
    return f"{icon} {name.ljust(width)} {state.value}"


def display_installation_state(state: InstallationState) -> None:
    """Print one line per probed component, missing ones in red."""
    specs = get_all_components()
    for component, component_state in state.states.items():
        line = format_component_line(specs[component].display_name, component_state)
        color = "green" if component_state == ComponentState.PRESENT else "red"
        click.secho(line, fg=color)


def format_missing(state: InstallationState) -> str:
    return ", ".join(component.value for component in state.missing)


def format_service_state(state: ServiceState) -> str:
    return {
        ServiceState.RUNNING: click.style("running", fg="green"),
        ServiceState.STOPPED: click.style("stopped", fg="red"),
        ServiceState.NOT_INSTALLED: click.style("not installed", fg="yellow"),
    }[state]


def print_info(message: str) -> None:
    click.echo(f"{click.style('[INFO]', fg='blue')} {message}")


def print_success(message: str) -> None:
    click.echo(f"{click.style('[✓]', fg='green')} {message}")


def print_warning(message: str) -> None:
    click.echo(f"{click.style('[!]', fg='yellow')} {message}")


def print_error(message: str) -> None:
    click.echo(f"{click.style('[✗]', fg='red')} {message}", err=True)
