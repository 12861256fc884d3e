"""Management menu as an explicit state machine.

The controller only maps (state, choice) to an action and a next state. It
talks to the operator through a Prompter and to the host through
``operations``, so each transition can be exercised without a terminal.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import click

from . import operations, services
from .context import HostContext
from .errors import StudioRemoteError, format_error, format_suggestion
from .installer import (
    Component,
    ComponentState,
    get_component,
    optional_components,
    probe_components,
    render_plan,
)
from .tui import (
    Prompter,
    format_service_state,
    print_error,
    print_info,
    print_success,
    print_warning,
)

UNINSTALL_CONFIRMATION = "YES"

_logging = logging.getLogger(__name__)


class MenuState(Enum):
    MAIN = "main"
    APPS = "apps"
    EXIT = "exit"


@dataclass
class MenuItem:
    key: str
    label: str
    action: Callable[[], MenuState | None] | None
    next_state: MenuState

    def choice(self) -> tuple[str, str]:
        return self.key, self.label


class MenuController:
    def __init__(self, ctx: HostContext, prompter: Prompter | None = None):
        self.ctx = ctx
        self.prompter = prompter or Prompter()
        self.public_ip: str | None = None

    def items(self, state: MenuState) -> list[MenuItem]:
        if state == MenuState.MAIN:
            return [
                MenuItem("1", "Restart all services", self.restart, MenuState.MAIN),
                MenuItem("2", "Stop all services", self.stop, MenuState.MAIN),
                MenuItem("3", "Start all services", self.start, MenuState.MAIN),
                MenuItem("4", "Change VNC password", self.change_password, MenuState.MAIN),
                MenuItem("5", "Change port", self.change_port, MenuState.MAIN),
                MenuItem("6", "Show recent logs", self.show_logs, MenuState.MAIN),
                MenuItem("7", "Check and repair", self.repair, MenuState.MAIN),
                MenuItem("8", "Uninstall", self.uninstall, MenuState.MAIN),
                MenuItem("9", "Optional apps", None, MenuState.APPS),
                MenuItem("0", "Exit", None, MenuState.EXIT),
            ]
        if state == MenuState.APPS:
            state_map = probe_components(self.ctx, optional_components()).states
            items = []
            for i, component in enumerate(optional_components(), 1):
                spec = get_component(component)
                marker = "installed" if state_map[component] == ComponentState.PRESENT else "not installed"
                items.append(
                    MenuItem(
                        str(i),
                        f"{spec.display_name} [{marker}]",
                        self._addon_action(component),
                        MenuState.APPS,
                    )
                )
            items.append(MenuItem("0", "Back", None, MenuState.MAIN))
            return items
        return []

    def step(self, state: MenuState, choice: str | None) -> MenuState:
        """Run the action behind ``choice`` and return the next state.

        Unknown choices keep the current state. Action failures are reported
        and also keep the current state.
        """
        if choice is None:
            return MenuState.EXIT if state == MenuState.MAIN else MenuState.MAIN

        item = next((i for i in self.items(state) if i.key == choice), None)
        if item is None:
            print_warning("Invalid option")
            return state

        if item.action is None:
            return item.next_state

        try:
            override = item.action()
        except StudioRemoteError as e:
            _logging.error(f"Menu action '{item.label}' failed: {e}")
            print_error(format_error(str(e)))
            return state
        return override or item.next_state

    def run(self, state: MenuState = MenuState.MAIN) -> None:
        while state != MenuState.EXIT:
            if state == MenuState.MAIN:
                self.show_header()
                title = "Select an action"
            else:
                title = "Select an app to install"
            items = self.items(state)
            choice = self.prompter.choose(title, [item.choice() for item in items])
            previous = state
            state = self.step(state, choice)
            if state == previous and choice is not None:
                self.prompter.pause()
        print_info("Goodbye!")

    def show_header(self) -> None:
        record = operations.require_config(self.ctx)
        if self.public_ip is None:
            self.public_ip = asyncio.run(operations.get_public_ip())
        states = asyncio.run(operations.service_states(self.ctx))

        click.echo("")
        click.secho("Android Studio Remote Desktop - Management", fg="cyan", bold=True)
        click.echo("")
        click.echo(f"  URL:       {operations.access_url(self.public_ip, record)}")
        click.echo(f"  Password:  {record.vnc_password}")
        click.echo("")
        click.echo(f"  VNC service:   {format_service_state(states[self.ctx.vnc_unit])}")
        click.echo(f"  noVNC service: {format_service_state(states[self.ctx.novnc_unit])}")
        click.echo("")

    def restart(self) -> None:
        asyncio.run(services.restart_services(self.ctx))
        print_success("Services restarted")

    def stop(self) -> None:
        asyncio.run(services.stop_services(self.ctx))
        print_success("Services stopped")

    def start(self) -> None:
        asyncio.run(services.start_services(self.ctx))
        print_success("Services started")

    def change_password(self) -> None:
        value = self.prompter.text("New VNC password (at least 6 characters)")
        record = asyncio.run(operations.change_password(self.ctx, value))
        print_success(f"Password changed to: {record.vnc_password}")

    def change_port(self) -> None:
        current = operations.require_config(self.ctx)
        click.echo(f"Current port: {current.novnc_port}")
        value = self.prompter.text("New port (1024-65535)")
        record = asyncio.run(operations.change_port(self.ctx, value))
        print_success(f"Port changed to: {record.novnc_port}")
        print_warning(
            f"Remember to open port {record.novnc_port} in your cloud provider's security group"
        )

    def show_logs(self) -> None:
        print_info("Last 20 log lines:")
        click.echo(asyncio.run(services.tail_logs(self.ctx)))

    def repair(self) -> None:
        def confirm(plan) -> bool:
            click.echo(render_plan(plan))
            return self.prompter.confirm("Repair now?", default=True)

        print_info("Checking installation...")
        outcome = asyncio.run(
            operations.repair(
                self.ctx,
                confirm=confirm,
                on_step=lambda step: print_info(f"Repairing {step.display_name}..."),
            )
        )
        report_outcome(outcome)

    def uninstall(self) -> MenuState | None:
        print_warning("This removes the whole remote desktop environment!")
        answer = self.prompter.text(f"Type '{UNINSTALL_CONFIRMATION}' to confirm")
        if answer != UNINSTALL_CONFIRMATION:
            print_info("Uninstall cancelled")
            return None
        asyncio.run(operations.uninstall(self.ctx))
        print_success("Uninstall complete")
        return MenuState.EXIT

    def _addon_action(self, component: Component) -> Callable[[], None]:
        def action() -> None:
            spec = get_component(component)
            print_info(f"Installing {spec.display_name}...")
            outcome = asyncio.run(operations.install_addon(self.ctx, component))
            report_outcome(outcome)

        return action


def report_outcome(outcome: operations.RepairOutcome) -> None:
    if outcome.healthy:
        print_success("All components are healthy!")
        return
    if not outcome.results:
        print_info("No changes made")
        return
    for result in outcome.results:
        if result.status == "failed":
            print_error(
                format_suggestion(
                    f"{result.component.value} failed: {result.output}",
                    "fix the problem and run the repair again",
                )
            )
            return
    print_success("Repair complete!")


__all__ = ["MenuState", "MenuItem", "MenuController", "report_outcome"]
