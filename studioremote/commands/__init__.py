"""CLI entry point for studioremote."""

import asyncio
import logging
import sys

import click

from studioremote import setup_logging
from studioremote.commands.wizard import EXIT_FAILURE, EXIT_SUCCESS, run_install_wizard
from studioremote.config import delete_config
from studioremote.context import HostContext
from studioremote.errors import StudioRemoteError, format_error
from studioremote.installer import has_any_installation, probe_components, render_plan
from studioremote.menu import MenuController, report_outcome
from studioremote.operations import repair
from studioremote.tui import (
    Prompter,
    display_installation_state,
    format_missing,
    print_error,
    print_info,
    print_warning,
)

_logging = logging.getLogger(__name__)


def _resume_choices() -> list[tuple[str, str]]:
    return [
        ("1", "Resume install / repair"),
        ("2", "Reinstall from scratch"),
        ("3", "Open management menu"),
        ("0", "Exit"),
    ]


def run_partial(ctx: HostContext, prompter: Prompter) -> int:
    """Handle a host where some, but not all, components are present."""
    state = probe_components(ctx)
    click.secho("Incomplete installation detected", fg="yellow", bold=True)
    click.echo("")
    display_installation_state(state)
    click.echo("")
    print_warning(f"Missing components: {format_missing(state)}")

    choice = prompter.choose("Select an option", _resume_choices())

    if choice == "1":
        def confirm(plan) -> bool:
            click.echo(render_plan(plan))
            return prompter.confirm("Repair now?", default=True)

        outcome = asyncio.run(
            repair(
                ctx,
                confirm=confirm,
                on_step=lambda step: print_info(f"Repairing {step.display_name}..."),
            )
        )
        report_outcome(outcome)
        if probe_components(ctx).is_complete():
            MenuController(ctx, prompter).run()
        return EXIT_SUCCESS
    if choice == "2":
        delete_config(ctx)
        return run_install_wizard(ctx, prompter)
    if choice == "3":
        MenuController(ctx, prompter).run()
    return EXIT_SUCCESS


def dispatch(ctx: HostContext, prompter: Prompter) -> int:
    """Pick wizard, resume prompt or management menu from the host state."""
    if not has_any_installation(ctx):
        if ctx.is_root:
            print_error(format_error("run the first install as a regular user"))
            print_info("Switch to a regular user and run studioremote again")
            return EXIT_FAILURE
        return run_install_wizard(ctx, prompter)

    if probe_components(ctx).is_complete():
        MenuController(ctx, prompter).run()
        return EXIT_SUCCESS

    return run_partial(ctx, prompter)


@click.command()
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
def cli(debug: bool):
    """Install and manage a browser-accessible Android Studio desktop."""
    setup_logging(debug)
    ctx = HostContext.from_environment()
    if ctx.is_root:
        print_warning("Running as root")
        print_info("A regular user is recommended for installing; root may manage")

    try:
        exit_code = dispatch(ctx, Prompter())
    except StudioRemoteError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_FAILURE)
    except (KeyboardInterrupt, click.Abort):
        click.echo("\nInterrupted.", err=True)
        sys.exit(EXIT_FAILURE)
    sys.exit(exit_code)


__all__ = ["cli", "dispatch", "run_partial"]


if __name__ == "__main__":
    cli()
