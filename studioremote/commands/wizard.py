"""First-install wizard."""

import asyncio
import logging

import click

from studioremote.context import HostContext
from studioremote.credentials import (
    generate_random_password,
    generate_random_port,
    validate_password,
    validate_port,
)
from studioremote.errors import (
    StudioRemoteError,
    ValidationError,
    format_error,
    format_suggestion,
)
from studioremote.installer import failed_step
from studioremote.operations import access_url, full_install, get_public_ip, new_config
from studioremote.tui import Prompter, print_error, print_info, print_success

_logging = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1

CLOUD_CONSOLES = [
    ("Alibaba Cloud", "Security group → Inbound → add TCP port"),
    ("Tencent Cloud", "Security group → Inbound rules → add TCP port"),
    ("Huawei Cloud", "Security group → Inbound rules → add TCP port"),
    ("AWS", "Security Groups → Inbound → TCP"),
]


def _ask_port(prompter: Prompter) -> int:
    default_port = generate_random_port()
    value = prompter.text(
        f"noVNC port [press Enter for random port {default_port}]"
    ).strip()
    if not value:
        print_info(f"Using random port: {default_port}")
        return default_port
    return validate_port(value)


def _ask_password(prompter: Prompter) -> str:
    default_password = generate_random_password()
    value = prompter.text(
        f"VNC password [press Enter for random password {default_password}]"
    ).strip()
    if not value:
        print_info(f"Using random password: {default_password}")
        return default_password
    return validate_password(value)


def print_access_info(host: str, port: int, password: str, url: str) -> None:
    click.echo("")
    click.echo("=" * 60)
    click.secho("✅ Installation complete!", fg="green", bold=True)
    click.echo("=" * 60)
    click.echo("")
    click.secho(
        f"⚠️  Open TCP port {port} in your cloud provider's console:", fg="red"
    )
    for provider, path in CLOUD_CONSOLES:
        click.echo(f"  {provider + ':':<15} {path} {port}")
    click.echo("")
    click.echo(f"  URL:       {url}")
    click.echo(f"  Password:  {password}")
    click.echo("")
    click.secho(
        "💡 The browser warns about the self-signed certificate on first visit; "
        "choose Advanced → Proceed.",
        fg="yellow",
    )
    click.secho("💡 Run studioremote again to open the management menu.", fg="yellow")


def run_install_wizard(ctx: HostContext, prompter: Prompter) -> int:
    """Prompt for port and password, then install everything.

    Returns the process exit code.
    """
    click.echo("")
    click.secho("Android Studio Remote Desktop Installer", fg="cyan", bold=True)
    click.echo("")

    try:
        port = _ask_port(prompter)
        password = _ask_password(prompter)
    except ValidationError as e:
        print_error(format_error(str(e)))
        return EXIT_FAILURE

    click.echo("")
    click.echo(f"  Port:     {port}")
    click.echo(f"  Password: {password}")
    click.echo("")
    if not prompter.confirm("Start installation?", default=True):
        click.echo("Installation cancelled.")
        return EXIT_SUCCESS

    record = new_config(ctx, port=port, password=password)
    try:
        outcome = asyncio.run(
            full_install(
                ctx,
                record,
                on_step=lambda step: print_info(f"Installing {step.display_name}..."),
            )
        )
    except StudioRemoteError as e:
        print_error(
            format_suggestion(str(e), "run studioremote again to resume the install")
        )
        return EXIT_FAILURE

    failure = failed_step(outcome.results)
    if failure is not None:
        print_error(
            format_suggestion(
                f"{failure.component.value} failed: {failure.output}",
                "run studioremote again to resume the install",
            )
        )
        return EXIT_FAILURE

    host = asyncio.run(get_public_ip())
    print_success("All components installed")
    print_access_info(host, record.novnc_port, record.vnc_password, access_url(host, record))
    return EXIT_SUCCESS
