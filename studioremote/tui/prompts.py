"""Prompt helpers: questionary when a TTY is available, click otherwise."""

import sys

import click
import questionary
from prompt_toolkit.styles import Style

# Menu entries that leave the current screen are dimmed
MENU_STYLE = Style(
    [
        ("pointer", "fg:ansicyan bold"),
        ("highlighted", "fg:ansicyan bold"),
        ("leave", "fg:ansibrightblack"),
    ]
)

LEAVE_KEY = "0"


def _interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


class Prompter:
    """Operator input for the wizard and menus.

    Tests substitute a scripted implementation with the same methods.
    """

    def choose(self, message: str, choices: list[tuple[str, str]]) -> str | None:
        """Pick one of ``choices`` (key, label); returns the key or None."""
        if _interactive():
            options = []
            for key, label in choices:
                title = f"{key}) {label}"
                if key == LEAVE_KEY:
                    options.append(
                        questionary.Choice(title=[("class:leave", title)], value=key)
                    )
                else:
                    options.append(questionary.Choice(title=title, value=key))
            try:
                return questionary.select(message, choices=options, style=MENU_STYLE).ask()
            except KeyboardInterrupt:
                return None

        for key, label in choices:
            click.echo(f"  {key}) {label}")
        keys = [key for key, _ in choices]
        return click.prompt(
            message,
            type=click.Choice(keys),
            show_choices=False,
        )

    def text(self, message: str, default: str = "") -> str:
        return click.prompt(message, default=default, show_default=False)

    def confirm(self, message: str, default: bool = False) -> bool:
        return click.confirm(message, default=default)

    def pause(self) -> None:
        if _interactive():
            click.pause("Press any key to continue...")


__all__ = ["Prompter", "MENU_STYLE"]
