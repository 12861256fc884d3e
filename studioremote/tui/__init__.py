"""Terminal UI helpers for the wizard and management menu.

- questionary for rich interactive prompts (when a TTY is available)
- click as fallback for headless scenarios and tests
"""

from .prompts import Prompter
from .status import (
    display_installation_state,
    format_component_line,
    format_missing,
    format_service_state,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "Prompter",
    "display_installation_state",
    "format_component_line",
    "format_missing",
    "format_service_state",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
