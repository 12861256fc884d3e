"""Error types and formatting utilities for consistent error messages.

All user-facing errors should be rendered with these helpers.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Validation errors name the value and the rule: 'port must be ≥1024'
- Use present tense: 'must be', 'is required'
- Avoid emojis in error messages (keep them in progress displays only)
- Include actionable hints where helpful
"""


class StudioRemoteError(Exception):
    """Base class for all errors raised by studioremote."""


class ValidationError(StudioRemoteError):
    """Raised when operator input is rejected.

    Validation happens before any state change, so nothing needs undoing.
    """


class ConfigError(StudioRemoteError):
    """Raised when the configuration record cannot be read or parsed."""


class ActionError(StudioRemoteError):
    """Raised when an installer or service action fails.

    Aborts the remaining plan for the current run. Components applied
    before the failure are left in place; re-running repairs the rest.
    """

    def __init__(self, component: str, message: str, output: str = ""):
        super().__init__(f"{component}: {message}")
        self.component = component
        self.output = output


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Examples:
        >>> format_error("port must be ≥1024")
        'Error: port must be ≥1024'
    """
    return f"Error: {message}"


def format_suggestion(message: str, suggestion: str) -> str:
    """Format an error message with a helpful suggestion.

    Examples:
        >>> format_suggestion("novnc failed", "re-run studioremote to repair")
        'Error: novnc failed. Hint: re-run studioremote to repair'
    """
    return f"{format_error(message)}. Hint: {suggestion}"


__all__ = [
    "StudioRemoteError",
    "ValidationError",
    "ConfigError",
    "ActionError",
    "format_error",
    "format_suggestion",
]
