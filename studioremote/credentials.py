"""Port and password generation and validation."""

import random
import secrets
import socket
import string

from .config import MAX_PORT, MIN_PASSWORD_LENGTH, MIN_PORT
from .errors import ValidationError

RANDOM_PORT_RANGE = (10000, 60000)
RANDOM_PASSWORD_LENGTH = 16
PASSWORD_ALPHABET = string.ascii_letters + string.digits


def is_port_available(port: int) -> bool:
    """Return True if nothing is listening on ``port``."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind(("", port))
        except OSError:
            return False
    return True


def generate_random_port(max_attempts: int = 100) -> int:
    """Pick an unbound port in [10000, 60000)."""
    low, high = RANDOM_PORT_RANGE
    for _ in range(max_attempts):
        port = random.randrange(low, high)
        if is_port_available(port):
            return port
    raise RuntimeError(f"No free port found in {low}-{high} after {max_attempts} attempts")


def generate_random_password(length: int = RANDOM_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def validate_port(value: str | int) -> int:
    """Validate a listening port supplied by the operator.

    Raises:
        ValidationError: If the value is not numeric, out of range or bound.
    """
    text = str(value).strip()
    if not (text.isascii() and text.isdigit()):
        raise ValidationError(f"port '{text}' must be a number")
    port = int(text)
    if port < MIN_PORT:
        raise ValidationError(f"port must be ≥{MIN_PORT}")
    if port > MAX_PORT:
        raise ValidationError(f"port must be ≤{MAX_PORT}")
    if not is_port_available(port):
        raise ValidationError(f"port {port} is already in use")
    return port


def validate_password(value: str) -> str:
    """Validate a VNC password supplied by the operator."""
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if "\n" in value or "\r" in value:
        raise ValidationError("password must be a single line")
    return value


__all__ = [
    "is_port_available",
    "generate_random_port",
    "generate_random_password",
    "validate_port",
    "validate_password",
]
