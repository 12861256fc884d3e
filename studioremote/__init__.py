"""Browser-accessible Android Studio remote desktop installer."""

import logging

__version__ = "1.2.0"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(debug: bool = False) -> None:
    """Configure root logging on stderr; DEBUG when ``debug`` is set."""
    level = logging.DEBUG if debug else logging.WARNING
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)


__all__ = ["__version__", "setup_logging"]
