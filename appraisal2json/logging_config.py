"""Logging setup for CLI entry points.

Call ``configure_logging()`` once; it does nothing if the root logger already
has handlers. Logs go to stderr so JSON written to stdout stays clean.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Attach a stderr handler to the root logger."""
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
