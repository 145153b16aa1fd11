"""Logging setup for scripts and services using the clinic booking package."""

import logging

from rich.logging import RichHandler


def configure_logging(level: int | str = logging.INFO) -> None:
    """Send clinic_booking logs to the console through rich."""
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
