"""Root logger configuration for the CLI."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger; unknown level names fall back to INFO."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logging.basicConfig(format=LOG_FORMAT, force=True)
    logging.getLogger().setLevel(numeric)
    # aiohttp is chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
