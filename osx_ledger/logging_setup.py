"""Root logger configuration for the CLI."""
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger. Unknown level names fall back to INFO."""
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logging.basicConfig(level=numeric, format=_FORMAT, force=True)
    logging.getLogger().setLevel(numeric)

    # Third-party HTTP chatter stays out of ledger logs
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
