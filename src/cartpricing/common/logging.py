"""Shared logging helpers for cartpricing."""

from __future__ import annotations

import logging

# HTTP stack loggers announce every request at INFO; a fetch cycle fans out
# one request per node, so they only speak up when debugging.
NOISY_LOGGERS = ("httpx", "httpcore", "hishel")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger for CLI output.

    ``level`` applies to the engine loggers. The HTTP stack stays at WARNING
    unless ``level`` is DEBUG. Pass ``force=True`` to reconfigure during tests.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    http_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
