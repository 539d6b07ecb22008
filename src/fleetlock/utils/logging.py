"""Logging helpers for the fleetlock namespace.

Every module logs through a child of the ``fleetlock`` logger; the handler
lives on that one parent, so a CLI can raise verbosity for the whole package
with a single ``configure`` call.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from rich.logging import RichHandler


ROOT_LOGGER = "fleetlock"


def _build_handler(level: int, rich: bool) -> logging.Handler:
    if rich:
        # lock keys may contain brackets, keep rich markup off
        handler: logging.Handler = RichHandler(
            level=level,
            markup=False,
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(name)s %(levelname)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    return handler


def configure(level: int = logging.INFO, *, rich: bool = True) -> logging.Logger:
    """Install the package handler, or re-level it when already installed."""
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    if root.handlers:
        for handler in root.handlers:
            handler.setLevel(level)
        return root
    root.addHandler(_build_handler(level, rich))
    root.propagate = False
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``name`` under the fleetlock namespace, configuring defaults on first use."""
    if not logging.getLogger(ROOT_LOGGER).handlers:
        configure()
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
