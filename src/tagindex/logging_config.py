"""Logging configuration for tagindex."""

from __future__ import annotations

import logging
import sys


def enable_debug_mode() -> None:
    """Enable debug-level logging for tagindex to stderr."""
    pkg_logger = logging.getLogger("tagindex")
    pkg_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(
        isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
        for h in pkg_logger.handlers
    ):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S")
        )
        pkg_logger.addHandler(handler)

    for name in ("botocore", "boto3"):
        logging.getLogger(name).setLevel(logging.INFO)
