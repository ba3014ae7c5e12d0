"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(levelname)s: %(message)s"

logger = logging.getLogger("multi_repo_git")


def setup_logging(*, verbose: bool = False) -> None:
    """Send diagnostics to stderr; DEBUG with --verbose, WARNING otherwise.

    Replaces the handler from any earlier call so it always writes to the
    current sys.stderr.
    """
    for handler in list(logger.handlers):
        if getattr(handler, "_multi_repo_git", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._multi_repo_git = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
