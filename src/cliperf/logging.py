"""Logging for cliperf.

Every module logs through a child of the ``cliperf`` logger obtained with
:func:`get_logger`.  :func:`setup_logging` runs once per CLI command and
replaces whatever handlers an earlier call installed, so invoking the CLI
repeatedly in one process never duplicates output.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

ROOT_NAME = "cliperf"
CONSOLE_FORMAT = "%(levelname)-8s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_started = time.monotonic()


def console_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """DEBUG for ``--verbose``, WARNING for ``--quiet``, else INFO.  Verbose wins."""
    if verbose:
        return logging.DEBUG
    return logging.WARNING if quiet else logging.INFO


def _configured(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Install the console handler and, optionally, a DEBUG file handler.

    The file log records everything, including per-stage selection counts,
    so a run can be audited afterwards whatever the console level was.

    Returns:
        The ``cliperf`` root logger.
    """
    root = logging.getLogger(ROOT_NAME)
    root.setLevel(logging.DEBUG)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    root.addHandler(
        _configured(
            logging.StreamHandler(),
            console_level(verbose=verbose, quiet=quiet),
            CONSOLE_FORMAT,
        )
    )
    if log_file is not None:
        root.addHandler(
            _configured(
                logging.FileHandler(log_file, encoding="utf-8"),
                logging.DEBUG,
                FILE_FORMAT,
            )
        )
    return root


def get_logger(name: str) -> logging.Logger:
    """``cliperf.<name>``."""
    return logging.getLogger(f"{ROOT_NAME}.{name}")


def elapsed() -> str:
    """Seconds since cliperf was imported, formatted as ``[12.345s]``."""
    return f"[{time.monotonic() - _started:.3f}s]"
