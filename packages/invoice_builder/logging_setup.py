"""Logging for the ``invoice_builder`` package.

Library modules only ever do::

    _logger = get_logger("invoice_builder.<module>")

and emit short ``event:key=value`` messages. Handlers belong to the
entrypoint: the CLI calls :func:`configure_logging` once at startup. Until
then the package logger carries a ``NullHandler`` and stays silent.

:func:`log_latency` wraps a block and logs its wall time in milliseconds, the
one timing idiom the collaborators share.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO

PACKAGE_LOGGER = "invoice_builder"
LEVEL_ENV = "INVOICE_BUILDER_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured = False


def resolve_level(level: int | str | None) -> int:
    """Map an int, a level name/number string or ``None`` (env, then INFO) to an int."""

    if level is None:
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    text = level.strip().upper()
    if text.isdigit():
        return int(text)
    named = logging.getLevelNamesMapping().get(text)
    return named if named is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Attach one ``StreamHandler`` to the package logger; later calls are no-ops.

    ``stream`` defaults to the ``sys.stderr`` current at call time.
    """

    global _configured
    if _configured:
        return

    pkg = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in pkg.handlers if isinstance(h, logging.NullHandler)]:
        pkg.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    pkg.addHandler(handler)
    pkg.setLevel(resolved)
    pkg.propagate = False
    _configured = True


def reset_logging() -> None:
    """Detach all package handlers and forget prior configuration."""

    global _configured
    pkg = logging.getLogger(PACKAGE_LOGGER)
    for h in list(pkg.handlers):
        pkg.removeHandler(h)
    pkg.setLevel(logging.NOTSET)
    pkg.propagate = True
    _configured = False


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not _configured and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


@contextmanager
def log_latency(logger: logging.Logger, event: str, **fields: object) -> Iterator[dict[str, object]]:
    """Log ``<event> k=v ... latency_ms=N`` at INFO when the block succeeds.

    The yielded dict may be updated inside the block to add fields (e.g. a
    result count known only at the end). Nothing is logged on error.
    """

    extra: dict[str, object] = dict(fields)
    t0 = time.perf_counter()
    yield extra
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    parts = " ".join(f"{k}={v}" for k, v in extra.items())
    logger.info("%s %slatency_ms=%.2f", event, f"{parts} " if parts else "", elapsed_ms)


__all__ = [
    "LEVEL_ENV",
    "PACKAGE_LOGGER",
    "configure_logging",
    "get_logger",
    "log_latency",
    "reset_logging",
    "resolve_level",
]
