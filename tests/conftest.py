"""Pytest configuration for test isolation.

The package reads a handful of environment variables at call time (model
override, worker count, business details, log level, database URL) and the
CLI configures the package logger once per process. Both would leak between
tests, so every test starts from a scrubbed environment and an unconfigured
``invoice_builder`` logger.
"""

from __future__ import annotations

import pytest

import invoice_builder.logging_setup as logging_setup

_SCRUBBED_ENV = (
    "OPENAI_API_KEY",
    "INVOICE_BUILDER_MODEL",
    "INVOICE_BUILDER_LOG_LEVEL",
    "INVOICE_BUILDER_MAX_WORKERS",
    "DATABASE_URL",
    "INVOICE_FROM_NAME",
    "INVOICE_FROM_GST",
    "INVOICE_FROM_BANK",
    "INVOICE_FROM_EMAIL",
    "INVOICE_FROM_ADDRESS",
    "INVOICE_FROM_PHONE",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop app env vars and run from a temp dir so no stray ``.env`` is loaded."""

    for name in _SCRUBBED_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo ``configure_logging`` so caplog sees records in every test."""

    yield
    logging_setup.reset_logging()
