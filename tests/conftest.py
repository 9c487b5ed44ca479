"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import logging

import pytest
from pathstate.core.context import ReconcilerContext
from pathstate.core.reconciler import PathReconciler


@pytest.fixture
def test_logger() -> logging.Logger:
    """Logger used as log sink, captured by caplog."""
    log = logging.getLogger("pathstate.tests")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def context(test_logger: logging.Logger) -> ReconcilerContext:
    """Non-simulating context logging to the test logger."""
    return ReconcilerContext(log=test_logger)


@pytest.fixture
def reconciler(context: ReconcilerContext) -> PathReconciler:
    """Reconciler acting on the real filesystem."""
    return PathReconciler(context)


@pytest.fixture
def simulating_reconciler(test_logger: logging.Logger) -> PathReconciler:
    """Reconciler in simulate (dry-run) mode."""
    return PathReconciler(ReconcilerContext(log=test_logger, simulate_only=True))
