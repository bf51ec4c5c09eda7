# apiexpect/testing.py
"""Helpers for running suites inside a test framework such as pytest."""

from __future__ import annotations

import logging
from typing import Optional

from apiexpect.suite import Suite
from apiexpect.types import SuiteResult


def assert_suite_passes(suite: Suite, logger: Optional[logging.Logger] = None) -> SuiteResult:
    """
    Run every scenario, then fail with the full report if anything failed.

    All scenarios always run before the assertion is raised, so one test run
    shows every failing step.
    """
    if logger is not None:
        suite.with_logger(logger)
    result = suite.run()
    err = result.error()
    if err is not None:
        raise AssertionError(f"suite failures:\n{err}")
    return result
