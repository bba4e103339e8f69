"""
gametest - frame-stepped test orchestration for interactive hosts.

This package provides tools to:
- Discover decorated test functions and suite classes
- Organize tests into a selectable, lockable group tree
- Run selected tests one per host frame, including multi-step generator tests
- Pause on failure, skip, stop and resume runs
"""

from gametest.core.discovery import ignore, suite, test
from gametest.core.signals import report_failure

__version__ = "0.1.0"
__author__ = "gametest Team"

__all__ = ["ignore", "report_failure", "suite", "test"]
