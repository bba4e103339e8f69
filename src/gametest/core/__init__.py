"""Core scheduling and grouping functionality."""

from gametest.core.discovery import TestDiscovery, ignore, suite, test
from gametest.core.errors import (
    AssertionFailure,
    GameTestError,
    GroupContentError,
    HookNotFound,
    MissingFixtureComponent,
    NotRunnable,
    SetupReturnTypeMismatch,
)
from gametest.core.fixtures import DefaultFixtureProvider, Fixture, FixtureProvider
from gametest.core.groups import Group, GroupTree, TreeSummary, build_tree
from gametest.core.models import Descriptor, FailureSignal, Result
from gametest.core.queue import FinishedEntry, TestQueue
from gametest.core.scheduler import IngestResult, Scheduler
from gametest.core.signals import FailureChannel, report_failure
from gametest.core.unit import TestUnit

__all__ = [
    "AssertionFailure",
    "DefaultFixtureProvider",
    "Descriptor",
    "FailureChannel",
    "FailureSignal",
    "Fixture",
    "FixtureProvider",
    "FinishedEntry",
    "GameTestError",
    "Group",
    "GroupContentError",
    "GroupTree",
    "HookNotFound",
    "IngestResult",
    "MissingFixtureComponent",
    "NotRunnable",
    "Result",
    "Scheduler",
    "SetupReturnTypeMismatch",
    "TestDiscovery",
    "TestQueue",
    "TestUnit",
    "TreeSummary",
    "build_tree",
    "ignore",
    "report_failure",
    "suite",
    "test",
]
