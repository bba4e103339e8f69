"""Shared fixtures for the gametest test suite."""

import sys
from pathlib import Path

import pytest

from gametest.config import DiscoveryConfig, GameTestConfig
from gametest.core.discovery import TestDiscovery
from gametest.core.fixtures import DefaultFixtureProvider
from gametest.core.scheduler import Scheduler

TESTS_DIR = Path(__file__).parent

if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))


@pytest.fixture
def samples_config() -> GameTestConfig:
    """Configuration that discovers the sample tests."""
    return GameTestConfig(discovery=DiscoveryConfig(modules=["samples"], paths=[str(TESTS_DIR)]))


@pytest.fixture
def discovered(samples_config):
    """Discovery result over the sample tests."""
    return TestDiscovery(samples_config, TESTS_DIR).discover()


@pytest.fixture
def scheduler() -> Scheduler:
    """Scheduler with an active host and no tests."""
    return Scheduler(fixtures=DefaultFixtureProvider(), host_active=True)
