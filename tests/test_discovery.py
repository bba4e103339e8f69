"""Tests for test discovery."""

import inspect

from gametest.config import DiscoveryConfig, GameTestConfig
from gametest.core.discovery import (
    IGNORE_MARKER,
    TEST_MARKER,
    DiscoveredTest,
    TestDiscovery,
    TestOptions,
    ignore,
    suite,
    test,
)
from gametest.core.models import Result
from gametest.core.scheduler import Scheduler

SAMPLE_PATHS = [
    "samples/character/movement",
    "samples/character/movement_continuous",
    "samples/examples/fails",
    "samples/examples/passes",
    "samples/examples/reports_failure",
    "samples/examples/set_up_tear_down",
    "samples/physics/Gravity/at_rest",
    "samples/physics/Gravity/falls",
]


class TestDecorators:
    """Tests for the marking decorators."""

    def test_bare_test(self):
        """Test that @test records default options."""

        @test
        def body(fixture):
            pass

        options = getattr(body, TEST_MARKER)
        assert isinstance(options, TestOptions)
        assert options.pause_on_fail is False
        assert options.set_up is None

    def test_test_with_options(self):
        """Test that @test(...) records its options."""

        @test(name="renamed", set_up="make", pause_on_fail=True)
        def body(fixture):
            pass

        options = getattr(body, TEST_MARKER)
        assert options.name == "renamed"
        assert options.set_up == "make"
        assert options.pause_on_fail is True

    def test_ignore(self):
        """Test that @ignore marks the object."""

        @ignore
        def body(fixture):
            pass

        assert getattr(body, IGNORE_MARKER) is True

    def test_suite_returns_class(self):
        """Test that @suite leaves the class usable."""

        @suite(pause_on_fail=True)
        class Sample:
            pass

        assert inspect.isclass(Sample)
        assert Sample() is not None


class TestSampleDiscovery:
    """Tests for discovering the sample package."""

    def test_discovery_succeeds(self, discovered):
        """Test that every sample module is imported without errors."""
        assert discovered.success
        assert discovered.error is None
        assert discovered.total_count == len(discovered.tests)

    def test_paths(self, discovered):
        """Test the discovered paths."""
        assert sorted(t.path for t in discovered.tests) == SAMPLE_PATHS

    def test_ignored_not_discovered(self, discovered):
        """Test that ignored functions and suite methods are hidden."""
        names = {t.name for t in discovered.tests}
        assert "ignored" not in names
        assert "drifts" not in names
        assert "_integrate" not in names

    def test_imported_names_not_collected(self, discovered):
        """Test that objects imported into a module are not its tests."""
        assert not any(t.function_name == "test" for t in discovered.tests)
        assert not any(t.name == "make_parented" for t in discovered.tests)

    def test_name_override(self, discovered):
        """Test that a custom name replaces the method name in the path."""
        at_rest = next(t for t in discovered.tests if t.name == "at_rest")
        assert at_rest.function_name == "starts_at_rest"
        assert at_rest.path == "samples/physics/Gravity/at_rest"

    def test_origin(self, discovered):
        """Test that every test records where it was defined."""
        passes = next(t for t in discovered.tests if t.name == "passes")
        assert passes.origin.rsplit(":", 1)[1].isdigit()
        assert "examples.py" in passes.origin
        assert passes.descriptor.origin == passes.origin

    def test_full_name(self, discovered):
        """Test the display name used in listings."""
        movement = next(t for t in discovered.tests if t.name == "movement")
        assert movement.full_name == "samples.character::Character::movement"

    def test_function_test(self, discovered):
        """Test the descriptor of a module-level test."""
        t = next(t for t in discovered.tests if t.name == "set_up_tear_down")
        assert t.descriptor.set_up == "make_parented"
        assert t.descriptor.tear_down == "release_parented"
        assert inspect.ismodule(t.descriptor.owner)
        assert t.descriptor.component is None
        assert not t.suite

    def test_class_test(self, discovered):
        """Test the descriptor of a test defined on a component class."""
        t = next(t for t in discovered.tests if t.name == "movement_continuous")
        assert t.class_name == "Character"
        assert t.descriptor.owner is t.descriptor.component
        assert t.descriptor.pause_on_fail is True
        assert t.descriptor.set_up == "set_up_continuous"

    def test_suite_tests(self, discovered):
        """Test that suite tests share one instance and pick up hooks."""
        suite_tests = [t for t in discovered.tests if t.suite]
        assert {t.name for t in suite_tests} == {"falls", "at_rest"}
        owners = {id(t.descriptor.owner) for t in suite_tests}
        assert len(owners) == 1
        for t in suite_tests:
            assert t.descriptor.suite
            assert t.descriptor.set_up == "set_up"
            assert t.descriptor.tear_down == "tear_down"

    def test_zero_argument_test_accepts_fixture(self, discovered):
        """Test that a test without parameters is still callable with a fixture."""
        t = next(t for t in discovered.tests if t.name == "reports_failure")
        assert len(inspect.signature(t.invocable).parameters) == 1

    def test_ingest_pairs(self, discovered):
        """Test the descriptor and invocable views."""
        assert len(discovered.descriptors) == len(discovered.invocables)
        for descriptor, invocable in discovered.invocables:
            assert callable(invocable)
            assert descriptor in discovered.descriptors


class TestDiscoveryOptions:
    """Tests for configuration-dependent discovery."""

    def test_missing_module(self, tmp_path):
        """Test that an import error is reported instead of raised."""
        config = GameTestConfig(discovery=DiscoveryConfig(modules=["no_such_module_here"]))
        result = TestDiscovery(config, tmp_path).discover()
        assert not result.success
        assert "no_such_module_here" in result.error
        assert result.tests == []

    def test_partial_failure_keeps_good_modules(self, samples_config):
        """Test that one broken module does not hide the others."""
        samples_config.discovery.modules = ["samples.examples", "no_such_module_here"]
        result = TestDiscovery(samples_config).discover()
        assert not result.success
        assert {t.name for t in result.tests} == {
            "passes",
            "fails",
            "set_up_tear_down",
            "reports_failure",
        }

    def test_non_recursive(self, samples_config):
        """Test that submodules are skipped when recursion is off."""
        samples_config.discovery.recursive = False
        result = TestDiscovery(samples_config).discover()
        assert result.success
        assert result.tests == []

    def test_reload_builds_fresh_suites(self, samples_config):
        """Test that a reload gives suites a new shared instance."""
        discovery = TestDiscovery(samples_config)
        first = discovery.discover()
        again = discovery.discover()
        reloaded = discovery.discover(reload=True)

        def gravity(result):
            return next(t for t in result.tests if t.name == "falls").descriptor.owner

        assert gravity(first) is gravity(again)
        assert gravity(first) is not gravity(reloaded)

    def test_discovered_test_defaults(self):
        """Test DiscoveredTest defaults."""
        t = DiscoveredTest(name="t", path="m/t", module="m")
        assert t.full_name == "m"
        assert not t.suite


class TestRunningSamples:
    """Tests for running the discovered samples end to end."""

    def test_results(self, discovered):
        """Test the outcome of every sample test."""
        scheduler = Scheduler(host_active=True)
        scheduler.ingest(discovered.descriptors, discovered.invocables)
        scheduler.root.select()
        scheduler.start()
        scheduler.run_until_stopped(max_ticks=100)

        results = {path: unit.result for path, unit in scheduler.units.items()}
        assert results == {
            "samples/character/movement": Result.PASS,
            "samples/character/movement_continuous": Result.PASS,
            "samples/examples/fails": Result.FAIL,
            "samples/examples/passes": Result.PASS,
            "samples/examples/reports_failure": Result.FAIL,
            "samples/examples/set_up_tear_down": Result.PASS,
            "samples/physics/Gravity/at_rest": Result.PASS,
            "samples/physics/Gravity/falls": Result.PASS,
        }
        assert not scheduler.running

    def test_failure_messages(self, discovered):
        """Test that failure reasons are kept on the unit."""
        scheduler = Scheduler(host_active=True)
        scheduler.ingest(discovered.descriptors, discovered.invocables)
        for path in ("samples/examples/fails", "samples/examples/reports_failure"):
            scheduler.get_unit(path).selected = True
        scheduler.start()
        scheduler.run_until_stopped()

        assert "meant to fail" in scheduler.get_unit("samples/examples/fails").failures[0]
        assert scheduler.get_unit("samples/examples/reports_failure").failures == [
            "reported without raising"
        ]

    def test_suite_hooks_called_per_test(self, discovered):
        """Test that the shared suite instance sees set_up and tear_down per test."""
        scheduler = Scheduler(host_active=True)
        scheduler.ingest(discovered.descriptors, discovered.invocables)
        scheduler.tree.get("samples/physics/Gravity").select()
        scheduler.start()
        scheduler.run_until_stopped()

        gravity = scheduler.get_unit("samples/physics/Gravity/falls").descriptor.owner
        assert gravity.set_up_calls == 2
        assert gravity.tear_down_calls == 2
