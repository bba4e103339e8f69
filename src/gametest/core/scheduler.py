"""Tick-driven scheduler.

The scheduler owns the single execution slot. A host calls tick() once per
frame; each tick either dequeues the next test or advances the executing one
by exactly one step. Everything a test raises is turned into a result, so
tick() never raises on behalf of a test.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from gametest.config import SchedulerConfig
from gametest.core.errors import NotRunnable
from gametest.core.fixtures import DefaultFixtureProvider, FixtureProvider
from gametest.core.groups import GroupTree
from gametest.core.models import Descriptor, Result
from gametest.core.queue import TestQueue
from gametest.core.signals import FailureChannel
from gametest.core.unit import Invocable, TestUnit

log = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """What changed during one ingest() call."""

    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "added": list(self.added),
            "updated": list(self.updated),
            "removed": list(self.removed),
            "diagnostics": list(self.diagnostics),
        }


class Scheduler:
    """Runs selected tests one at a time against an external frame clock."""

    def __init__(
        self,
        fixtures: Optional[FixtureProvider] = None,
        config: Optional[SchedulerConfig] = None,
        log_results: bool = True,
        host_active: bool = False,
    ):
        """Initialize the scheduler.

        Args:
            fixtures: Builds and destroys default fixtures
            config: Tick loop settings
            log_results: Log one line per finished test
            host_active: Whether the host starts out in its execution context
        """
        self.config = config or SchedulerConfig()
        self.fixtures = fixtures if fixtures is not None else DefaultFixtureProvider()
        self.log_results = log_results

        self.units: dict[str, TestUnit] = {}
        self.tree = GroupTree()
        self.queue = TestQueue()
        self.failures = FailureChannel()

        self.running = False
        self.paused = False
        self.current_unit: Optional[TestUnit] = None
        self.tick_count = 0
        self.elapsed_time = 0.0
        self.start_requested = False
        self.host_active = host_active

        # Host hooks
        self.on_stop: Optional[Callable[[], None]] = None
        self.on_unit_finished: Optional[Callable[[TestUnit, Result], None]] = None
        self.on_activation_requested: Optional[Callable[[], None]] = None

        self._start_order: list[TestUnit] = []
        self._stopping = False

    @property
    def root(self):
        """Root group of the test tree."""
        return self.tree.root

    @property
    def idle(self) -> bool:
        """True when no test occupies the execution slot."""
        return self.current_unit is None

    def get_unit(self, path: str) -> Optional[TestUnit]:
        """Look up a test by its path."""
        return self.units.get(path)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def ingest(
        self,
        descriptors: Iterable[Descriptor],
        invocables: Iterable[tuple[Descriptor, Invocable]],
    ) -> IngestResult:
        """Reconcile tests with a complete discovery pass.

        Known paths keep their selection, lock and result state and get the
        fresh invocable. Unknown paths become new tests. Tests missing from
        the pass are removed everywhere.
        """
        result = IngestResult()

        handles: dict[str, Invocable] = {}
        for descriptor, invocable in invocables:
            handles.setdefault(descriptor.path, invocable)

        accepted: dict[str, Descriptor] = {}
        for descriptor in descriptors:
            path = descriptor.path
            if path in accepted:
                self._diagnose(
                    result,
                    f"Duplicate test path {path!r} at {descriptor.origin or 'unknown origin'}; "
                    f"keeping the one at {accepted[path].origin or 'unknown origin'}",
                )
                continue
            if path not in handles:
                self._diagnose(result, f"No invocable found for test {path!r}")
                continue
            accepted[path] = descriptor

        for path in [p for p in self.units if p not in accepted]:
            self._drop_unit(self.units[path])
            result.removed.append(path)

        for path, descriptor in accepted.items():
            unit = self.units.get(path)
            if unit is None:
                unit = TestUnit(descriptor, handles[path])
                unit.on_finished = self._on_unit_finished
                self.units[path] = unit
                result.added.append(path)
                continue
            if _descriptor_changed(unit.descriptor, descriptor):
                unit.descriptor.update_from(descriptor)
                result.updated.append(path)
            unit.invocable = handles[path]

        report = self.tree.build(self.units.values())
        for unit in report.rejected:
            self._drop_unit(unit)
            if unit.path in result.added:
                result.added.remove(unit.path)
            else:
                result.removed.append(unit.path)
        for message in report.diagnostics:
            result.diagnostics.append(message)

        log.debug(
            "Ingested %d tests: %d added, %d updated, %d removed",
            len(self.units),
            len(result.added),
            len(result.updated),
            len(result.removed),
        )
        return result

    def _diagnose(self, result: IngestResult, message: str) -> None:
        log.warning("%s", message)
        result.diagnostics.append(message)

    def _drop_unit(self, unit: TestUnit) -> None:
        if unit is self.current_unit:
            unit.skip()
        self.queue.remove(unit)
        self.queue.remove_finished(unit)
        self.tree.remove_unit(unit)
        self._start_order = [u for u in self._start_order if u is not unit]
        if self.units.get(unit.path) is unit:
            del self.units[unit.path]
        unit.on_finished = None

    # ------------------------------------------------------------------
    # Host lifecycle
    # ------------------------------------------------------------------

    def on_host_context_entered(self) -> None:
        """The host entered its execution context; honor a pending start."""
        self.host_active = True
        if self.start_requested:
            self.start_requested = False
            self.start()

    def on_host_context_exited(self) -> None:
        """The host left its execution context; any run is stopped."""
        self.host_active = False
        if self.running or self.current_unit is not None:
            self.stop()

    def on_environment_reload(
        self,
        descriptors: Iterable[Descriptor],
        invocables: Iterable[tuple[Descriptor, Invocable]],
    ) -> IngestResult:
        """Reset and re-ingest after the host reloaded test code."""
        start_requested = self.start_requested
        self.reset()
        self.start_requested = start_requested
        result = self.ingest(descriptors, invocables)
        if self.start_requested and self.host_active:
            self.start_requested = False
            self.start()
        return result

    def reset(self) -> None:
        """Return the scheduler to a clean idle state. Tests are untouched."""
        if self.running or self.current_unit is not None:
            self.stop()
        self.queue.clear()
        self.queue.clear_finished()
        self._start_order = []
        self.running = False
        self.paused = False
        self.start_requested = False
        self.current_unit = None
        self.tick_count = 0
        self.elapsed_time = 0.0

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Queue every selected test and begin running.

        Raises:
            NotRunnable: If the host is not in its execution context
        """
        if not self.host_active:
            raise NotRunnable("Cannot start tests outside an active host context")
        if self.running:
            log.debug("start() ignored, a run is already in progress")
            return

        self.queue.clear_finished()
        for path in sorted(self.units):
            unit = self.units[path]
            if unit.selected:
                self.queue.enqueue(unit)
        self._start_order = list(self.queue.pending)

        self.running = True
        self.paused = False
        self.start_requested = False
        log.info("Starting run with %d queued tests", len(self.queue))

    def request_start(self) -> None:
        """Start now if the host is active, otherwise ask the host to activate."""
        if self.host_active:
            self.start()
            return
        self.start_requested = True
        if self.on_activation_requested is not None:
            self.on_activation_requested()

    def stop(self) -> None:
        """End the run, skipping the executing test and clearing the queue."""
        if self._stopping:
            return
        self._stopping = True
        try:
            unit = self.current_unit
            if unit is not None and unit.running:
                unit.skip()
            self.current_unit = None

            pending = list(self.queue.pending)
            if self.config.skip_remaining_on_stop:
                for unit in pending:
                    unit.result = Result.SKIPPED
                    self.queue.finish(unit, Result.SKIPPED)
                    self._log_result(unit, Result.SKIPPED)
            self.queue.clear()
            if self.config.restore_queue_on_stop:
                for unit in self._start_order:
                    if unit.path in self.units:
                        self.queue.enqueue(unit)

            self.running = False
            self.paused = False
            self.start_requested = False
            log.info("Run finished: %d tests recorded", len(self.queue.finished))
            if self.on_stop is not None:
                self.on_stop()
        finally:
            self._stopping = False

    def pause(self) -> None:
        """Hold the next test in the queue; the executing test continues."""
        self.paused = True

    def resume(self) -> None:
        """Allow the next tick to dequeue again."""
        self.paused = False

    def skip(self) -> None:
        """Skip the executing test, or move on to the next one when idle."""
        unit = self.current_unit
        if unit is not None:
            unit.skip()
            return
        if not self.running:
            return
        if len(self.queue):
            self._begin_next()
        else:
            self.stop()

    def tick(self, delta_time: Optional[float] = None) -> None:
        """Advance the run by one host frame."""
        if not self.running:
            return

        unit = self.current_unit
        if unit is None:
            if not len(self.queue):
                self.stop()
            elif not self.paused:
                self._begin_next()
            return

        self.tick_count += 1
        self.elapsed_time += self.config.frame_delta if delta_time is None else delta_time
        unit.step()

    def run_until_stopped(self, max_ticks: Optional[int] = None) -> int:
        """Tick until the run ends, the run pauses idle, or max_ticks elapse.

        Returns:
            Number of ticks performed
        """
        ticks = 0
        while self.running:
            if max_ticks is not None and ticks >= max_ticks:
                break
            if self.paused and self.current_unit is None:
                break
            self.tick()
            ticks += 1
        return ticks

    def _begin_next(self) -> None:
        unit = self.queue.dequeue_next()
        self.current_unit = unit
        self.tick_count = 0
        self.elapsed_time = 0.0
        log.debug("Running %s", unit.path)
        try:
            unit.run(self.host_active, self.fixtures, self.failures)
        except NotRunnable as e:
            log.error("%s", e)
            self.current_unit = None
            self.stop()

    def _on_unit_finished(self, unit: TestUnit) -> None:
        if unit is self.current_unit:
            self.current_unit = None
        result = unit.result
        self.queue.finish(unit, result)
        self._log_result(unit, result)

        if self.on_unit_finished is not None:
            self.on_unit_finished(unit, result)

        if unit.pause_requested:
            self.paused = True
            log.info("Paused after %s failed", unit.path)

        if self.running and not len(self.queue) and self.current_unit is None:
            self.stop()

    def _log_result(self, unit: TestUnit, result: Result) -> None:
        if not self.log_results:
            return
        if result == Result.FAIL:
            log.error("%s FAIL: %s", unit.path, "; ".join(unit.failures) or "failed")
        else:
            log.info("%s %s", unit.path, result.value.upper())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "running": self.running,
            "paused": self.paused,
            "current": self.current_unit.path if self.current_unit else None,
            "tick_count": self.tick_count,
            "elapsed_time": self.elapsed_time,
            "queue": self.queue.to_dict(),
        }


def _descriptor_changed(old: Descriptor, new: Descriptor) -> bool:
    return (
        old.to_dict() != new.to_dict()
        or old.owner is not new.owner
        or old.component is not new.component
    )
