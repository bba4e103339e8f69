"""Runtime wrapper around a single test and its run lifecycle."""

import logging
from collections.abc import Iterator
from typing import Any, Callable, Optional

from gametest.core.errors import (
    HookNotFound,
    MissingFixtureComponent,
    NotRunnable,
    SetupReturnTypeMismatch,
)
from gametest.core.fixtures import FixtureProvider
from gametest.core.models import Descriptor, FailureSignal, Result
from gametest.core.signals import FailureChannel, bind_unit, current_unit

log = logging.getLogger(__name__)

Invocable = Callable[[Any], Optional[Iterator[Any]]]


class TestUnit:
    """Mutable runtime state of one test.

    A run goes SetUp -> body -> TearDown -> finalize. A body that returns an
    iterator is a multi-step test: run() advances it to its first
    suspension point and every step() call resumes it once. Completion is
    reported through on_finished, exactly once per run.
    """

    __test__ = False

    def __init__(self, descriptor: Descriptor, invocable: Invocable):
        self.descriptor = descriptor
        self.invocable = invocable
        self.result = Result.NONE
        self.selected = False
        self.locked = False
        self.expanded = False

        self.on_finished: Optional[Callable[["TestUnit"], None]] = None
        self.pause_requested = False
        self.failures: list[str] = []

        self._running = False
        self._steps: Optional[Iterator[Any]] = None
        self._fixture: Any = None
        self._has_fixture = False
        self._stop_body = False
        self._fixtures: Optional[FixtureProvider] = None
        self._channel: Optional[FailureChannel] = None

    def __repr__(self) -> str:
        return f"TestUnit({self.descriptor.path})"

    @property
    def path(self) -> str:
        """Unique path of the test."""
        return self.descriptor.path

    @property
    def name(self) -> str:
        """Display name of the test."""
        return self.descriptor.name

    @property
    def running(self) -> bool:
        """True between run() and the completion callback."""
        return self._running

    @property
    def in_flight(self) -> bool:
        """True while a multi-step body is suspended."""
        return self._steps is not None

    @property
    def is_suite(self) -> bool:
        """True if the test comes from a suite class."""
        return self.descriptor.suite

    def clear_result(self) -> None:
        """Forget the result of the previous run."""
        if self._running:
            raise NotRunnable(f"Cannot clear the result of running test {self.path}")
        self.result = Result.NONE
        self.failures = []

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(
        self,
        host_active: bool,
        fixtures: FixtureProvider,
        channel: Optional[FailureChannel] = None,
    ) -> None:
        """Start the test.

        Args:
            host_active: Whether the host is in its execution context
            fixtures: Collaborator that builds and destroys default fixtures
            channel: Receives a FailureSignal for every failure reported

        Raises:
            NotRunnable: If the host is inactive or the test is already running
        """
        if not host_active:
            raise NotRunnable(f"Cannot run {self.path} outside an active host context")
        if self._running:
            raise NotRunnable(f"{self.path} is already running")

        self._running = True
        self._stop_body = False
        self.pause_requested = False
        self.failures = []
        self.result = Result.NONE
        self._fixtures = fixtures
        self._channel = channel

        with bind_unit(self):
            done = self._start()
            if done:
                self._wrap_up()
        if done:
            self._emit_finished()

    def step(self) -> None:
        """Resume a suspended multi-step body once."""
        if self._steps is None:
            return
        with bind_unit(self):
            done = self._advance()
            if done:
                self._wrap_up()
        if done:
            self._emit_finished()

    def skip(self) -> bool:
        """Cancel the running test, tear it down, and finish it as SKIPPED.

        When called from the test's own code the cancellation takes effect
        once the current step returns, and run() or step() finishes the unit.

        Returns:
            False if the test was not running
        """
        if not self._running:
            return False
        self.result = Result.SKIPPED
        self._stop_body = True
        if current_unit() is self:
            return True
        with bind_unit(self):
            self._close_steps()
            self._wrap_up()
        self._emit_finished()
        return True

    def signal_failure(self, message: str) -> None:
        """Record a failure for the current run.

        The body is abandoned after the step in which the failure arrived.
        Once the run is skipped the result stays SKIPPED.
        """
        self.failures.append(message)
        if self.result != Result.SKIPPED:
            self.result = Result.FAIL
        self._stop_body = True
        if self._channel is not None:
            self._channel.publish(FailureSignal(message=message, unit=self))

    def _start(self) -> bool:
        """Run SetUp and invoke the body. Returns True when the run is over."""
        try:
            self._set_up()
        except Exception as e:
            self._record_exception("SetUp", e)
            return True
        if self._stop_body:
            return True

        try:
            produced = self.invocable(self._fixture)
        except Exception as e:
            self._record_exception("Test", e)
            return True

        if not isinstance(produced, Iterator):
            return True

        self._steps = produced
        return self._advance()

    def _advance(self) -> bool:
        """Advance the step producer once. Returns True when the run is over."""
        try:
            next(self._steps)
        except StopIteration:
            self._steps = None
            return True
        except Exception as e:
            self._steps = None
            self._record_exception("Test", e)
            return True

        if self._stop_body:
            self._close_steps()
            return True
        return False

    def _close_steps(self) -> None:
        steps, self._steps = self._steps, None
        if steps is None:
            return
        close = getattr(steps, "close", None)
        if not callable(close):
            return
        try:
            close()
        except Exception:
            log.exception("Error while cancelling %s", self.path)

    def _wrap_up(self) -> None:
        """TearDown (when SetUp produced a fixture) and finalize the result."""
        if self._has_fixture:
            try:
                self._tear_down()
            except Exception as e:
                self._record_exception("TearDown", e, override=True)
        self._fixture = None
        self._has_fixture = False

        if self.result == Result.NONE:
            self.result = Result.PASS
        self.pause_requested = (
            self.descriptor.pause_on_fail and self.result == Result.FAIL
        )

    def _emit_finished(self) -> None:
        self._running = False
        self._stop_body = False
        self._fixtures = None
        self._channel = None
        if self.on_finished is not None:
            self.on_finished(self)

    def _record_exception(self, phase: str, error: Exception, override: bool = False) -> None:
        message = f"{phase} raised {type(error).__name__}: {error}"
        log.debug("%s: %s", self.path, message, exc_info=error)
        if override:
            self.failures.append(message)
            self.result = Result.FAIL
            if self._channel is not None:
                self._channel.publish(FailureSignal(message=message, unit=self))
        else:
            self.signal_failure(message)

    # ------------------------------------------------------------------
    # SetUp / TearDown
    # ------------------------------------------------------------------

    def _resolve_hook(self, name: str) -> Callable[..., Any]:
        owner = self.descriptor.owner
        hook = getattr(owner, name, None) if owner is not None else None
        if not callable(hook):
            raise HookNotFound(f"Hook {name!r} not found on {owner!r} (test {self.path})")
        return hook

    def _set_up(self) -> None:
        descriptor = self.descriptor
        self._fixture = None
        self._has_fixture = False

        if descriptor.set_up:
            produced = self._resolve_hook(descriptor.set_up)()
            if descriptor.suite:
                if produced is not None:
                    raise SetupReturnTypeMismatch(
                        f"SetUp of suite test {self.path} must return None, "
                        f"got {type(produced).__name__}"
                    )
                fixture = descriptor.owner
            else:
                fixture = produced
        else:
            fixture = self._fixtures.instantiate_default_fixture(descriptor)

        if fixture is None and not descriptor.suite:
            raise SetupReturnTypeMismatch(
                f"SetUp of {self.path} must return a fixture, got None"
            )

        self._fixture = fixture
        self._has_fixture = True

        component = descriptor.component
        if not descriptor.suite and component is not None and not isinstance(fixture, component):
            raise MissingFixtureComponent(
                f"Fixture {fixture!r} of {self.path} is not a {component.__name__}"
            )

    def _tear_down(self) -> None:
        descriptor = self.descriptor
        if descriptor.tear_down:
            hook = self._resolve_hook(descriptor.tear_down)
            if descriptor.suite:
                hook()
            else:
                hook(self._fixture)
        else:
            self._fixtures.destroy_fixture(self._fixture)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "name": self.name,
            "result": self.result.value,
            "selected": self.selected,
            "locked": self.locked,
            "expanded": self.expanded,
            "suite": self.is_suite,
            "failures": list(self.failures),
        }
