"""Failure signal channel.

Test bodies report failures either by raising or by calling
report_failure(). The unit whose code is currently executing is bound in a
context variable only for the duration of its own setup, body and steps, so
a report made anywhere else is rejected instead of being pinned on an
unrelated test.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Callable, Iterator, Optional

from gametest.core.models import FailureSignal

if TYPE_CHECKING:
    from gametest.core.unit import TestUnit

log = logging.getLogger(__name__)

FailureCallback = Callable[[FailureSignal], None]

_active_unit: ContextVar[Optional["TestUnit"]] = ContextVar(
    "gametest_active_unit", default=None
)


class FailureChannel:
    """Fan-out of failure signals to subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[FailureCallback] = []

    def subscribe(self, callback: FailureCallback) -> None:
        """Register a callback for every published signal."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: FailureCallback) -> None:
        """Remove a callback; unknown callbacks are ignored."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, signal: FailureSignal) -> None:
        """Deliver a signal to every subscriber."""
        for callback in list(self._subscribers):
            try:
                callback(signal)
            except Exception:
                log.exception("Failure subscriber raised while handling %s", signal.unit)


@contextmanager
def bind_unit(unit: "TestUnit") -> Iterator[None]:
    """Mark unit as the one whose code is executing."""
    token = _active_unit.set(unit)
    try:
        yield
    finally:
        _active_unit.reset(token)


def current_unit() -> Optional["TestUnit"]:
    """Return the unit whose code is executing, if any."""
    return _active_unit.get()


def report_failure(message: str = "") -> bool:
    """Fail the executing test without raising.

    Returns:
        True if a unit received the failure, False when called outside a test
    """
    unit = _active_unit.get()
    if unit is None:
        log.warning("report_failure() called outside a running test: %s", message)
        return False
    unit.signal_failure(message)
    return True
