"""Pending and finished test sequences."""

from dataclasses import dataclass
from typing import Iterator, Optional

from gametest.core.models import Result
from gametest.core.unit import TestUnit


@dataclass(frozen=True)
class FinishedEntry:
    """A completed run with the result it had when it finished."""

    unit: TestUnit
    result: Result

    @property
    def path(self) -> str:
        return self.unit.path

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"path": self.unit.path, "result": self.result.value}


class TestQueue:
    """Ordered pending tests plus the most-recent-first finished sequence.

    Membership is tracked by identity, so two units with equal fields are
    still distinct entries.
    """

    __test__ = False

    def __init__(self) -> None:
        self._pending: list[TestUnit] = []
        self._finished: list[FinishedEntry] = []

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, unit: object) -> bool:
        return any(u is unit for u in self._pending)

    def __iter__(self) -> Iterator[TestUnit]:
        return iter(list(self._pending))

    @property
    def pending(self) -> tuple[TestUnit, ...]:
        """Units waiting to run, next first."""
        return tuple(self._pending)

    @property
    def finished(self) -> tuple[FinishedEntry, ...]:
        """Completed runs, most recent first."""
        return tuple(self._finished)

    def index(self, unit: TestUnit) -> Optional[int]:
        """Position of unit in the pending sequence, or None."""
        for i, u in enumerate(self._pending):
            if u is unit:
                return i
        return None

    def enqueue(self, unit: TestUnit) -> bool:
        """Append unit unless it is already pending. Returns True if added."""
        if unit in self:
            return False
        self._pending.append(unit)
        return True

    def dequeue_next(self) -> TestUnit:
        """Pop the next pending unit.

        Raises:
            IndexError: If nothing is pending
        """
        if not self._pending:
            raise IndexError("dequeue from an empty test queue")
        return self._pending.pop(0)

    def remove(self, unit: TestUnit) -> bool:
        """Drop unit from the pending sequence. Returns False if absent."""
        i = self.index(unit)
        if i is None:
            return False
        del self._pending[i]
        return True

    def reorder(self, unit: TestUnit, new_index: int) -> int:
        """Move a pending unit to new_index, clamped into range.

        Returns:
            The index the unit ended up at

        Raises:
            ValueError: If unit is not pending
        """
        i = self.index(unit)
        if i is None:
            raise ValueError(f"{unit.path} is not pending")
        del self._pending[i]
        new_index = max(0, min(new_index, len(self._pending)))
        self._pending.insert(new_index, unit)
        return new_index

    def finish(self, unit: TestUnit, result: Result) -> FinishedEntry:
        """Record a completed run at the front of the finished sequence."""
        self.remove(unit)
        entry = FinishedEntry(unit=unit, result=result)
        self._finished.insert(0, entry)
        return entry

    def remove_finished(self, unit: TestUnit) -> int:
        """Drop every finished entry of unit. Returns how many were dropped."""
        before = len(self._finished)
        self._finished = [e for e in self._finished if e.unit is not unit]
        return before - len(self._finished)

    def clear(self) -> None:
        """Drop every pending unit."""
        self._pending.clear()

    def clear_finished(self) -> None:
        """Drop the finished sequence."""
        self._finished.clear()

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "pending": [u.path for u in self._pending],
            "finished": [e.to_dict() for e in self._finished],
        }
