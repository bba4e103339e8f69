"""Session snapshot of selection, results and queue order."""

import logging
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from gametest.core.models import Result
from gametest.core.scheduler import Scheduler

log = logging.getLogger(__name__)

SESSION_VERSION = 1


class UnitState(BaseModel):
    """Persisted fields of one test."""

    path: str
    selected: bool = False
    locked: bool = False
    expanded: bool = False
    result: Result = Result.NONE


class GroupState(BaseModel):
    """Persisted fields of one group."""

    path: str
    expanded: bool = False


class FinishedState(BaseModel):
    """One entry of the finished sequence."""

    path: str
    result: Result


class SessionState(BaseModel):
    """Everything needed to restore a scheduler between processes."""

    version: int = Field(default=SESSION_VERSION, description="Format version")
    saved_at: datetime = Field(default_factory=datetime.now)
    units: list[UnitState] = Field(default_factory=list)
    groups: list[GroupState] = Field(default_factory=list)
    pending: list[str] = Field(default_factory=list, description="Pending test paths, next first")
    finished: list[FinishedState] = Field(default_factory=list, description="Finished runs, most recent first")

    @classmethod
    def capture(cls, scheduler: Scheduler) -> "SessionState":
        """Record the current state of scheduler."""
        return cls(
            units=[
                UnitState(
                    path=unit.path,
                    selected=unit.selected,
                    locked=unit.locked,
                    expanded=unit.expanded,
                    result=unit.result,
                )
                for unit in scheduler.tree.units()
            ],
            groups=[
                GroupState(path=group.path, expanded=group.expanded)
                for group in scheduler.tree.groups()
            ],
            pending=[unit.path for unit in scheduler.queue.pending],
            finished=[
                FinishedState(path=entry.path, result=entry.result)
                for entry in scheduler.queue.finished
            ],
        )

    def apply(self, scheduler: Scheduler) -> int:
        """Restore the recorded state onto tests that still exist.

        Unknown paths are ignored. Queue contents are only restored while the
        scheduler is idle.

        Returns:
            Number of tests whose state was restored
        """
        restored = 0
        for state in self.units:
            unit = scheduler.get_unit(state.path)
            if unit is None:
                log.debug("Ignoring saved state of unknown test %s", state.path)
                continue
            unit.selected = state.selected
            unit.locked = state.locked
            unit.expanded = state.expanded
            if not unit.running:
                unit.result = state.result
            restored += 1

        for state in self.groups:
            group = scheduler.tree.get(state.path)
            if group is not None:
                group.expanded = state.expanded

        if scheduler.running or scheduler.current_unit is not None:
            log.debug("Scheduler is busy, not restoring the queue")
            return restored

        scheduler.queue.clear()
        for path in self.pending:
            unit = scheduler.get_unit(path)
            if unit is not None:
                scheduler.queue.enqueue(unit)

        scheduler.queue.clear_finished()
        for state in reversed(self.finished):
            unit = scheduler.get_unit(state.path)
            if unit is not None:
                scheduler.queue.finish(unit, state.result)

        return restored

    def to_file(self, path: Path | str) -> None:
        """Save the session to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def from_file(cls, path: Path | str) -> "SessionState":
        """Load a session from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Session file not found: {path}")
        return cls.model_validate_json(path.read_text())
