"""Storage layer for session state."""

from gametest.storage.session import FinishedState, GroupState, SessionState, UnitState

__all__ = ["SessionState", "UnitState", "GroupState", "FinishedState"]
