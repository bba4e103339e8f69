"""Data models shared by the scheduling core."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator, Optional

if TYPE_CHECKING:
    from gametest.core.unit import TestUnit

PATH_SEPARATOR = "/"

_CONFIG_FIELDS = ("set_up", "tear_down", "pause_on_fail", "origin", "owner", "component", "suite")


class Result(str, Enum):
    """Outcome of a test unit."""

    NONE = "none"
    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"


def parent_path(path: str) -> str:
    """Return everything before the last path segment ("" for top level)."""
    head, _, _ = path.rpartition(PATH_SEPARATOR)
    return head


def leaf_name(path: str) -> str:
    """Return the last path segment."""
    return path.rpartition(PATH_SEPARATOR)[2]


def is_path_child(parent: str, child: str) -> bool:
    """Check whether child lies strictly below parent.

    The empty path is the root and contains every non-empty path. A path is
    never its own child.
    """
    if parent == child or not child:
        return False
    if not parent:
        return True
    return child.startswith(parent + PATH_SEPARATOR)


def iterate_directories(path: str) -> Iterator[str]:
    """Yield every group path above a test path, shallowest first.

    "a/b/test" yields "a" then "a/b".
    """
    segments = path.split(PATH_SEPARATOR)[:-1]
    for i in range(1, len(segments) + 1):
        yield PATH_SEPARATOR.join(segments[:i])


@dataclass(frozen=True)
class Descriptor:
    """Identity and configuration of one test.

    Descriptors are frozen. Re-discovery merges a changed configuration into
    a live descriptor through update_from(), the only supported mutation.
    """

    path: str
    set_up: Optional[str] = None
    tear_down: Optional[str] = None
    pause_on_fail: bool = False
    origin: Optional[str] = None
    owner: Any = field(default=None, repr=False)
    component: Optional[type] = field(default=None, repr=False)
    suite: bool = False

    def __post_init__(self) -> None:
        if not self.path or not self.path.strip(PATH_SEPARATOR):
            raise ValueError("Descriptor path cannot be empty")
        object.__setattr__(self, "path", self.path.strip(PATH_SEPARATOR))

    @property
    def name(self) -> str:
        """Display name of the test (last path segment)."""
        return leaf_name(self.path)

    @property
    def parent_path(self) -> str:
        """Path of the group that directly contains this test."""
        return parent_path(self.path)

    def update_from(self, other: "Descriptor") -> None:
        """Copy the configuration of other into this descriptor."""
        if other.path != self.path:
            raise ValueError(
                f"Cannot merge descriptor {other.path!r} into {self.path!r}"
            )
        for name in _CONFIG_FIELDS:
            object.__setattr__(self, name, getattr(other, name))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "set_up": self.set_up,
            "tear_down": self.tear_down,
            "pause_on_fail": self.pause_on_fail,
            "origin": self.origin,
            "suite": self.suite,
        }


@dataclass(frozen=True)
class FailureSignal:
    """A failure reported while a unit was executing."""

    message: str
    unit: "TestUnit"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"message": self.message, "path": self.unit.path}
