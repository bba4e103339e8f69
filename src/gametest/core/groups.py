"""Path-keyed group tree.

Groups never hold references to each other. The GroupTree registry maps a
path to its Group, and every parent/child relation is computed from the
paths, so removing a group is just dropping its registry entry.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from gametest.core.errors import GroupContentError
from gametest.core.models import (
    Result,
    is_path_child,
    iterate_directories,
    leaf_name,
    parent_path,
)
from gametest.core.unit import TestUnit

log = logging.getLogger(__name__)


class Group:
    """A node of the test tree holding the tests directly under its path."""

    def __init__(self, path: str, tree: "GroupTree"):
        self.path = path
        self.expanded = False
        self.units: list[TestUnit] = []
        self._is_suite: Optional[bool] = None
        self._tree = tree

    def __repr__(self) -> str:
        return f"Group({self.path})"

    @property
    def name(self) -> str:
        """Last segment of the group path ("" for the root)."""
        return leaf_name(self.path)

    @property
    def is_root(self) -> bool:
        """True for the group with the empty path."""
        return not self.path

    @property
    def is_suite(self) -> bool:
        """True once the group has received a suite test."""
        return bool(self._is_suite)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add(self, unit: TestUnit) -> None:
        """Add a test directly to this group.

        Raises:
            GroupContentError: If the test's suite origin differs from the
                tests already in the group
        """
        if any(u is unit for u in self.units):
            return
        if self._is_suite is None:
            self._is_suite = unit.is_suite
        elif self._is_suite != unit.is_suite:
            kind = "suite" if self._is_suite else "non-suite"
            raise GroupContentError(
                f"Cannot add {unit.path} to {kind} group {self.path!r}: "
                "suite and non-suite tests cannot share a group"
            )
        self.units.append(unit)

    def discard(self, unit: TestUnit) -> bool:
        """Remove a test from this group. Returns False if it was absent."""
        for i, u in enumerate(self.units):
            if u is unit:
                del self.units[i]
                if not self.units:
                    self._is_suite = None
                return True
        return False

    def clear(self) -> None:
        """Drop every test from this group."""
        self.units = []
        self._is_suite = None

    # ------------------------------------------------------------------
    # Tree relations
    # ------------------------------------------------------------------

    def is_child_of(self, other: "Group") -> bool:
        """True if this group lies anywhere below other."""
        return is_path_child(other.path, self.path)

    def is_parent_of(self, other: "Group") -> bool:
        """True if other lies anywhere below this group."""
        return other.is_child_of(self)

    def children(self, recursive: bool = True) -> list["Group"]:
        """Groups below this one, direct children only unless recursive."""
        found = []
        for group in self._tree.groups():
            if group is self or group.is_root:
                continue
            if recursive:
                if group.is_child_of(self):
                    found.append(group)
            elif parent_path(group.path) == self.path:
                found.append(group)
        return found

    def tests(self, recursive: bool = True) -> Iterator[TestUnit]:
        """Tests in this group and, if recursive, in every descendant group."""
        yield from self.units
        if recursive:
            for child in self.children(recursive=True):
                yield from child.units

    # ------------------------------------------------------------------
    # Bulk actions
    # ------------------------------------------------------------------

    def select(self) -> None:
        """Select every unlocked test below this group."""
        for unit in self.tests():
            if not unit.locked:
                unit.selected = True

    def deselect(self) -> None:
        """Deselect every unlocked test below this group."""
        for unit in self.tests():
            if not unit.locked:
                unit.selected = False

    def lock(self) -> None:
        """Lock every test below this group."""
        for unit in self.tests():
            unit.locked = True

    def unlock(self) -> None:
        """Unlock every test below this group."""
        for unit in self.tests():
            unit.locked = False

    def expand_all(self, value: bool = True) -> None:
        """Set the expanded flag on this group and everything below it."""
        self.expanded = value
        for unit in self.tests():
            unit.expanded = value
        for child in self.children():
            child.expanded = value

    # ------------------------------------------------------------------
    # Aggregates, computed on every read
    # ------------------------------------------------------------------

    @property
    def selected(self) -> bool:
        """True iff every unlocked test below this group is selected."""
        return self.is_all_selected()

    @property
    def locked(self) -> bool:
        """True iff every test below this group is locked."""
        return self.is_all_locked()

    def is_all_selected(self) -> bool:
        """True if no unlocked test below this group is deselected."""
        return all(unit.selected for unit in self.tests() if not unit.locked)

    def is_all_locked(self) -> bool:
        """True if there is at least one test below and all are locked."""
        units = list(self.tests())
        return bool(units) and all(unit.locked for unit in units)

    def is_mixed(self) -> bool:
        """True if some, but not all, tests below this group are selected."""
        units = list(self.tests())
        n_selected = sum(1 for unit in units if unit.selected)
        return 0 < n_selected < len(units)

    @property
    def result(self) -> Result:
        """FAIL if any test below failed, else PASS if any passed, else NONE."""
        any_passed = False
        for unit in self.tests():
            if unit.result == Result.FAIL:
                return Result.FAIL
            any_passed |= unit.result == Result.PASS
        return Result.PASS if any_passed else Result.NONE


@dataclass
class TreeSummary:
    """Aggregate flags over every test in a tree."""

    any_selected: bool = False
    all_selected: bool = True
    selected_have_results: bool = False
    any_results: bool = False
    any_failed: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "any_selected": self.any_selected,
            "all_selected": self.all_selected,
            "selected_have_results": self.selected_have_results,
            "any_results": self.any_results,
            "any_failed": self.any_failed,
        }


@dataclass
class BuildReport:
    """Diagnostics collected while (re)building a tree."""

    rejected: list[TestUnit] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)


class GroupTree:
    """Registry of groups keyed by path."""

    def __init__(self) -> None:
        self._groups: dict[str, Group] = {"": Group("", self)}

    @property
    def root(self) -> Group:
        """The group with the empty path."""
        return self._groups[""]

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, path: str) -> bool:
        return path in self._groups

    def groups(self) -> list[Group]:
        """All groups, root included, sorted by path."""
        return [self._groups[path] for path in sorted(self._groups)]

    def get(self, path: str) -> Optional[Group]:
        """Look up a group by path."""
        return self._groups.get(path)

    def ensure(self, path: str) -> Group:
        """Return the group at path, creating it and its ancestors if needed."""
        for directory in iterate_directories(path + "/x") if path else ():
            if directory not in self._groups:
                self._groups[directory] = Group(directory, self)
        return self._groups[path]

    def group_of(self, unit: TestUnit) -> Optional[Group]:
        """The group that directly contains unit."""
        group = self._groups.get(unit.descriptor.parent_path)
        if group is not None and any(u is unit for u in group.units):
            return group
        return None

    def add_unit(self, unit: TestUnit) -> Group:
        """Place a test in the group matching its parent path.

        Raises:
            GroupContentError: If the target group holds the other kind of test
        """
        parent = unit.descriptor.parent_path
        created = list(self._missing_directories(parent))
        group = self.ensure(parent)
        try:
            group.add(unit)
        except GroupContentError:
            for path in created:
                self._groups.pop(path, None)
            raise
        return group

    def remove_unit(self, unit: TestUnit) -> bool:
        """Remove a test and prune groups left without tests."""
        group = self.group_of(unit)
        if group is None:
            return False
        group.discard(unit)
        self.prune()
        return True

    def prune(self) -> None:
        """Drop every non-root group with no tests anywhere below it."""
        occupied = [path for path, group in self._groups.items() if group.units]
        for path in list(self._groups):
            if not path or path in occupied:
                continue
            if not any(is_path_child(path, other) for other in occupied):
                del self._groups[path]

    def build(self, units: Iterable[TestUnit]) -> BuildReport:
        """Rebuild membership from units, keeping surviving groups' state.

        Tests already in the tree are placed first, then new tests in the
        order given. A test that would mix suite and non-suite content in a
        group is rejected and reported instead of raising, so the group keeps
        the kind it had.
        """
        report = BuildReport()
        placed = {id(unit) for group in self._groups.values() for unit in group.units}
        for group in self._groups.values():
            group.clear()

        for unit in sorted(units, key=lambda u: id(u) not in placed):
            try:
                self.add_unit(unit)
            except GroupContentError as e:
                report.rejected.append(unit)
                report.diagnostics.append(str(e))
                log.warning("%s", e)

        for group in self._groups.values():
            group.units.sort(key=lambda u: u.path)
        self.prune()
        return report

    def units(self) -> list[TestUnit]:
        """Every test in the tree, sorted by path."""
        return sorted(self.root.tests(), key=lambda u: u.path)

    def find_unit(self, path: str) -> Optional[TestUnit]:
        """Look up a test by its path."""
        group = self._groups.get(parent_path(path))
        if group is None:
            return None
        for unit in group.units:
            if unit.path == path:
                return unit
        return None

    def search(self, pattern: str) -> list[TestUnit]:
        """Tests whose path matches a case-insensitive regular expression.

        Raises:
            ValueError: If pattern is not a valid regular expression
        """
        if not pattern:
            return []
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Invalid search pattern {pattern!r}: {e}") from e
        return [unit for unit in self.units() if regex.search(unit.path)]

    def summary(self) -> TreeSummary:
        """Aggregate selection and result flags over every test."""
        summary = TreeSummary()
        for unit in self.root.tests():
            if unit.result != Result.NONE:
                summary.any_results = True
            if unit.result == Result.FAIL:
                summary.any_failed = True

            if unit.selected:
                summary.selected_have_results |= unit.result != Result.NONE
                if not unit.locked:
                    summary.any_selected = True
            elif not unit.locked:
                summary.all_selected = False
        return summary

    def _missing_directories(self, path: str) -> Iterator[str]:
        if not path:
            return
        for directory in iterate_directories(path + "/x"):
            if directory not in self._groups:
                yield directory


def build_tree(units: Iterable[TestUnit]) -> Group:
    """Build a fresh tree from units and return its root group."""
    tree = GroupTree()
    tree.build(sorted(units, key=lambda u: u.path))
    return tree.root
