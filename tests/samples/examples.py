"""Module-level sample tests."""

from gametest import asserts, ignore, report_failure, test
from gametest.core.fixtures import Fixture


@test
def passes(fixture):
    asserts.is_true(True)


@test
def fails(fixture):
    asserts.is_true(False, "This test is meant to fail")


@test(set_up="make_parented", tear_down="release_parented")
def set_up_tear_down(fixture):
    asserts.are_equal("Test Parent", fixture.parent.name)


@test
def reports_failure():
    report_failure("reported without raising")


@ignore
@test
def ignored(fixture):
    asserts.fail("ignored tests never run")


def make_parented():
    parent = Fixture("Test Parent")
    child = Fixture("child")
    child.parent = parent
    return child


def release_parented(fixture):
    fixture.parent.destroy()
    fixture.destroy()
