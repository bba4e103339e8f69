"""Exceptions raised by the scheduling core."""


class GameTestError(Exception):
    """Base class for all gametest errors."""

    pass


class NotRunnable(GameTestError):
    """Raised when a run is requested outside an active host context."""

    pass


class SetupReturnTypeMismatch(GameTestError):
    """Raised when a setup hook returns something its contract forbids."""

    pass


class MissingFixtureComponent(GameTestError):
    """Raised when the fixture lacks the component a test body expects."""

    pass


class HookNotFound(GameTestError):
    """Raised when a named setup or teardown hook cannot be resolved."""

    pass


class GroupContentError(GameTestError):
    """Raised when suite and non-suite tests are mixed in one group."""

    pass


class AssertionFailure(GameTestError, AssertionError):
    """Raised by the assertion helpers when a check fails."""

    pass
