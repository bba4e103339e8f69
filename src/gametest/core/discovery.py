"""Test discovery functionality.

Tests are plain Python callables marked with decorators:

    @test                         module function, gets a Fixture
    @test(component=Character)    module function, gets a Character
    class Character:
        @test                     method, gets a fresh Character as self
        def jumps(self): ...

    @suite
    class Physics:                every public method is a test and shares
        def set_up(self): ...     one Physics instance
        def falls(self): ...

A test that returns a generator is a multi-step test; every ``yield`` hands
control back to the host for one frame.
"""

import importlib
import inspect
import logging
import pkgutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Iterable, Optional

from gametest.config import GameTestConfig
from gametest.core.models import PATH_SEPARATOR, Descriptor

log = logging.getLogger(__name__)

TEST_MARKER = "__gametest__"
SUITE_MARKER = "__gametest_suite__"
IGNORE_MARKER = "__gametest_ignore__"
SUITE_HOOKS = ("set_up", "tear_down")


@dataclass
class TestOptions:
    """Options recorded by the @test decorator."""

    __test__ = False

    name: Optional[str] = None
    set_up: Optional[str] = None
    tear_down: Optional[str] = None
    pause_on_fail: bool = False
    component: Optional[type] = None


@dataclass
class SuiteOptions:
    """Options recorded by the @suite decorator."""

    name: Optional[str] = None
    pause_on_fail: bool = False


def test(
    func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    set_up: Optional[str] = None,
    tear_down: Optional[str] = None,
    pause_on_fail: bool = False,
    component: Optional[type] = None,
):
    """Mark a function or method as a test.

    Usable bare (``@test``) or with options (``@test(pause_on_fail=True)``).
    ``set_up`` and ``tear_down`` name hooks looked up on the owning module or
    class: set_up() returns the fixture, tear_down(fixture) releases it.
    """
    options = TestOptions(
        name=name,
        set_up=set_up,
        tear_down=tear_down,
        pause_on_fail=pause_on_fail,
        component=component,
    )

    def mark(f: Callable) -> Callable:
        setattr(f, TEST_MARKER, options)
        return f

    if func is not None:
        return mark(func)
    return mark


test.__test__ = False


def suite(
    cls: Optional[type] = None,
    *,
    name: Optional[str] = None,
    pause_on_fail: bool = False,
):
    """Mark a class as a suite; each public method becomes a test."""
    options = SuiteOptions(name=name, pause_on_fail=pause_on_fail)

    def mark(c: type) -> type:
        setattr(c, SUITE_MARKER, options)
        return c

    if cls is not None:
        return mark(cls)
    return mark


def ignore(obj: Any) -> Any:
    """Hide a test, a suite method, or a whole class from discovery."""
    setattr(obj, IGNORE_MARKER, True)
    return obj


@dataclass
class DiscoveredTest:
    """Represents a discovered test."""

    __test__ = False

    name: str
    path: str
    module: str = ""
    class_name: str = ""
    function_name: str = ""
    origin: Optional[str] = None
    suite: bool = False
    descriptor: Optional[Descriptor] = field(default=None, repr=False)
    invocable: Optional[Callable[[Any], Any]] = field(default=None, repr=False)

    @property
    def full_name(self) -> str:
        """Get the full test name including module, class and function."""
        parts = [self.module]
        if self.class_name:
            parts.append(self.class_name)
        if self.function_name:
            parts.append(self.function_name)
        return "::".join(parts)


@dataclass
class DiscoveryResult:
    """Result of test discovery."""

    tests: list[DiscoveredTest] = field(default_factory=list)
    error: Optional[str] = None
    total_count: int = 0

    @property
    def success(self) -> bool:
        """Check if discovery was successful."""
        return self.error is None

    @property
    def descriptors(self) -> list[Descriptor]:
        """Descriptors ready for Scheduler.ingest()."""
        return [t.descriptor for t in self.tests]

    @property
    def invocables(self) -> list[tuple[Descriptor, Callable[[Any], Any]]]:
        """(descriptor, invocable) pairs ready for Scheduler.ingest()."""
        return [(t.descriptor, t.invocable) for t in self.tests]


class TestDiscovery:
    """Discovers decorated tests in importable modules."""

    __test__ = False

    def __init__(self, config: GameTestConfig, base_dir: Optional[Path] = None):
        """Initialize test discovery."""
        self.config = config
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self._suite_instances: dict[type, Any] = {}

    def discover(self, reload: bool = False) -> DiscoveryResult:
        """Import the configured modules and collect their tests.

        Args:
            reload: Re-import modules that were already imported and build
                fresh suite instances
        """
        self._extend_import_path()
        if reload:
            self._suite_instances.clear()

        tests: list[DiscoveredTest] = []
        errors: list[str] = []
        for module in self._import_modules(self.config.discovery.modules, reload, errors):
            try:
                tests.extend(self.collect(module))
            except Exception as e:
                log.exception("Failed to collect tests from %s", module.__name__)
                errors.append(f"{module.__name__}: {e}")

        return DiscoveryResult(
            tests=tests,
            error="\n".join(errors) if errors else None,
            total_count=len(tests),
        )

    def collect(self, module: ModuleType) -> list[DiscoveredTest]:
        """Collect every test defined in one module."""
        tests: list[DiscoveredTest] = []
        module_path = module.__name__.replace(".", PATH_SEPARATOR)

        for obj in list(vars(module).values()):
            if not (inspect.isfunction(obj) or inspect.isclass(obj)) or _is_ignored(obj):
                continue
            if inspect.isfunction(obj):
                if obj.__module__ != module.__name__:
                    continue
                options = getattr(obj, TEST_MARKER, None)
                if isinstance(options, TestOptions):
                    tests.append(self._function_test(module, module_path, obj, options))
            elif inspect.isclass(obj):
                if obj.__module__ != module.__name__:
                    continue
                if isinstance(getattr(obj, SUITE_MARKER, None), SuiteOptions):
                    tests.extend(self._suite_tests(module, module_path, obj))
                else:
                    tests.extend(self._class_tests(module, module_path, obj))

        return tests

    def _function_test(
        self,
        module: ModuleType,
        module_path: str,
        func: Callable,
        options: TestOptions,
    ) -> DiscoveredTest:
        name = options.name or func.__name__
        descriptor = Descriptor(
            path=f"{module_path}{PATH_SEPARATOR}{name}",
            set_up=options.set_up,
            tear_down=options.tear_down,
            pause_on_fail=options.pause_on_fail,
            origin=_origin(func),
            owner=module,
            component=options.component,
        )
        return DiscoveredTest(
            name=name,
            path=descriptor.path,
            module=module.__name__,
            function_name=func.__name__,
            origin=descriptor.origin,
            descriptor=descriptor,
            invocable=_make_invocable(func),
        )

    def _class_tests(self, module: ModuleType, module_path: str, cls: type) -> list[DiscoveredTest]:
        tests = []
        for attr_name, member in vars(cls).items():
            if not inspect.isfunction(member) or _is_ignored(member):
                continue
            options = getattr(member, TEST_MARKER, None)
            if not isinstance(options, TestOptions):
                continue

            name = options.name or attr_name
            descriptor = Descriptor(
                path=f"{module_path}{PATH_SEPARATOR}{name}",
                set_up=options.set_up,
                tear_down=options.tear_down,
                pause_on_fail=options.pause_on_fail,
                origin=_origin(member),
                owner=cls,
                component=options.component or cls,
            )
            tests.append(
                DiscoveredTest(
                    name=name,
                    path=descriptor.path,
                    module=module.__name__,
                    class_name=cls.__name__,
                    function_name=attr_name,
                    origin=descriptor.origin,
                    descriptor=descriptor,
                    invocable=member,
                )
            )
        return tests

    def _suite_tests(self, module: ModuleType, module_path: str, cls: type) -> list[DiscoveredTest]:
        suite_options: SuiteOptions = getattr(cls, SUITE_MARKER)
        try:
            instance = self._suite_instance(cls)
        except Exception as e:
            raise RuntimeError(f"Could not create suite {cls.__name__}: {e}") from e

        suite_path = f"{module_path}{PATH_SEPARATOR}{suite_options.name or cls.__name__}"
        set_up = "set_up" if callable(getattr(cls, "set_up", None)) else None
        tear_down = "tear_down" if callable(getattr(cls, "tear_down", None)) else None

        tests = []
        for attr_name, member in vars(cls).items():
            if attr_name.startswith("_") or attr_name in SUITE_HOOKS:
                continue
            if not inspect.isfunction(member) or _is_ignored(member):
                continue

            options = getattr(member, TEST_MARKER, None)
            if not isinstance(options, TestOptions):
                options = TestOptions()
            name = options.name or attr_name
            descriptor = Descriptor(
                path=f"{suite_path}{PATH_SEPARATOR}{name}",
                set_up=set_up,
                tear_down=tear_down,
                pause_on_fail=suite_options.pause_on_fail or options.pause_on_fail,
                origin=_origin(member),
                owner=instance,
                suite=True,
            )
            tests.append(
                DiscoveredTest(
                    name=name,
                    path=descriptor.path,
                    module=module.__name__,
                    class_name=cls.__name__,
                    function_name=attr_name,
                    origin=descriptor.origin,
                    suite=True,
                    descriptor=descriptor,
                    invocable=member,
                )
            )
        return tests

    def _suite_instance(self, cls: type) -> Any:
        instance = self._suite_instances.get(cls)
        if instance is None:
            instance = cls()
            self._suite_instances[cls] = instance
        return instance

    def _extend_import_path(self) -> None:
        for entry in self.config.discovery.paths:
            resolved = str((self.base_dir / entry).resolve())
            if resolved not in sys.path:
                sys.path.insert(0, resolved)

    def _import_modules(
        self,
        names: Iterable[str],
        reload: bool,
        errors: list[str],
    ) -> list[ModuleType]:
        modules: list[ModuleType] = []
        seen: set[str] = set()

        def load(name: str) -> Optional[ModuleType]:
            if name in seen:
                return None
            seen.add(name)
            try:
                if reload and name in sys.modules:
                    module = importlib.reload(sys.modules[name])
                else:
                    module = importlib.import_module(name)
            except Exception as e:
                log.warning("Could not import %s: %s", name, e)
                errors.append(f"{name}: {type(e).__name__}: {e}")
                return None
            modules.append(module)
            return module

        for name in names:
            module = load(name)
            if module is None or not self.config.discovery.recursive:
                continue
            package_path = getattr(module, "__path__", None)
            if package_path is None:
                continue
            for info in pkgutil.walk_packages(package_path, prefix=f"{module.__name__}."):
                load(info.name)

        return modules


def _is_ignored(obj: Any) -> bool:
    return bool(getattr(obj, IGNORE_MARKER, False))


def _origin(func: Callable) -> Optional[str]:
    try:
        source = inspect.getsourcefile(func)
    except TypeError:
        return None
    if source is None:
        return None
    return f"{source}:{func.__code__.co_firstlineno}"


def _make_invocable(func: Callable) -> Callable[[Any], Any]:
    """Adapt a module function so it can be called with the fixture."""
    try:
        params = inspect.signature(func).parameters
    except (TypeError, ValueError):
        return func
    if params:
        return func

    def invoke(fixture: Any) -> Any:
        return func()

    invoke.__name__ = func.__name__
    invoke.__qualname__ = func.__qualname__
    return invoke
