"""Default fixture construction and destruction."""

import logging
from typing import Any, Callable, Optional, Protocol

from gametest.core.models import Descriptor

log = logging.getLogger(__name__)

TemplateFactory = Callable[[], Any]


class FixtureProvider(Protocol):
    """Collaborator that builds and destroys default fixtures."""

    def instantiate_default_fixture(self, descriptor: Descriptor) -> Any:
        """Create the fixture handed to a test body."""
        ...

    def destroy_fixture(self, handle: Any) -> None:
        """Release a fixture created by instantiate_default_fixture."""
        ...


class Fixture:
    """Named attribute bag used when a test declares no component."""

    def __init__(self, name: str):
        self.name = name
        self.destroyed = False

    def destroy(self) -> None:
        """Mark the fixture as destroyed."""
        self.destroyed = True

    def __repr__(self) -> str:
        return f"Fixture({self.name!r})"


class DefaultFixtureProvider:
    """Builds fixtures from templates, suites, or component classes.

    Resolution order for a descriptor:
        1. a template factory registered for its path
        2. the suite instance, for suite tests
        3. a new instance of its component class
        4. a new Fixture named after the test
    """

    def __init__(self, templates: Optional[dict[str, TemplateFactory]] = None):
        self.templates: dict[str, TemplateFactory] = dict(templates or {})
        self._suite_instances: list[Any] = []

    def register_template(self, path: str, factory: TemplateFactory) -> None:
        """Use factory to build the default fixture of the test at path."""
        self.templates[path] = factory

    def unregister_template(self, path: str) -> None:
        """Forget the template of the test at path, if any."""
        self.templates.pop(path, None)

    def instantiate_default_fixture(self, descriptor: Descriptor) -> Any:
        """Create the default fixture for a test."""
        factory = self.templates.get(descriptor.path)
        if factory is not None:
            return factory()

        if descriptor.suite:
            if descriptor.owner is not None and not any(
                s is descriptor.owner for s in self._suite_instances
            ):
                self._suite_instances.append(descriptor.owner)
            return descriptor.owner

        if descriptor.component is not None:
            return descriptor.component()

        label = descriptor.name
        if descriptor.origin:
            label = f"{label} ({descriptor.origin})"
        return Fixture(label)

    def destroy_fixture(self, handle: Any) -> None:
        """Destroy a fixture; suite instances outlive their tests."""
        if handle is None:
            return
        if any(s is handle for s in self._suite_instances):
            return
        destroy = getattr(handle, "destroy", None)
        if callable(destroy):
            destroy()
        else:
            log.debug("Fixture %r has no destroy() method", handle)
