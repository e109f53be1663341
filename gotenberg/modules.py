"""The module system: descriptors, the module interfaces and the registry."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from gotenberg.flags import FlagSet

if TYPE_CHECKING:
    from gotenberg.cancellation import CancelScope
    from gotenberg.context import Context


class RegistrationError(Exception):
    """Raised when a module cannot be registered."""


@runtime_checkable
class Module(Protocol):
    """A plugin which adds functionality to the application or other modules."""

    def descriptor(self) -> ModuleDescriptor:
        """Describe the module for the application."""


@dataclass
class ModuleDescriptor:
    """Describes a module: its unique snake-case ID, its flags and a factory.

    ``new`` returns a new and empty instance of the module's type.
    """

    id: str
    flag_set: Optional[FlagSet] = None
    new: Optional[Callable[[], Module]] = None


@runtime_checkable
class Provisioner(Protocol):
    """A module initialised from flags, environment variables and the context."""

    def provision(self, ctx: Context) -> None:
        """Initialise the module; raise on failure."""


@runtime_checkable
class Validator(Protocol):
    """A module which is validated after provisioning."""

    def validate(self) -> None:
        """Check the module's state; raise on failure."""


@runtime_checkable
class App(Protocol):
    """A module which the application starts and stops."""

    def start(self) -> None:
        """Start the application; raise on failure."""

    def startup_message(self) -> str:
        """Return a custom startup message, or an empty string for the default."""

    def stop(self, scope: CancelScope) -> None:
        """Stop the application before ``scope`` is done; raise on failure."""


@runtime_checkable
class SystemLogger(Protocol):
    """A module which displays messages on startup."""

    def system_messages(self) -> list[str]:
        """Return the messages to display."""


_descriptors: dict[str, ModuleDescriptor] = {}
_descriptors_lock = threading.RLock()


def register_module(mod: Module) -> None:
    """Register a module by its descriptor.

    Raises RegistrationError if the ID is empty, the factory is missing or
    returns None, or a module with the same ID is already registered.
    """
    desc = mod.descriptor()

    if not desc.id:
        raise RegistrationError("module with an empty ID cannot be registered")
    if desc.new is None:
        raise RegistrationError("module New function cannot be nil")
    if desc.new() is None:
        raise RegistrationError("module New function cannot return a nil instance")

    with _descriptors_lock:
        if desc.id in _descriptors:
            raise RegistrationError(f"module {desc.id} is already registered")
        _descriptors[desc.id] = desc


def get_module_descriptors() -> list[ModuleDescriptor]:
    """Return the descriptors of all registered modules, sorted by ID."""
    with _descriptors_lock:
        return sorted(_descriptors.values(), key=lambda desc: desc.id)