"""The context through which modules are provisioned and look each other up."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

from gotenberg.flags import ParsedFlags
from gotenberg.modules import ModuleDescriptor, Provisioner, Validator


class ModuleLoadError(Exception):
    """Raised when modules cannot be found, provisioned or validated."""


def _kind_name(kind: Any) -> str:
    return getattr(kind, "__name__", repr(kind))


class Context:
    """Initialises modules on demand and caches their instances by ID."""

    def __init__(
        self,
        flags: ParsedFlags,
        descriptors: Optional[Iterable[ModuleDescriptor]] = None,
    ) -> None:
        self._flags = flags
        self._descriptors = list(descriptors or ())
        self._instances: dict[str, Any] = {}

    def parsed_flags(self) -> ParsedFlags:
        """Return the parsed flags."""
        return self._flags

    def module(self, kind: type) -> Any:
        """Return the one module which satisfies ``kind``.

        Raises ModuleLoadError if loading fails or if there is not exactly one
        such module.
        """
        try:
            mods = self.modules(kind)
        except ModuleLoadError as err:
            raise ModuleLoadError(f"get module: {err}") from err

        if len(mods) != 1:
            raise ModuleLoadError(
                f"expected to have one and only one {_kind_name(kind)} module"
            )
        return mods[0]

    def modules(self, kind: type) -> list[Any]:
        """Return the modules which satisfy ``kind``, initialising new ones."""
        mods: list[Any] = []
        for desc in self._descriptors:
            instance = desc.new()
            if not isinstance(instance, kind):
                continue
            if desc.id in self._instances:
                mods.append(self._instances[desc.id])
            else:
                self._load_module(desc.id, instance)
                mods.append(instance)
        return mods

    def _load_module(self, module_id: str, instance: Any) -> None:
        if isinstance(instance, Provisioner):
            try:
                instance.provision(self)
            except Exception as err:
                raise ModuleLoadError(f"provision module {module_id}: {err}") from err

        if isinstance(instance, Validator):
            try:
                instance.validate()
            except Exception as err:
                raise ModuleLoadError(f"validate module {module_id}: {err}") from err

        self._instances[module_id] = instance