"""
Module registry.

A closed lookup table from module id to module instance, built once at
startup. Lookups of unknown or inactive modules are input errors.
"""

from memhub.core.modules.base import MemoryModule
from memhub.models.module import ModuleInfo
from memhub.utils.exceptions import ConfigurationError, ValidationError


class ModuleRegistry:
    """Fixed set of memory modules keyed by module id."""

    def __init__(self, modules: list[MemoryModule]):
        self._modules: dict[str, MemoryModule] = {}
        for module in modules:
            if module.module_id in self._modules:
                raise ConfigurationError(f"Duplicate module id: {module.module_id}")
            self._modules[module.module_id] = module

    def __contains__(self, module_id: str) -> bool:
        return module_id in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    def get(self, module_id: str) -> MemoryModule | None:
        return self._modules.get(module_id)

    def is_active(self, module_id: str) -> bool:
        module = self._modules.get(module_id)
        return module is not None and module.info.active

    def require(self, module_id: str) -> MemoryModule:
        """
        Resolve an active module.

        Raises:
            ValidationError: Unknown or inactive module
        """
        module = self._modules.get(module_id)
        if module is None:
            raise ValidationError(f"Unknown module: {module_id}", {"module_id": module_id})
        if not module.info.active:
            raise ValidationError(f"Module is inactive: {module_id}", {"module_id": module_id})
        return module

    def all(self) -> list[MemoryModule]:
        return list(self._modules.values())

    def active(self) -> list[MemoryModule]:
        return [m for m in self._modules.values() if m.info.active]

    def active_ids(self) -> list[str]:
        return sorted(m.module_id for m in self.active())

    def infos(self) -> list[ModuleInfo]:
        return [m.info for m in self._modules.values()]
