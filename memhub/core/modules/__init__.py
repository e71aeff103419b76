"""
Memory modules.

- MemoryModule: the contract every module implements
- VectorMemoryModule: template implementation over a vector store partition
- TechnicalModule: adds technical metadata enrichment
- ModuleRegistry: closed lookup table of modules
"""

from memhub.core.modules.base import MemoryModule
from memhub.core.modules.registry import ModuleRegistry
from memhub.core.modules.selection import determine_module
from memhub.core.modules.standard import VectorMemoryModule
from memhub.core.modules.technical import TechnicalModule

__all__ = [
    "MemoryModule",
    "ModuleRegistry",
    "TechnicalModule",
    "VectorMemoryModule",
    "determine_module",
]
