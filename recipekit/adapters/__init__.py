"""Adapters — the only layer that spawns external processes.

Public re-exports for convenient access.
"""

from recipekit.adapters.base import Adapter, ExecutionContext
from recipekit.adapters.mock import MockAdapter
from recipekit.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]
