"""
Domain models — Pydantic types for recipes and execution.

All models are re-exported here for convenient access:

    from recipekit.core.models import Recipe, ArchiveSource, HeadSource, Action, Receipt
"""

from recipekit.core.models.action import Action, Receipt
from recipekit.core.models.recipe import (
    ArchiveSource,
    BuildDependency,
    HeadSource,
    InstallSpec,
    OutputCheck,
    Recipe,
    RunCheck,
    SmokeCheck,
    SourceRef,
)

__all__ = [
    # action.py
    "Action",
    # recipe.py
    "ArchiveSource",
    "BuildDependency",
    "HeadSource",
    "InstallSpec",
    "OutputCheck",
    "Receipt",
    "Recipe",
    "RunCheck",
    "SmokeCheck",
    "SourceRef",
]
