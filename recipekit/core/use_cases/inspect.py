"""
Inspect use cases — recipe metadata, source resolution, run history.

Read-only: nothing is downloaded, built or installed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from recipekit.adapters.registry import AdapterRegistry, default_registry
from recipekit.core.config.loader import ConfigError, default_cache_dir, load_recipe
from recipekit.core.errors import RecipeError
from recipekit.core.models.recipe import Recipe
from recipekit.core.persistence.audit import AuditEntry, AuditWriter
from recipekit.core.services.resolver import ResolvedSource, SourceSelector, resolve
from recipekit.core.services.toolchain import DependencyReport, check_dependencies


# ── Info ────────────────────────────────────────────────────────────


@dataclass
class InfoResult:
    """Recipe metadata plus the state of its toolchain and adapters."""

    recipe: Recipe | None = None
    dependencies: DependencyReport | None = None
    adapters: dict[str, dict] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        assert self.recipe is not None
        data = self.recipe.summary()
        data["binary"] = self.recipe.binary
        data["checks"] = [c.name for c in self.recipe.checks]
        data["stable"] = self.recipe.stable.model_dump() if self.recipe.stable else None
        data["head_source"] = self.recipe.head.model_dump() if self.recipe.head else None
        if self.dependencies:
            data["toolchain"] = self.dependencies.to_dict()
        data["adapters"] = self.adapters
        return data


def describe_recipe(
    recipe_ref: str | Path,
    search_path: str | None = None,
    registry: AdapterRegistry | None = None,
) -> InfoResult:
    """Load a recipe and look up (without requiring) its build dependencies and adapters."""
    result = InfoResult()
    try:
        result.recipe = load_recipe(recipe_ref)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.dependencies = check_dependencies(
        result.recipe.build_dependencies, search_path=search_path,
    )
    result.adapters = (registry or default_registry()).adapter_status()
    return result


# ── Resolve ─────────────────────────────────────────────────────────


@dataclass
class ResolveResult:
    """Which source an install would use."""

    resolved: ResolvedSource | None = None
    error: RecipeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.resolved is not None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error.to_dict()}
        assert self.resolved is not None
        return self.resolved.to_dict()


def resolve_recipe(
    recipe_ref: str | Path,
    *,
    head: bool = False,
    version: str | None = None,
) -> ResolveResult:
    """Resolve the stable or head source of a recipe."""
    result = ResolveResult()
    try:
        recipe = load_recipe(recipe_ref)
        result.resolved = resolve(
            recipe,
            SourceSelector.HEAD if head else SourceSelector.STABLE,
            version,
        )
    except RecipeError as e:
        result.error = e
    return result


# ── History ─────────────────────────────────────────────────────────


@dataclass
class HistoryResult:
    """Recent ledger entries."""

    path: Path | None = None
    entries: list[AuditEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "path": str(self.path) if self.path else None,
            "entries": [e.model_dump(mode="json") for e in self.entries],
        }


def read_history(
    recipe: str | None = None,
    *,
    limit: int = 20,
    cache_dir: Path | None = None,
) -> HistoryResult:
    """Most recent install/test runs, optionally for one recipe."""
    writer = AuditWriter(cache_dir=cache_dir or default_cache_dir())
    if recipe:
        entries = writer.for_recipe(recipe)[-limit:]
    else:
        entries = writer.read_recent(limit)
    return HistoryResult(path=writer.path, entries=entries)
