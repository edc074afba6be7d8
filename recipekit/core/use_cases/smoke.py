"""
Smoke use case — re-run a recipe's checks against an existing install.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from recipekit.adapters.registry import AdapterRegistry, default_registry
from recipekit.core.config.loader import ConfigError, default_cache_dir, load_recipe
from recipekit.core.engine.executor import PipelineReport, run_test_pipeline, write_audit_entry
from recipekit.core.models.recipe import Recipe
from recipekit.core.persistence.audit import AuditWriter


@dataclass
class SmokeRunResult:
    """Result of a test-only run."""

    report: PipelineReport | None = None
    recipe: Recipe | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "recipe": self.recipe.name if self.recipe else "",
            "report": self.report.to_dict() if self.report else None,
        }


def run_smoke_tests(
    recipe_ref: str | Path,
    prefix: Path,
    *,
    keep_scratch: bool = False,
    cache_dir: Path | None = None,
    registry: AdapterRegistry | None = None,
) -> SmokeRunResult:
    """Run the recipe's checks against ``<prefix>/bin/<binary>``."""
    result = SmokeRunResult()
    try:
        result.recipe = load_recipe(recipe_ref)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.report = run_test_pipeline(
        result.recipe,
        prefix,
        registry or default_registry(),
        keep_scratch=keep_scratch,
    )
    write_audit_entry(result.report, AuditWriter(cache_dir=cache_dir or default_cache_dir()))
    return result
