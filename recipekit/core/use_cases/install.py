"""
Install use case — load a recipe, run the pipeline, record the run.

This is the top-level orchestrator for ``recipekit install``: it loads
the recipe, sets up the adapter registry, runs every phase, and appends
the outcome to the audit ledger. The full vertical slice from user
intent to audited install.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from recipekit.adapters.registry import AdapterRegistry, default_registry
from recipekit.core.config.loader import ConfigError, default_cache_dir, load_recipe
from recipekit.core.engine.executor import (
    PipelineOptions,
    PipelineReport,
    run_install_pipeline,
    write_audit_entry,
)
from recipekit.core.models.recipe import Recipe
from recipekit.core.persistence.audit import AuditWriter
from recipekit.core.services.resolver import SourceSelector

logger = logging.getLogger(__name__)


@dataclass
class InstallRunResult:
    """Result of an install run."""

    report: PipelineReport | None = None
    recipe: Recipe | None = None
    audit_path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        result: dict = {
            "recipe": self.recipe.name if self.recipe else "",
            "audit_path": str(self.audit_path) if self.audit_path else None,
        }
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def run_install(
    recipe_ref: str | Path,
    prefix: Path,
    *,
    head: bool = False,
    version: str | None = None,
    cache_dir: Path | None = None,
    search_path: str | None = None,
    run_tests: bool = True,
    keep_scratch: bool = False,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> InstallRunResult:
    """Install a recipe into ``prefix``.

    Args:
        recipe_ref: Built-in recipe name or path to a recipe YAML file.
        prefix: Installation prefix.
        head: Build the development head instead of the stable release.
        version: Required stable version (rejected if it does not match).
        cache_dir: Download cache; defaults to ``$RECIPEKIT_CACHE``.
        search_path: Toolchain search path; defaults to ``$PATH``.
        run_tests: Run the smoke tests after installing.
        keep_scratch: Keep the smoke-test scratch directory.
        dry_run: Check dependencies and resolve only.
        registry: Optional pre-configured adapter registry.

    Returns:
        InstallRunResult with the pipeline report.
    """
    result = InstallRunResult()

    try:
        recipe = load_recipe(recipe_ref)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.recipe = recipe

    cache_dir = cache_dir or default_cache_dir()
    if registry is None:
        registry = default_registry(mock_mode=dry_run)

    options = PipelineOptions(
        prefix=prefix,
        cache_dir=cache_dir,
        selector=SourceSelector.HEAD if head else SourceSelector.STABLE,
        version=version,
        search_path=search_path,
        run_tests=run_tests,
        keep_scratch=keep_scratch,
        dry_run=dry_run,
    )
    result.report = run_install_pipeline(recipe, options, registry)

    audit_writer = AuditWriter(cache_dir=cache_dir)
    write_audit_entry(result.report, audit_writer)
    result.audit_path = audit_writer.path

    return result
