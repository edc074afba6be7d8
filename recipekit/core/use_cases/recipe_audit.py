"""
Recipe audit use case — static checks on a recipe, nothing is run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from recipekit.core.config.loader import ConfigError, load_recipe
from recipekit.core.models.recipe import Recipe
from recipekit.core.services.toolchain import is_known_dependency


@dataclass
class RecipeAuditResult:
    """Result of auditing a recipe."""

    valid: bool = False
    recipe: Recipe | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "recipe": self.recipe.name if self.recipe else None,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def audit_recipe(recipe_ref: str | Path) -> RecipeAuditResult:
    """Validate a recipe and report problems an install would hit.

    Args:
        recipe_ref: Built-in recipe name or path to a recipe YAML file.

    Returns:
        RecipeAuditResult with validation status and any issues.
    """
    result = RecipeAuditResult()

    try:
        recipe = load_recipe(recipe_ref)
        result.recipe = recipe
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    if recipe.stable is None and recipe.head is None:
        result.errors.append("No source defined: add a stable archive or a head repository.")

    # Stable archive
    stable = recipe.stable
    if stable is not None:
        if not stable.sha256.strip():
            result.errors.append("Stable source has no sha256 checksum.")
        elif not stable.checksum_is_valid:
            result.errors.append(
                f"Stable source checksum is not a sha256 hex digest: {stable.sha256!r}"
            )

        scheme = urlparse(stable.url).scheme
        if scheme not in ("http", "https"):
            result.errors.append(f"Stable source URL must be http(s): {stable.url}")

        if stable.version not in stable.url:
            result.errors.append(
                f"Stable source URL does not mention version {stable.version}: {stable.url}"
            )

    # Head checkout
    head = recipe.head
    if head is not None and urlparse(head.repository).scheme != "https":
        result.warnings.append(f"Head repository is not fetched over https: {head.repository}")

    if not recipe.checks:
        result.errors.append(f"No checks declared for binary '{recipe.binary}'.")

    # Metadata
    if not recipe.homepage:
        result.warnings.append("No homepage set.")
    if not recipe.license:
        result.warnings.append("No license set.")

    for dep in recipe.build_dependencies:
        if not is_known_dependency(dep.name):
            result.warnings.append(
                f"Unknown build dependency '{dep.name}': it will be looked up as a binary."
            )

    result.valid = len(result.errors) == 0
    return result
