"""
Configuration loader — reads recipes into domain models.

A recipe reference is either the name of a built-in recipe or a path
to a YAML file. Either way the data is validated against the Pydantic
schema and returned as a frozen ``Recipe``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from recipekit.core.errors import ConfigError
from recipekit.core.models.recipe import Recipe
from recipekit.data.recipes import RECIPES

logger = logging.getLogger(__name__)

RECIPE_SUFFIXES = (".yml", ".yaml", ".json")

ENV_CACHE_DIR = "RECIPEKIT_CACHE"
ENV_PREFIX = "RECIPEKIT_PREFIX"

__all__ = [
    "ConfigError",
    "default_cache_dir",
    "default_prefix",
    "get_builtin_recipe",
    "list_builtin_recipes",
    "load_recipe",
    "load_recipe_file",
]


def default_cache_dir() -> Path:
    """Download/checkout cache: ``$RECIPEKIT_CACHE`` or ``~/.cache/recipekit``."""
    override = os.environ.get(ENV_CACHE_DIR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".cache" / "recipekit"


def default_prefix() -> Path | None:
    """Installation prefix from ``$RECIPEKIT_PREFIX``, if set."""
    override = os.environ.get(ENV_PREFIX)
    return Path(override).expanduser() if override else None


def list_builtin_recipes() -> list[str]:
    """Names of all built-in recipes, sorted."""
    return sorted(RECIPES)


def get_builtin_recipe(name: str) -> Recipe:
    """Validate and return a built-in recipe.

    Raises:
        ConfigError: If no built-in recipe has this name or it fails validation.
    """
    data = RECIPES.get(name)
    if data is None:
        raise ConfigError(
            f"Unknown recipe '{name}'. Built-in recipes: {', '.join(list_builtin_recipes())}"
        )
    return _validate(data, source=f"built-in recipe '{name}'")


def load_recipe_file(path: Path) -> Recipe:
    """Load and validate a recipe YAML file.

    The YAML may wrap everything under a ``recipe`` key or be flat.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Recipe file not found: {path}")

    logger.debug("Loading recipe from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    if isinstance(data.get("recipe"), dict):
        data = data["recipe"]

    return _validate(data, source=str(path))


def load_recipe(ref: str | Path) -> Recipe:
    """Resolve a recipe reference: a file path if it looks like one, else a built-in name.

    A ref is a path when it has a recipe suffix or more than one component;
    a bare name always means a built-in, whatever sits in the cwd.
    """
    path = Path(ref)
    if path.suffix in RECIPE_SUFFIXES or len(path.parts) > 1:
        return load_recipe_file(path)
    return get_builtin_recipe(str(ref))


def _validate(data: dict, source: str) -> Recipe:
    try:
        recipe = Recipe.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid recipe in {source}: {e}") from e

    logger.info("Loaded recipe '%s' (%s)", recipe.name, recipe.version or "head only")
    return recipe
