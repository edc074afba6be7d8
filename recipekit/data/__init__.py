"""
Data — ``__init__.py`` re-exports the built-in recipe catalog.
"""

from recipekit.data.recipes import RECIPES, TOOLCHAIN_BINARIES  # noqa: F401
