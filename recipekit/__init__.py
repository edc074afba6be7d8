"""recipekit — build, install and smoke-test packages from declarative recipes."""

__version__ = "0.1.0"
