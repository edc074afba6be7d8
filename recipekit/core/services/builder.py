"""
Build and install — run the recipe's build backend into a prefix.

The recipe never names the prefix; the caller does. Dependencies are
checked before anything runs, so a missing toolchain leaves the
prefix untouched. Cleaning up after a failed build is the build
tool's job, not ours.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from recipekit.adapters.registry import AdapterRegistry
from recipekit.core.errors import BuildFailure
from recipekit.core.models.action import Action, Receipt
from recipekit.core.models.recipe import Recipe
from recipekit.core.services.toolchain import require_dependencies

logger = logging.getLogger(__name__)

DEFAULT_BUILD_TIMEOUT = 3600


def std_cargo_args(prefix: Path) -> list[str]:
    """Standard ``cargo install`` arguments for an installation prefix."""
    return ["--locked", "--root", str(prefix), "--path", "."]


def build_command(recipe: Recipe, prefix: Path) -> list[str]:
    """Full argv for the recipe's build backend."""
    return ["cargo", "install", *std_cargo_args(prefix), *recipe.install.args]


def binary_path(recipe: Recipe, prefix: Path) -> Path:
    """Where the installed executable is expected to be."""
    return prefix / "bin" / recipe.binary


def is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


@dataclass
class InstallResult:
    """Outcome of a successful install."""

    binary: Path
    prefix: Path
    command: list[str]
    receipt: Receipt

    def to_dict(self) -> dict:
        return {
            "binary": str(self.binary),
            "prefix": str(self.prefix),
            "command": self.command,
            "duration_ms": self.receipt.duration_ms,
        }


def install(
    recipe: Recipe,
    source_dir: Path,
    prefix: Path,
    registry: AdapterRegistry,
    *,
    search_path: str | None = None,
    timeout: int = DEFAULT_BUILD_TIMEOUT,
) -> InstallResult:
    """Build the staged source and install its binary under ``prefix``.

    Args:
        recipe: Recipe being installed.
        source_dir: Staged source tree (build working directory).
        prefix: Installation prefix; the binary lands in ``<prefix>/bin``.
        registry: Adapter registry used to run the build.
        search_path: Directories searched for the toolchain; also prepended
            to the build's ``PATH``. ``None`` means the inherited ``$PATH``.
        timeout: Build timeout in seconds.

    Raises:
        MissingDependency: A build dependency is absent. Nothing is run.
        BuildFailure: The build exited non-zero, timed out, or produced no
            executable at the expected path.
    """
    require_dependencies(recipe.build_dependencies, search_path=search_path, phase="build")

    prefix = prefix.resolve()
    command = build_command(recipe, prefix)
    params: dict = {"argv": command, "cwd": str(source_dir), "timeout": timeout}
    if search_path:
        params["env"] = {"PATH": f"{search_path}{os.pathsep}$PATH"}

    action = Action(
        id=f"{recipe.name}:build:install",
        name=f"{recipe.install.backend} install {recipe.name}",
        adapter="shell",
        phase="build",
        params=params,
    )
    logger.info("Building %s: %s", recipe.name, " ".join(command))
    receipt = registry.execute_action(action, working_dir=str(source_dir))

    if not receipt.ok:
        raise BuildFailure(
            f"{recipe.install.backend} install failed for {recipe.name}"
            + (f" (exit {receipt.return_code})" if receipt.return_code is not None else "")
            + f": {receipt.error or 'no output'}",
            return_code=receipt.return_code,
        )

    binary = binary_path(recipe, prefix)
    if not is_executable(binary):
        raise BuildFailure(
            f"Build of {recipe.name} succeeded but no executable was installed at {binary}",
            check="binary",
            expected=str(binary),
        )

    logger.info("Installed %s → %s", recipe.name, binary)
    return InstallResult(binary=binary, prefix=prefix, command=command, receipt=receipt)
