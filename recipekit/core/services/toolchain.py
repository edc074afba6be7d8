"""
Toolchain checks — are the declared build dependencies installed?

Each build dependency name maps to the binaries it must provide
(``rust`` → ``cargo`` + ``rustc``). Binaries are looked up with
``shutil.which`` on the given search path, or on ``$PATH`` when none
is given. Nothing is installed or modified here.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from typing import Iterable

from recipekit.core.errors import MissingDependency
from recipekit.core.models.recipe import BuildDependency
from recipekit.data.recipes import TOOLCHAIN_BINARIES

logger = logging.getLogger(__name__)


def binaries_for(dependency: str) -> list[str]:
    """Binaries a dependency name requires; unknown names map to themselves."""
    return list(TOOLCHAIN_BINARIES.get(dependency, [dependency]))


def is_known_dependency(dependency: str) -> bool:
    return dependency in TOOLCHAIN_BINARIES


@dataclass
class DependencyStatus:
    """Lookup result for one declared dependency."""

    name: str
    phase: str = "build"
    found: dict[str, str] = field(default_factory=dict)   # binary → absolute path
    missing: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "phase": self.phase,
            "ok": self.ok,
            "found": self.found,
            "missing": self.missing,
        }


@dataclass
class DependencyReport:
    """Lookup results for all declared dependencies."""

    statuses: list[DependencyStatus] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.statuses)

    @property
    def missing(self) -> list[str]:
        """Missing binaries across all dependencies, in declaration order."""
        return [b for s in self.statuses for b in s.missing]

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "missing": self.missing,
            "dependencies": [s.to_dict() for s in self.statuses],
        }


def check_dependencies(
    dependencies: Iterable[BuildDependency],
    search_path: str | None = None,
) -> DependencyReport:
    """Look up every binary each dependency needs.

    Args:
        dependencies: Declared build dependencies.
        search_path: ``os.pathsep``-separated directories; ``None`` means ``$PATH``.
    """
    report = DependencyReport()
    for dep in dependencies:
        status = DependencyStatus(name=dep.name, phase=dep.phase)
        for binary in binaries_for(dep.name):
            located = shutil.which(binary, path=search_path)
            if located:
                status.found[binary] = located
            else:
                status.missing.append(binary)
        logger.debug(
            "Dependency %s: found=%s missing=%s", dep.name, list(status.found), status.missing,
        )
        report.statuses.append(status)
    return report


def require_dependencies(
    dependencies: Iterable[BuildDependency],
    search_path: str | None = None,
    *,
    phase: str | None = None,
) -> DependencyReport:
    """Like ``check_dependencies`` but raise when anything is missing.

    Raises:
        MissingDependency: One or more binaries are not on the search path.
    """
    report = check_dependencies(dependencies, search_path=search_path)
    if not report.ok:
        names = [s.name for s in report.statuses if not s.ok]
        raise MissingDependency(
            f"Missing build dependency: {', '.join(names)} "
            f"(binaries not found: {', '.join(report.missing)})",
            missing=report.missing,
            phase=phase,
        )
    return report
