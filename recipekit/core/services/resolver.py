"""
Source resolution — pick the source variant a run will build from.

Stable requests get the versioned archive and its checksum. Head
requests get the repository and branch, and no checksum at all:
head builds are never integrity-checked, and that gap is logged,
not papered over.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from recipekit.core.errors import InvalidChecksum, UnresolvableSource
from recipekit.core.models.recipe import ArchiveSource, Recipe, SourceRef

logger = logging.getLogger(__name__)

HEAD_TRUST_NOTE = "head builds skip integrity verification"


class SourceSelector(str, Enum):
    """Which source variant a run should use."""

    STABLE = "stable"
    HEAD = "head"


@dataclass(frozen=True)
class ResolvedSource:
    """The single active source variant for one run."""

    recipe: str
    selector: SourceSelector
    source: SourceRef
    checksum: str | None = None

    @property
    def is_archive(self) -> bool:
        return isinstance(self.source, ArchiveSource)

    @property
    def version(self) -> str:
        """Version label: the release version, or ``HEAD-<branch>``."""
        if isinstance(self.source, ArchiveSource):
            return self.source.version
        return f"HEAD-{self.source.branch}"

    @property
    def location(self) -> str:
        if isinstance(self.source, ArchiveSource):
            return self.source.url
        return f"{self.source.repository}#{self.source.branch}"

    def to_dict(self) -> dict:
        return {
            "recipe": self.recipe,
            "selector": self.selector.value,
            "kind": self.source.kind,
            "version": self.version,
            "location": self.location,
            "checksum": self.checksum,
            "verified": self.is_archive,
        }


def _normalize_version(version: str) -> str:
    return version.strip().removeprefix("v")


def resolve(
    recipe: Recipe,
    selector: SourceSelector = SourceSelector.STABLE,
    version: str | None = None,
) -> ResolvedSource:
    """Resolve the source for a stable or head request.

    Args:
        recipe: The recipe to resolve.
        selector: Stable release or development head.
        version: Optional requested release version (stable only).

    Raises:
        UnresolvableSource: The variant is missing or the version does not match.
        InvalidChecksum: The stable checksum is empty or a placeholder.
    """
    if selector is SourceSelector.HEAD:
        if recipe.head is None:
            raise UnresolvableSource(f"Recipe '{recipe.name}' declares no head source")
        if version:
            raise UnresolvableSource(
                f"A version ({version}) cannot be combined with a head build of '{recipe.name}'"
            )
        logger.warning(
            "%s: %s (%s#%s)",
            recipe.name, HEAD_TRUST_NOTE, recipe.head.repository, recipe.head.branch,
        )
        return ResolvedSource(recipe=recipe.name, selector=selector, source=recipe.head)

    stable = recipe.stable
    if stable is None:
        hint = " (try a head build)" if recipe.head else ""
        raise UnresolvableSource(f"Recipe '{recipe.name}' declares no stable source{hint}")

    if version and _normalize_version(version) != _normalize_version(stable.version):
        raise UnresolvableSource(
            f"Recipe '{recipe.name}' provides version {stable.version}, not {version}",
            expected=version,
            actual=stable.version,
        )

    if not stable.checksum_is_valid:
        raise InvalidChecksum(
            f"Recipe '{recipe.name}' {stable.version} has no usable sha256 "
            f"(got {stable.sha256!r}); refusing to build unverified source",
            actual=stable.sha256,
        )

    logger.info("Resolved %s %s → %s", recipe.name, stable.version, stable.url)
    return ResolvedSource(
        recipe=recipe.name,
        selector=selector,
        source=stable,
        checksum=stable.sha256.strip().lower(),
    )
