"""
Recipe model — the declarative package descriptor.

A recipe says where a package's source lives, how to build it, and how
to smoke-test the installed binary. Recipes are immutable once loaded:
every model here is frozen.

Source selection is a discriminated union on ``kind``: an archive source
carries a URL, version and checksum; a head source carries a repository
and branch and nothing else.
"""

from __future__ import annotations

import re
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

_SHA256_RE = re.compile(r"^[0-9a-f]{64}$")


def _relative_path(value: str) -> str:
    """Reject values that would leave the directory they are joined onto."""
    if not value.strip():
        raise ValueError("must not be empty")
    if value.startswith(("/", "\\")):
        raise ValueError(f"must be a relative path, got {value!r}")
    if ".." in re.split(r"[\\/]", value):
        raise ValueError(f"must not contain '..' segments, got {value!r}")
    return value


# Joined onto cache and scratch directories.
RelativePath = Annotated[str, AfterValidator(_relative_path)]


class ArchiveSource(BaseModel):
    """A released, checksum-verifiable source archive."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["archive"] = "archive"
    url: str
    version: RelativePath
    sha256: str = ""

    @property
    def filename(self) -> str:
        """Archive file name, taken from the last URL path segment."""
        return self.url.rstrip("/").rsplit("/", 1)[-1]

    @property
    def checksum_is_valid(self) -> bool:
        """Whether ``sha256`` looks like a real digest (not empty or a placeholder)."""
        return bool(_SHA256_RE.match(self.sha256.strip().lower()))


class HeadSource(BaseModel):
    """A moving development head on a named branch. Never checksummed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["head"] = "head"
    repository: str
    branch: RelativePath = "main"


SourceRef = Annotated[ArchiveSource | HeadSource, Field(discriminator="kind")]


class BuildDependency(BaseModel):
    """A tool needed to build the package but not to run it."""

    model_config = ConfigDict(frozen=True)

    name: str
    phase: Literal["build"] = "build"


class InstallSpec(BaseModel):
    """How the build backend is invoked.

    The prefix is never part of the recipe; the caller supplies it.
    """

    model_config = ConfigDict(frozen=True)

    backend: Literal["cargo"] = "cargo"
    args: tuple[str, ...] = ()      # appended after the standard arguments
    binary: str | None = None       # defaults to the recipe name


class OutputCheck(BaseModel):
    """Run the binary and require ``expect`` in its stdout."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["output"] = "output"
    name: str
    args: tuple[str, ...] = ()
    expect: str


class RunCheck(BaseModel):
    """Write a fixture file, run the binary against it, require exit 0.

    ``{fixture}`` in ``args`` is replaced with the fixture path.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["run"] = "run"
    name: str
    fixture: RelativePath
    content: str = ""
    args: tuple[str, ...] = ()


SmokeCheck = Annotated[OutputCheck | RunCheck, Field(discriminator="kind")]


class Recipe(BaseModel):
    """Immutable package descriptor.

    Either source may be absent; ``resolve()`` decides what that means
    for a given request.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=r"^[a-z0-9][a-z0-9._-]*$")
    description: str = ""
    homepage: str = ""
    license: str = ""

    stable: ArchiveSource | None = None
    head: HeadSource | None = None

    build_dependencies: tuple[BuildDependency, ...] = ()
    install: InstallSpec = Field(default_factory=InstallSpec)
    checks: tuple[SmokeCheck, ...] = ()

    @property
    def binary(self) -> str:
        """Name of the executable the build places in ``<prefix>/bin``."""
        return self.install.binary or self.name

    @property
    def version(self) -> str | None:
        """Declared stable version, if any."""
        return self.stable.version if self.stable else None

    def summary(self) -> dict:
        """Flat metadata view for listings and JSON output."""
        return {
            "name": self.name,
            "description": self.description,
            "homepage": self.homepage,
            "license": self.license,
            "version": self.version,
            "head": self.head is not None,
            "build_dependencies": [d.name for d in self.build_dependencies],
        }
