"""
Error taxonomy — every failure a recipe run can surface.

Services raise these; the pipeline engine records the failed phase and
stops. Nothing here is retried or recovered locally.
"""

from __future__ import annotations

from typing import Any


class RecipeError(Exception):
    """Base class for all recipe failures.

    Attributes:
        code: Stable machine-readable identifier.
        phase: Pipeline phase the error belongs to.
        check: Name of the failing check, when one applies.
        expected / actual: Compared values, when one applies.
        scratch_dir: Kept smoke-test directory, when the failure left one.
    """

    code: str = "RECIPE_ERROR"
    phase: str = "recipe"
    scratch_dir: str | None = None

    def __init__(
        self,
        message: str,
        *,
        check: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.check = check
        self.expected = expected
        self.actual = actual
        if phase is not None:
            self.phase = phase

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "phase": self.phase,
            "message": self.message,
        }
        if self.check is not None:
            data["check"] = self.check
        if self.expected is not None:
            data["expected"] = self.expected
        if self.actual is not None:
            data["actual"] = self.actual
        if self.scratch_dir is not None:
            data["scratch_dir"] = self.scratch_dir
        return data


class ConfigError(RecipeError):
    """Recipe file missing, unreadable, or schema-invalid."""

    code = "CONFIG_ERROR"
    phase = "load"


class UnresolvableSource(RecipeError):
    """No usable source variant, or the requested version/branch does not exist."""

    code = "UNRESOLVABLE_SOURCE"
    phase = "resolve"


class InvalidChecksum(RecipeError):
    """The declared checksum is empty, a placeholder, or not a SHA-256 digest."""

    code = "INVALID_CHECKSUM"
    phase = "resolve"


class FetchError(RecipeError):
    """Download or checkout failed for a reason other than a missing ref."""

    code = "FETCH_ERROR"
    phase = "fetch"


class ChecksumMismatch(RecipeError):
    """Fetched bytes do not match the declared digest."""

    code = "CHECKSUM_MISMATCH"
    phase = "verify"


class MissingDependency(RecipeError):
    """A declared build dependency is absent from the search path."""

    code = "MISSING_DEPENDENCY"
    phase = "dependencies"

    def __init__(self, message: str, *, missing: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.missing = missing or []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["missing"] = self.missing
        return data


class BuildFailure(RecipeError):
    """The build toolchain exited non-zero or produced no executable."""

    code = "BUILD_FAILURE"
    phase = "build"

    def __init__(self, message: str, *, return_code: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.return_code = return_code


class AssertionFailure(RecipeError):
    """A smoke-test output check did not contain the expected text."""

    code = "ASSERTION_FAILURE"
    phase = "test"


class SubprocessFailure(RecipeError):
    """A smoke-test invocation crashed or exited non-zero."""

    code = "SUBPROCESS_FAILURE"
    phase = "test"

    def __init__(self, message: str, *, return_code: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.return_code = return_code
