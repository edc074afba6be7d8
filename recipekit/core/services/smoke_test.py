"""
Smoke tests — run a recipe's checks against the installed binary.

Checks run in declaration order and the first failure stops the run.
Run checks get a scratch directory for their fixture files; it is
removed afterwards unless ``keep_scratch`` is set, in which case its
path lands on the report, or on the error when a check fails.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from recipekit.adapters.registry import AdapterRegistry
from recipekit.core.errors import AssertionFailure, RecipeError, SubprocessFailure
from recipekit.core.models.action import Action, Receipt
from recipekit.core.models.recipe import OutputCheck, Recipe, RunCheck
from recipekit.core.services.builder import is_executable

logger = logging.getLogger(__name__)

DEFAULT_CHECK_TIMEOUT = 60
FIXTURE_TOKEN = "{fixture}"


@dataclass
class CheckResult:
    """Outcome of one passed check."""

    name: str
    kind: str
    command: list[str]
    output: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind,
            "command": self.command,
            "output": self.output,
        }


@dataclass
class SmokeTestReport:
    """All checks passed; what each one saw."""

    binary: Path
    results: list[CheckResult] = field(default_factory=list)
    scratch_dir: Path | None = None    # set only when the scratch dir was kept

    @property
    def passed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            "binary": str(self.binary),
            "passed": self.passed,
            "checks": [r.to_dict() for r in self.results],
            "scratch_dir": str(self.scratch_dir) if self.scratch_dir else None,
        }


def run_checks(
    recipe: Recipe,
    binary: Path,
    registry: AdapterRegistry,
    *,
    keep_scratch: bool = False,
    timeout: int = DEFAULT_CHECK_TIMEOUT,
) -> SmokeTestReport:
    """Run every check the recipe declares against ``binary``.

    Raises:
        SubprocessFailure: The binary is missing, or a check crashed or
            exited non-zero.
        AssertionFailure: An output check did not contain its expected text.
    """
    if not is_executable(binary):
        raise SubprocessFailure(
            f"Installed binary not found or not executable: {binary}",
            check="preflight",
            expected=str(binary),
        )

    scratch = Path(tempfile.mkdtemp(prefix=f"{recipe.name}-test-"))
    report = SmokeTestReport(binary=binary)
    try:
        for check in recipe.checks:
            if isinstance(check, OutputCheck):
                result = _run_output_check(check, binary, scratch, registry, recipe.name, timeout)
            else:
                result = _run_fixture_check(check, binary, scratch, registry, recipe.name, timeout)
            logger.info("✓ %s: %s", recipe.name, check.name)
            report.results.append(result)
    except RecipeError as e:
        if keep_scratch:
            e.scratch_dir = str(scratch)
        raise
    finally:
        if keep_scratch:
            report.scratch_dir = scratch
            logger.info("Scratch directory kept: %s", scratch)
        else:
            shutil.rmtree(scratch, ignore_errors=True)

    return report


def _run(
    registry: AdapterRegistry,
    recipe_name: str,
    check_name: str,
    argv: list[str],
    cwd: Path,
    timeout: int,
) -> Receipt:
    action = Action(
        id=f"{recipe_name}:test:{check_name}",
        name=check_name,
        adapter="shell",
        phase="test",
        params={"argv": argv, "cwd": str(cwd), "timeout": timeout},
    )
    return registry.execute_action(action, working_dir=str(cwd))


def _raise_for_receipt(check_name: str, argv: list[str], receipt: Receipt) -> None:
    if receipt.ok:
        return
    code = receipt.return_code
    if receipt.details.get("timed_out"):
        status = f"timed out after {receipt.details['timeout']}s"
    elif code is not None:
        status = f"exit {code}"
    else:
        status = "did not run"
    message = f"Check '{check_name}' failed ({status}): {' '.join(argv)}"
    if receipt.error:
        message += f": {receipt.error}"
    raise SubprocessFailure(
        message,
        check=check_name,
        expected="exit 0",
        actual=status,
        return_code=code,
    )


def _run_output_check(
    check: OutputCheck,
    binary: Path,
    scratch: Path,
    registry: AdapterRegistry,
    recipe_name: str,
    timeout: int,
) -> CheckResult:
    argv = [str(binary), *check.args]
    receipt = _run(registry, recipe_name, check.name, argv, scratch, timeout)
    _raise_for_receipt(check.name, argv, receipt)

    if check.expect not in receipt.output:
        raise AssertionFailure(
            f"Check '{check.name}': output of {' '.join(argv)} does not contain {check.expect!r}",
            check=check.name,
            expected=check.expect,
            actual=receipt.output,
        )
    return CheckResult(name=check.name, kind=check.kind, command=argv, output=receipt.output)


def _run_fixture_check(
    check: RunCheck,
    binary: Path,
    scratch: Path,
    registry: AdapterRegistry,
    recipe_name: str,
    timeout: int,
) -> CheckResult:
    fixture = scratch / check.fixture
    if not fixture.resolve().is_relative_to(scratch.resolve()):
        raise SubprocessFailure(
            f"Check '{check.name}': fixture {check.fixture!r} is outside the scratch directory",
            check=check.name,
            expected=str(scratch),
            actual=str(fixture.resolve()),
        )
    fixture.parent.mkdir(parents=True, exist_ok=True)
    fixture.write_text(check.content, encoding="utf-8")

    args = [a.replace(FIXTURE_TOKEN, check.fixture) for a in check.args]
    argv = [str(binary), *args]
    receipt = _run(registry, recipe_name, check.name, argv, scratch, timeout)
    _raise_for_receipt(check.name, argv, receipt)
    return CheckResult(name=check.name, kind=check.kind, command=argv, output=receipt.output)
