"""
Engine executor — the install pipeline.

The engine takes a recipe and runs its phases strictly in order,
stopping at the first failure. Every phase gets a record in the
report, so a failed run shows exactly where it stopped and which
phases never ran.

Flow:
    dependencies → resolve → fetch → verify → build → test → audit
"""

from __future__ import annotations

import logging
import shutil
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from recipekit.adapters.registry import AdapterRegistry
from recipekit.core.errors import RecipeError
from recipekit.core.models.recipe import Recipe
from recipekit.core.persistence.audit import AuditEntry, AuditWriter
from recipekit.core.services import builder, fetcher, smoke_test, toolchain
from recipekit.core.services.resolver import (
    HEAD_TRUST_NOTE,
    ResolvedSource,
    SourceSelector,
    resolve,
)

logger = logging.getLogger(__name__)

PHASES = ("dependencies", "resolve", "fetch", "verify", "build", "test")

PhaseStatus = Literal["ok", "failed", "skipped"]


@dataclass
class PhaseRecord:
    """What happened in one pipeline phase."""

    phase: str
    status: PhaseStatus = "skipped"
    detail: str = ""
    duration_ms: int = 0
    error: dict | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "phase": self.phase,
            "status": self.status,
            "detail": self.detail,
            "duration_ms": self.duration_ms,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class PipelineOptions:
    """Caller-supplied settings for one install run."""

    prefix: Path
    cache_dir: Path
    selector: SourceSelector = SourceSelector.STABLE
    version: str | None = None
    search_path: str | None = None
    run_tests: bool = True
    keep_scratch: bool = False
    dry_run: bool = False
    build_timeout: int = builder.DEFAULT_BUILD_TIMEOUT
    check_timeout: int = smoke_test.DEFAULT_CHECK_TIMEOUT
    fetch_timeout: int = 300


@dataclass
class PipelineReport:
    """Result of running the pipeline."""

    operation_id: str = ""
    operation_type: str = "install"
    recipe: str = ""
    selector: str = SourceSelector.STABLE.value
    prefix: str = ""
    dry_run: bool = False
    phases: list[PhaseRecord] = field(default_factory=list)

    resolved: ResolvedSource | None = None
    fetched: fetcher.FetchedSource | None = None
    installed: builder.InstallResult | None = None
    smoke: smoke_test.SmokeTestReport | None = None
    error: RecipeError | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        return "ok" if self.ok else "failed"

    @property
    def failed_phase(self) -> str | None:
        for record in self.phases:
            if record.status == "failed":
                return record.phase
        return None

    @property
    def version(self) -> str:
        if self.fetched:
            return self.fetched.version
        if self.resolved:
            return self.resolved.version
        return ""

    def record(self, phase: str) -> PhaseRecord:
        for rec in self.phases:
            if rec.phase == phase:
                return rec
        rec = PhaseRecord(phase=phase)
        self.phases.append(rec)
        return rec

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "operation_type": self.operation_type,
            "recipe": self.recipe,
            "selector": self.selector,
            "version": self.version,
            "prefix": self.prefix,
            "dry_run": self.dry_run,
            "status": self.status,
            "failed_phase": self.failed_phase,
            "duration_ms": self.duration_ms,
            "phases": [p.to_dict() for p in self.phases],
            "source": self.resolved.to_dict() if self.resolved else None,
            "fetched": self.fetched.to_dict() if self.fetched else None,
            "install": self.installed.to_dict() if self.installed else None,
            "test": self.smoke.to_dict() if self.smoke else None,
            "error": self.error.to_dict() if self.error else None,
        }


StepFn = Callable[[], tuple[PhaseStatus, str]]


def _run_steps(report: PipelineReport, steps: list[tuple[str, StepFn]]) -> PipelineReport:
    """Run steps in order; the first RecipeError fails its phase and stops the run."""
    for phase, _ in steps:
        report.record(phase)

    run_start = time.monotonic()
    for index, (phase, step) in enumerate(steps):
        rec = report.record(phase)
        start = time.monotonic()
        try:
            rec.status, rec.detail = step()
        except RecipeError as e:
            rec.status = "failed"
            rec.detail = e.message
            rec.error = e.to_dict()
            report.error = e
            logger.error("✗ %s: %s failed — %s", report.recipe, phase, e.message)
            for later, _ in steps[index + 1:]:
                report.record(later).detail = f"not run: {phase} failed"
            break
        finally:
            rec.duration_ms = int((time.monotonic() - start) * 1000)

        marker = "✓" if rec.status == "ok" else "⊘"
        logger.info("%s %s:%s %s", marker, report.recipe, phase, rec.detail)

    report.duration_ms = int((time.monotonic() - run_start) * 1000)
    return report


def run_install_pipeline(
    recipe: Recipe,
    options: PipelineOptions,
    registry: AdapterRegistry,
) -> PipelineReport:
    """Resolve, fetch, verify, build, install and (optionally) test a recipe.

    Never raises RecipeError: the failure is recorded in the report.
    """
    report = PipelineReport(
        operation_id=generate_operation_id(),
        operation_type="install",
        recipe=recipe.name,
        selector=options.selector.value,
        prefix=str(options.prefix),
        dry_run=options.dry_run,
    )

    def dependencies() -> tuple[PhaseStatus, str]:
        deps = toolchain.require_dependencies(
            recipe.build_dependencies, search_path=options.search_path,
        )
        found = ", ".join(sorted(b for s in deps.statuses for b in s.found))
        return "ok", f"found {found}" if found else "no build dependencies declared"

    def resolve_step() -> tuple[PhaseStatus, str]:
        report.resolved = resolve(recipe, options.selector, options.version)
        return "ok", f"{report.resolved.version} from {report.resolved.location}"

    def fetch() -> tuple[PhaseStatus, str]:
        if options.dry_run:
            return "skipped", "[dry-run] would fetch"
        assert report.resolved is not None
        report.fetched = fetcher.fetch_source(
            report.resolved, options.cache_dir, registry, timeout=options.fetch_timeout,
        )
        origin = "cache" if report.fetched.cached else "upstream"
        return "ok", f"{report.fetched.path} ({origin})"

    def verify() -> tuple[PhaseStatus, str]:
        if options.dry_run:
            return "skipped", "[dry-run] would verify"
        assert report.fetched is not None
        if not fetcher.verify_source(report.fetched):
            return "skipped", HEAD_TRUST_NOTE
        return "ok", f"sha256 {report.fetched.resolved.checksum}"

    def build() -> tuple[PhaseStatus, str]:
        if options.dry_run:
            return "skipped", "[dry-run] would run " + " ".join(
                builder.build_command(recipe, options.prefix)
            )
        assert report.fetched is not None
        work_dir = options.cache_dir / "build" / f"{recipe.name}-{report.fetched.version}"
        try:
            source_dir = fetcher.stage_source(report.fetched, work_dir)
            report.installed = builder.install(
                recipe,
                source_dir,
                options.prefix,
                registry,
                search_path=options.search_path,
                timeout=options.build_timeout,
            )
        finally:
            if report.fetched.resolved.is_archive:
                shutil.rmtree(work_dir, ignore_errors=True)
        return "ok", str(report.installed.binary)

    def test() -> tuple[PhaseStatus, str]:
        if options.dry_run:
            return "skipped", "[dry-run] would run smoke tests"
        if not options.run_tests:
            return "skipped", "tests disabled"
        assert report.installed is not None
        report.smoke = smoke_test.run_checks(
            recipe,
            report.installed.binary,
            registry,
            keep_scratch=options.keep_scratch,
            timeout=options.check_timeout,
        )
        return "ok", f"{report.smoke.passed}/{len(recipe.checks)} checks passed"

    logger.info("Installing %s (%s) into %s", recipe.name, options.selector.value, options.prefix)
    return _run_steps(report, [
        ("dependencies", dependencies),
        ("resolve", resolve_step),
        ("fetch", fetch),
        ("verify", verify),
        ("build", build),
        ("test", test),
    ])


def run_test_pipeline(
    recipe: Recipe,
    prefix: Path,
    registry: AdapterRegistry,
    *,
    keep_scratch: bool = False,
    timeout: int = smoke_test.DEFAULT_CHECK_TIMEOUT,
) -> PipelineReport:
    """Run only the test phase against an already-installed binary."""
    report = PipelineReport(
        operation_id=generate_operation_id(),
        operation_type="test",
        recipe=recipe.name,
        selector="",
        prefix=str(prefix),
    )

    def test() -> tuple[PhaseStatus, str]:
        report.smoke = smoke_test.run_checks(
            recipe,
            builder.binary_path(recipe, prefix.resolve()),
            registry,
            keep_scratch=keep_scratch,
            timeout=timeout,
        )
        return "ok", f"{report.smoke.passed}/{len(recipe.checks)} checks passed"

    return _run_steps(report, [("test", test)])


def write_audit_entry(report: PipelineReport, audit_writer: AuditWriter) -> None:
    """Append the run to the audit ledger."""
    entry = AuditEntry(
        operation_id=report.operation_id,
        operation_type=report.operation_type,
        recipe=report.recipe,
        version=report.version,
        selector=report.selector,
        prefix=report.prefix,
        status=report.status,
        failed_phase=report.failed_phase,
        phases=[p.to_dict() for p in report.phases],
        duration_ms=report.duration_ms,
        errors=[report.error.message] if report.error else [],
        context={"dry_run": report.dry_run},
    )
    audit_writer.write(entry)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
