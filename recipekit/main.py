"""
recipekit — CLI entrypoint.

Usage:
    python -m recipekit.main --help
    recipekit info lala
    recipekit install lala --prefix /opt/lala
    recipekit install lala --prefix /opt/lala --head
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from recipekit import __version__
from recipekit.core.observability.logging_config import setup_cli_logging


@click.group()
@click.version_option(version=__version__, prog_name="recipekit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Download cache (default: $RECIPEKIT_CACHE or ~/.cache/recipekit).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    cache_dir: str | None,
) -> None:
    """recipekit — build and install tools from source recipes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["cache_dir"] = Path(cache_dir) if cache_dir else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_cli_logging(debug=debug, verbose=verbose, quiet=quiet)


def _resolve_prefix(prefix: str | None) -> Path:
    from recipekit.core.config.loader import default_prefix

    if prefix:
        return Path(prefix)
    fallback = default_prefix()
    if fallback is None:
        click.secho("❌ No prefix: pass --prefix or set RECIPEKIT_PREFIX", fg="red")
        sys.exit(1)
    return fallback


def _print_report(report, verbose: bool) -> None:
    """Per-phase lines plus the failure, if any."""
    for rec in report.phases:
        timing = f" ({rec.duration_ms}ms)" if rec.duration_ms else ""
        if rec.status == "ok":
            click.secho(f"   ✓ {rec.phase}", fg="green", nl=False)
            click.echo(f"{timing}  {rec.detail}")
        elif rec.status == "failed":
            click.secho(f"   ✗ {rec.phase}", fg="red", nl=False)
            click.echo(timing)
        else:
            click.secho(f"   ⊘ {rec.phase} ", fg="yellow", nl=False)
            click.echo(f"({rec.detail})")

    if verbose and report.smoke:
        for check in report.smoke.results:
            click.echo(f"     │ {check.name}: {' '.join(check.command)}")
    scratch_dir = report.smoke.scratch_dir if report.smoke else None
    if report.error and report.error.scratch_dir:
        scratch_dir = report.error.scratch_dir
    if scratch_dir:
        click.echo(f"   📁 Scratch kept: {scratch_dir}")

    click.echo()
    if report.ok:
        click.secho("   Result: ok", fg="green", bold=True)
        return

    error = report.error
    click.secho(f"   Result: failed in {report.failed_phase}", fg="red", bold=True)
    click.echo(f"     │ {error.code}: {error.message}")
    if error.check:
        click.echo(f"     │ check: {error.check}")
    if error.expected is not None:
        click.echo(f"     │ expected: {error.expected}")
    if error.actual is not None:
        for line in str(error.actual).split("\n")[:5]:
            click.echo(f"     │ actual: {line}")


# ── Recipes ─────────────────────────────────────────────────────────


@cli.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_recipes(as_json: bool) -> None:
    """List built-in recipes."""
    from recipekit.core.config.loader import get_builtin_recipe, list_builtin_recipes

    recipes = [get_builtin_recipe(name) for name in list_builtin_recipes()]

    if as_json:
        click.echo(json.dumps([r.summary() for r in recipes], indent=2))
        return

    for recipe in recipes:
        version = recipe.version or "HEAD only"
        click.secho(f"   • {recipe.name} ", fg="cyan", nl=False)
        click.echo(f"{version}  {recipe.description}")


@cli.command()
@click.argument("recipe")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def info(recipe: str, as_json: bool) -> None:
    """Show recipe metadata and toolchain status."""
    from recipekit.core.use_cases.inspect import describe_recipe

    result = describe_recipe(recipe)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    r = result.recipe
    assert r is not None

    click.secho(f"\n📦 {r.name}", fg="cyan", bold=True)
    if r.description:
        click.echo(f"   {r.description}")
    if r.homepage:
        click.echo(f"   🔗 {r.homepage}")
    if r.license:
        click.echo(f"   License: {r.license}")
    click.echo()

    if r.stable:
        click.echo(f"   Stable: {r.stable.version}  → {r.stable.url}")
    if r.head:
        click.echo(f"   Head:   {r.head.repository}#{r.head.branch}")
    click.echo(f"   Binary: {r.binary}")
    click.echo(f"   Checks: {', '.join(c.name for c in r.checks) or '(none)'}")

    if result.dependencies and result.dependencies.statuses:
        click.echo()
        click.secho("   Build dependencies:", fg="white", bold=True)
        for status in result.dependencies.statuses:
            if status.ok:
                click.secho(f"     ✓ {status.name}", fg="green")
            else:
                click.secho(f"     ✗ {status.name}", fg="red", nl=False)
                click.echo(f"  (missing: {', '.join(status.missing)})")

    if result.adapters:
        click.echo()
        click.secho("   Adapters:", fg="white", bold=True)
        for name, state in result.adapters.items():
            if state["available"]:
                click.secho(f"     ✓ {name}", fg="green")
            else:
                click.secho(f"     ✗ {name} (unavailable)", fg="red")
    click.echo()


@cli.command("resolve")
@click.argument("recipe")
@click.option("--head", is_flag=True, help="Resolve the development head.")
@click.option("--version", "version", default=None, help="Required stable version.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def resolve_cmd(recipe: str, head: bool, version: str | None, as_json: bool) -> None:
    """Show which source an install would use."""
    from recipekit.core.use_cases.inspect import resolve_recipe

    result = resolve_recipe(recipe, head=head, version=version)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error.code}: {result.error.message}", fg="red")
        sys.exit(1)

    resolved = result.resolved
    assert resolved is not None
    click.secho(f"   {resolved.recipe} {resolved.version}", fg="cyan", bold=True)
    click.echo(f"   → {resolved.location}")
    if resolved.checksum:
        click.echo(f"   sha256 {resolved.checksum}")
    else:
        click.secho("   ⚠️  unverified: head builds skip integrity verification", fg="yellow")


# ── Install / test ──────────────────────────────────────────────────


@cli.command()
@click.argument("recipe")
@click.option("--prefix", default=None, help="Installation prefix (default: $RECIPEKIT_PREFIX).")
@click.option("--head", is_flag=True, help="Build the development head (unverified).")
@click.option("--version", "version", default=None, help="Required stable version.")
@click.option("--no-test", is_flag=True, help="Skip the smoke tests.")
@click.option("--keep-scratch", is_flag=True, help="Keep the smoke-test scratch directory.")
@click.option("--dry-run", is_flag=True, help="Check dependencies and resolve only.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    recipe: str,
    prefix: str | None,
    head: bool,
    version: str | None,
    no_test: bool,
    keep_scratch: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Fetch, verify, build, install and test a recipe.

    Examples:

        recipekit install lala --prefix ~/.local

        recipekit install lala --prefix ~/.local --head

        recipekit install ./recipes/lala.yml --prefix /opt/lala --dry-run
    """
    from recipekit.core.use_cases.install import run_install

    result = run_install(
        recipe,
        _resolve_prefix(prefix),
        head=head,
        version=version,
        cache_dir=ctx.obj.get("cache_dir"),
        run_tests=not no_test,
        keep_scratch=keep_scratch,
        dry_run=dry_run,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None

    mode_label = "[dry-run] " if dry_run else ""
    click.secho(
        f"\n⚡ {mode_label}install {report.recipe} {report.version} ({report.selector})",
        fg="cyan",
        bold=True,
    )
    click.echo(f"   Prefix: {report.prefix}")
    click.echo()
    _print_report(report, ctx.obj.get("verbose", False))
    click.echo()

    if not report.ok:
        sys.exit(1)


@cli.command("test")
@click.argument("recipe")
@click.option("--prefix", default=None, help="Installation prefix (default: $RECIPEKIT_PREFIX).")
@click.option("--keep-scratch", is_flag=True, help="Keep the smoke-test scratch directory.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def test_cmd(
    ctx: click.Context,
    recipe: str,
    prefix: str | None,
    keep_scratch: bool,
    as_json: bool,
) -> None:
    """Run a recipe's smoke tests against an existing install."""
    from recipekit.core.use_cases.smoke import run_smoke_tests

    result = run_smoke_tests(
        recipe,
        _resolve_prefix(prefix),
        keep_scratch=keep_scratch,
        cache_dir=ctx.obj.get("cache_dir"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None
    click.secho(f"\n🧪 test {report.recipe}", fg="cyan", bold=True)
    click.echo(f"   Prefix: {report.prefix}")
    click.echo()
    _print_report(report, ctx.obj.get("verbose", False))
    click.echo()

    if not report.ok:
        sys.exit(1)


# ── Audit / history ─────────────────────────────────────────────────


@cli.command()
@click.argument("recipe")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def audit(recipe: str, as_json: bool) -> None:
    """Statically check a recipe for problems."""
    from recipekit.core.use_cases.recipe_audit import audit_recipe

    result = audit_recipe(recipe)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)
        return

    if result.valid:
        assert result.recipe is not None
        click.secho(f"✅ Recipe '{result.recipe.name}' passed audit", fg="green", bold=True)
    else:
        click.secho("❌ Recipe errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


@cli.command()
@click.argument("recipe", required=False)
@click.option("--limit", "-n", default=20, type=int, help="Number of entries to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, recipe: str | None, limit: int, as_json: bool) -> None:
    """Show recent install and test runs."""
    from recipekit.core.use_cases.inspect import read_history

    result = read_history(recipe, limit=limit, cache_dir=ctx.obj.get("cache_dir"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.entries:
        click.echo("No runs recorded yet.")
        return

    for entry in result.entries:
        color = "green" if entry.status == "ok" else "red"
        click.secho(f"   {entry.status:<6}", fg=color, nl=False)
        where = f"  failed in {entry.failed_phase}" if entry.failed_phase else ""
        click.echo(
            f" {entry.timestamp}  {entry.operation_type} {entry.recipe} "
            f"{entry.version}{where}"
        )


if __name__ == "__main__":
    cli()
