"""
Tests for build and install — cargo invocation, prefixes and failures.
"""

from pathlib import Path

import pytest

from conftest import FAILING_CARGO, NOOP_CARGO, make_toolchain
from recipekit.adapters.mock import MockAdapter
from recipekit.adapters.registry import AdapterRegistry, default_registry
from recipekit.core.errors import BuildFailure, MissingDependency
from recipekit.core.models.recipe import Recipe
from recipekit.core.services.builder import (
    binary_path,
    build_command,
    install,
    std_cargo_args,
)


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    src = tmp_path / "src" / "lala-0.1.0"
    src.mkdir(parents=True)
    (src / "Cargo.toml").write_text('[package]\nname = "lala"\n')
    return src


class TestCommand:
    def test_std_cargo_args(self, tmp_path: Path):
        assert std_cargo_args(tmp_path) == ["--locked", "--root", str(tmp_path), "--path", "."]

    def test_extra_args_appended(self, tmp_path: Path):
        recipe = Recipe.model_validate({
            "name": "lala", "install": {"args": ["--features", "preview"]},
        })
        argv = build_command(recipe, tmp_path)
        assert argv[:2] == ["cargo", "install"]
        assert argv[-2:] == ["--features", "preview"]

    def test_binary_path(self, tmp_path: Path):
        recipe = Recipe.model_validate({"name": "ripgrep", "install": {"binary": "rg"}})
        assert binary_path(recipe, tmp_path) == tmp_path / "bin" / "rg"


class TestInstall:
    def test_installs_binary(self, lala: Recipe, source_dir: Path, prefix: Path, toolchain: str):
        result = install(lala, source_dir, prefix, default_registry(), search_path=toolchain)
        assert result.binary == prefix.resolve() / "bin" / "lala"
        assert result.binary.is_file()
        assert result.receipt.ok
        assert "--root" in result.command

    def test_action_shape(self, lala: Recipe, source_dir: Path, prefix: Path, toolchain: str):
        mock = MockAdapter()
        registry = AdapterRegistry()
        registry.set_mock_mode(True, mock)

        # The mock builds nothing, so the binary check fails afterwards.
        with pytest.raises(BuildFailure) as exc:
            install(lala, source_dir, prefix, registry, search_path=toolchain)
        assert exc.value.check == "binary"

        action = mock.call_log[0].action
        assert action.id == "lala:build:install"
        assert action.adapter == "shell"
        assert action.params["cwd"] == str(source_dir)
        assert action.params["argv"] == build_command(lala, prefix.resolve())
        assert action.params["env"]["PATH"].startswith(toolchain)

    def test_missing_dependency_runs_nothing(self, lala: Recipe, source_dir: Path, prefix: Path,
                                            tmp_path: Path):
        mock = MockAdapter()
        registry = AdapterRegistry()
        registry.set_mock_mode(True, mock)
        empty = tmp_path / "empty"
        empty.mkdir()

        with pytest.raises(MissingDependency):
            install(lala, source_dir, prefix, registry, search_path=str(empty))
        assert mock.call_count == 0
        assert not prefix.exists()

    def test_build_failure_exit_code(self, lala: Recipe, source_dir: Path, prefix: Path,
                                     tmp_path: Path):
        search_path = make_toolchain(tmp_path / "bin", cargo=FAILING_CARGO)
        with pytest.raises(BuildFailure) as exc:
            install(lala, source_dir, prefix, default_registry(), search_path=search_path)
        assert exc.value.return_code == 101
        assert exc.value.phase == "build"
        assert "cannot find value" in exc.value.message

    def test_no_binary_installed(self, lala: Recipe, source_dir: Path, prefix: Path,
                                 tmp_path: Path):
        search_path = make_toolchain(tmp_path / "bin", cargo=NOOP_CARGO)
        with pytest.raises(BuildFailure) as exc:
            install(lala, source_dir, prefix, default_registry(), search_path=search_path)
        assert exc.value.check == "binary"
