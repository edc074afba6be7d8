"""
Tests for toolchain lookup — declared build dependencies on a search path.
"""

from pathlib import Path

import pytest

from conftest import make_toolchain, write_executable
from recipekit.core.errors import MissingDependency
from recipekit.core.models.recipe import BuildDependency
from recipekit.core.services.toolchain import (
    binaries_for,
    check_dependencies,
    is_known_dependency,
    require_dependencies,
)

RUST = (BuildDependency(name="rust"),)


class TestBinaries:
    def test_rust(self):
        assert binaries_for("rust") == ["cargo", "rustc"]

    def test_unknown_maps_to_itself(self):
        assert binaries_for("protoc") == ["protoc"]
        assert not is_known_dependency("protoc")


class TestCheckDependencies:
    def test_all_found(self, toolchain: str):
        report = check_dependencies(RUST, search_path=toolchain)
        assert report.ok
        assert set(report.statuses[0].found) == {"cargo", "rustc"}
        assert report.statuses[0].found["cargo"] == str(Path(toolchain) / "cargo")

    def test_partial(self, tmp_path: Path):
        search_path = make_toolchain(tmp_path / "bin", rustc=False)
        report = check_dependencies(RUST, search_path=search_path)
        assert not report.ok
        assert report.missing == ["rustc"]
        assert "cargo" in report.statuses[0].found

    def test_empty_search_path(self, tmp_path: Path):
        report = check_dependencies(RUST, search_path=str(tmp_path))
        assert report.missing == ["cargo", "rustc"]

    def test_non_executable_ignored(self, tmp_path: Path):
        (tmp_path / "cargo").write_text("#!/bin/sh\n")
        write_executable(tmp_path / "rustc", "#!/bin/sh\n")
        report = check_dependencies(RUST, search_path=str(tmp_path))
        assert report.missing == ["cargo"]

    def test_no_dependencies(self):
        report = check_dependencies(())
        assert report.ok
        assert report.to_dict()["dependencies"] == []


class TestRequireDependencies:
    def test_ok(self, toolchain: str):
        assert require_dependencies(RUST, search_path=toolchain).ok

    def test_missing_raises(self, tmp_path: Path):
        with pytest.raises(MissingDependency) as exc:
            require_dependencies(RUST, search_path=str(tmp_path))
        assert exc.value.missing == ["cargo", "rustc"]
        assert exc.value.phase == "dependencies"
        assert "rust" in exc.value.message
        assert exc.value.to_dict()["missing"] == ["cargo", "rustc"]

    def test_phase_override(self, tmp_path: Path):
        with pytest.raises(MissingDependency) as exc:
            require_dependencies(RUST, search_path=str(tmp_path), phase="build")
        assert exc.value.phase == "build"
