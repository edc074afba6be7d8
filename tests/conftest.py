"""
Shared test fixtures and configuration.

The toolchain is faked with small shell scripts on a temporary search
path: ``cargo`` "builds" by writing an executable ``lala`` script into
``<root>/bin``. Archives are built locally and pre-seeded in the cache,
so no test touches the network.
"""

from __future__ import annotations

import copy
import hashlib
import io
import os
import stat
import tarfile
import textwrap
from pathlib import Path

import pytest
import yaml

from recipekit.core.models.recipe import Recipe
from recipekit.core.services.fetcher import archive_cache_path
from recipekit.data.recipes import RECIPES

FAKE_LALA = textwrap.dedent("""\
    #!/bin/sh
    case "$1" in
      --version) echo "lala 0.1.0" ;;
      --help) echo "Modern text editor with multi-format preview support" ;;
      markdown)
        [ -f "$2" ] || { echo "lala: no such file: $2" >&2; exit 2; }
        cat "$2" ;;
      *) echo "lala: unknown command: $1" >&2; exit 1 ;;
    esac
""")

FAKE_CARGO = textwrap.dedent("""\
    #!/bin/sh
    # cargo install --locked --root PREFIX --path .
    root=""
    while [ $# -gt 0 ]; do
      case "$1" in
        --root) root="$2"; shift 2 ;;
        *) shift ;;
      esac
    done
    [ -f Cargo.toml ] || { echo "error: could not find Cargo.toml" >&2; exit 101; }
    mkdir -p "$root/bin"
    cp "$(dirname "$0")/lala.template" "$root/bin/lala"
    chmod +x "$root/bin/lala"
    echo "  Installed package lala"
""")

FAILING_CARGO = textwrap.dedent("""\
    #!/bin/sh
    echo "error[E0425]: cannot find value in this scope" >&2
    exit 101
""")

# Exits 0 without installing anything.
NOOP_CARGO = "#!/bin/sh\nexit 0\n"

FAKE_RUSTC = "#!/bin/sh\necho 'rustc 1.80.0'\n"


def write_executable(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def make_toolchain(bin_dir: Path, cargo: str = FAKE_CARGO, rustc: bool = True) -> str:
    """Populate ``bin_dir`` with fake toolchain scripts; return it as a search path."""
    write_executable(bin_dir / "cargo", cargo)
    (bin_dir / "lala.template").write_text(FAKE_LALA, encoding="utf-8")
    if rustc:
        write_executable(bin_dir / "rustc", FAKE_RUSTC)
    return str(bin_dir)


def make_tarball(path: Path, top: str = "lala-0.1.0") -> Path:
    """Write a small source tarball with a single top-level directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, body in (
            ("Cargo.toml", b'[package]\nname = "lala"\nversion = "0.1.0"\n'),
            ("src/main.rs", b'fn main() { println!("lala"); }\n'),
        ):
            info = tarfile.TarInfo(f"{top}/{name}")
            info.size = len(body)
            tar.addfile(info, io.BytesIO(body))
    return path


def recipe_data(**overrides) -> dict:
    """The built-in lala recipe as plain data, with overrides applied."""
    data = copy.deepcopy(RECIPES["lala"])
    data.update(overrides)
    return data


def write_recipe(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


# ── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def toolchain(tmp_path: Path) -> str:
    """Search path holding a working fake cargo and rustc."""
    return make_toolchain(tmp_path / "toolchain")


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def prefix(tmp_path: Path) -> Path:
    """Installation prefix; not created up front."""
    return tmp_path / "prefix"


@pytest.fixture
def tarball(tmp_path: Path) -> Path:
    return make_tarball(tmp_path / "dist" / "v0.1.0.tar.gz")


@pytest.fixture
def tarball_sha256(tarball: Path) -> str:
    return hashlib.sha256(tarball.read_bytes()).hexdigest()


@pytest.fixture
def lala(tarball_sha256: str) -> Recipe:
    """The lala recipe with a real checksum for the local tarball."""
    data = recipe_data()
    data["stable"] = {**data["stable"], "sha256": tarball_sha256}
    return Recipe.model_validate(data)


@pytest.fixture
def seeded_cache(cache_dir: Path, tarball: Path, lala: Recipe) -> Path:
    """Cache with the lala archive already downloaded."""
    assert lala.stable is not None
    dest = archive_cache_path(cache_dir, lala.name, lala.stable)
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(tarball.read_bytes())
    return cache_dir


@pytest.fixture
def lala_file(tmp_path: Path, lala: Recipe) -> Path:
    """The checksummed lala recipe written as YAML."""
    return write_recipe(tmp_path / "lala.yml", lala.model_dump(mode="json"))


@pytest.fixture
def installed_lala(prefix: Path) -> Path:
    """A lala binary already installed under the prefix."""
    return write_executable(prefix / "bin" / "lala", FAKE_LALA)


@pytest.fixture
def toolchain_on_path(toolchain: str, monkeypatch: pytest.MonkeyPatch) -> str:
    """Put the fake toolchain first on $PATH (for CLI runs)."""
    monkeypatch.setenv("PATH", f"{toolchain}{os.pathsep}{os.environ.get('PATH', '')}")
    return toolchain
