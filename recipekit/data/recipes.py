"""
Data — Built-in recipe catalog and toolchain binary map.

Pure data, no logic. Each entry is validated into a ``Recipe`` by
``recipekit.core.config.loader`` when it is requested.
"""

from __future__ import annotations


RECIPES: dict[str, dict] = {

    "lala": {
        "name": "lala",
        "description": "Modern text editor with multi-format preview support",
        "homepage": "https://github.com/yourusername/lala",
        "license": "MIT OR Apache-2.0",
        "stable": {
            "url": "https://github.com/yourusername/lala/archive/v0.1.0.tar.gz",
            "version": "0.1.0",
            # Unpublished: compute with `sha256sum v0.1.0.tar.gz` once the
            # release tarball exists. resolve() refuses this placeholder.
            "sha256": "REPLACE_WITH_ACTUAL_SHA256",
        },
        "head": {
            "repository": "https://github.com/yourusername/lala.git",
            "branch": "main",
        },
        "build_dependencies": [{"name": "rust", "phase": "build"}],
        "install": {"backend": "cargo"},
        "checks": [
            {"kind": "output", "name": "version", "args": ["--version"], "expect": "0.1.0"},
            {"kind": "output", "name": "help", "args": ["--help"], "expect": "Modern text editor"},
            {
                "kind": "run",
                "name": "render",
                "fixture": "test.md",
                "content": "# Test\nHello World",
                "args": ["markdown", "{fixture}", "--no-color"],
            },
        ],
    },
}


# Build dependency name → binaries that must be on the search path.
# Names not listed here are looked up as a binary of the same name.
TOOLCHAIN_BINARIES: dict[str, list[str]] = {
    "rust":       ["cargo", "rustc"],
    "cmake":      ["cmake"],
    "go":         ["go"],
    "make":       ["make"],
    "pkg-config": ["pkg-config"],
}
