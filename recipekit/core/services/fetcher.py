"""
Source fetching — download, verify, and stage recipe sources.

Three separate steps, run by the pipeline in order:

    fetch_source()    archive download (cached) or head checkout
    verify_source()   SHA-256 check; archive sources only
    stage_source()    unpack a verified archive into a work directory

Archives are cached at ``<cache>/<name>/<version>/<filename>``. A cache
hit is still verified, so a corrupted cache entry can never reach the
build.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import tarfile
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from recipekit.adapters.registry import AdapterRegistry
from recipekit.core.errors import ChecksumMismatch, FetchError, UnresolvableSource
from recipekit.core.models.action import Action
from recipekit.core.models.recipe import ArchiveSource, HeadSource
from recipekit.core.services.resolver import ResolvedSource

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))
_CHUNK = 64 * 1024
_USER_AGENT = "recipekit/0.1"


@dataclass(frozen=True)
class FetchedSource:
    """Where a fetched source landed on disk."""

    resolved: ResolvedSource
    path: Path                  # archive file, or checkout directory for head
    cached: bool = False
    commit: str | None = None   # short commit id for head checkouts

    @property
    def version(self) -> str:
        if self.commit:
            return f"HEAD-{self.commit}"
        return self.resolved.version

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "cached": self.cached,
            "commit": self.commit,
            "version": self.version,
        }


# ── Fetch ────────────────────────────────────────────────────────


def fetch_source(
    resolved: ResolvedSource,
    cache_dir: Path,
    registry: AdapterRegistry,
    *,
    timeout: int = 300,
) -> FetchedSource:
    """Fetch the resolved source into the cache.

    Raises:
        UnresolvableSource: The archive or branch does not exist upstream.
        FetchError: Any other download or checkout failure.
    """
    source = resolved.source
    if isinstance(source, ArchiveSource):
        return _fetch_archive(resolved, source, cache_dir, timeout=timeout)
    return _fetch_head(resolved, source, cache_dir, registry, timeout=timeout)


def archive_cache_path(cache_dir: Path, recipe: str, source: ArchiveSource) -> Path:
    """Cache location of a versioned archive."""
    return cache_dir / recipe / source.version / source.filename


def _fetch_archive(
    resolved: ResolvedSource,
    source: ArchiveSource,
    cache_dir: Path,
    *,
    timeout: int,
) -> FetchedSource:
    dest = archive_cache_path(cache_dir, resolved.recipe, source)
    if dest.is_file():
        logger.info("Cache hit: %s", dest)
        return FetchedSource(resolved=resolved, path=dest, cached=True)

    scheme = urlparse(source.url).scheme
    if scheme not in _ALLOWED_SCHEMES:
        raise FetchError(
            f"Refusing URL scheme '{scheme}' for {source.url}: only http/https are allowed"
        )

    dest.parent.mkdir(parents=True, exist_ok=True)
    _download(source.url, dest, timeout=timeout)
    return FetchedSource(resolved=resolved, path=dest, cached=False)


def _download(url: str, dest: Path, *, timeout: int) -> None:
    """Stream ``url`` to ``dest`` via a ``.part`` file; nothing is left behind on failure."""
    partial = dest.with_name(dest.name + ".part")
    logger.info("Downloading %s", url)
    request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as resp, partial.open("wb") as f:  # nosec B310
            shutil.copyfileobj(resp, f, _CHUNK)
    except urllib.error.HTTPError as e:
        partial.unlink(missing_ok=True)
        if e.code == 404:
            raise UnresolvableSource(f"Source not found upstream: {url}", phase="fetch") from e
        raise FetchError(f"Download failed: {url} (HTTP {e.code})") from e
    except (urllib.error.URLError, OSError) as e:
        partial.unlink(missing_ok=True)
        raise FetchError(f"Download failed: {url} - {e}") from e

    partial.replace(dest)
    logger.info("Saved %s (%d bytes)", dest, dest.stat().st_size)


def _fetch_head(
    resolved: ResolvedSource,
    source: HeadSource,
    cache_dir: Path,
    registry: AdapterRegistry,
    *,
    timeout: int,
) -> FetchedSource:
    dest = cache_dir / resolved.recipe / f"HEAD-{source.branch}"
    if dest.exists():
        # Heads move; always start from a fresh checkout.
        shutil.rmtree(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)

    clone = Action(
        id=f"{resolved.recipe}:fetch:clone",
        name=f"git clone {source.repository}#{source.branch}",
        adapter="git",
        phase="fetch",
        params={
            "operation": "clone",
            "repository": source.repository,
            "branch": source.branch,
            "dest": str(dest),
            "timeout": timeout,
        },
    )
    receipt = registry.execute_action(clone, working_dir=str(dest.parent))
    if not receipt.ok:
        error = receipt.error or "git clone failed"
        lowered = error.lower()
        if "not found" in lowered or "does not exist" in lowered:
            raise UnresolvableSource(
                f"Branch '{source.branch}' not found in {source.repository}: {error}",
                phase="fetch",
            )
        raise FetchError(f"Checkout of {source.repository}#{source.branch} failed: {error}")

    commit: str | None = None
    if dest.is_dir():
        rev = Action(
            id=f"{resolved.recipe}:fetch:rev-parse",
            adapter="git",
            phase="fetch",
            params={"operation": "rev-parse"},
        )
        rev_receipt = registry.execute_action(rev, working_dir=str(dest))
        if rev_receipt.ok and rev_receipt.output:
            commit = rev_receipt.output.strip()

    logger.info("Checked out %s#%s at %s", source.repository, source.branch, commit or "?")
    return FetchedSource(resolved=resolved, path=dest, cached=False, commit=commit)


# ── Verify ───────────────────────────────────────────────────────


def sha256_of(path: Path) -> str:
    """Hex SHA-256 digest of a file."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_source(fetched: FetchedSource) -> bool:
    """Check the fetched archive against the declared checksum.

    Returns:
        True if verified, False for head sources (nothing to verify).

    Raises:
        ChecksumMismatch: Digest differs. The cached file is removed.
    """
    expected = fetched.resolved.checksum
    if not fetched.resolved.is_archive or expected is None:
        return False

    actual = sha256_of(fetched.path)
    if actual != expected:
        fetched.path.unlink(missing_ok=True)
        raise ChecksumMismatch(
            f"SHA-256 mismatch for {fetched.path.name}",
            check="sha256",
            expected=expected,
            actual=actual,
        )

    logger.info("Checksum verified: %s", fetched.path.name)
    return True


# ── Stage ────────────────────────────────────────────────────────


def stage_source(fetched: FetchedSource, work_dir: Path) -> Path:
    """Return the directory the build should run in.

    Head checkouts are used in place. Archives are extracted into
    ``work_dir``; a single top-level directory becomes the source root.

    Raises:
        FetchError: The archive is not a readable tarball.
    """
    if not fetched.resolved.is_archive:
        return fetched.path

    if not tarfile.is_tarfile(fetched.path):
        raise FetchError(f"Not a tar archive: {fetched.path}", phase="build")

    if work_dir.exists():
        shutil.rmtree(work_dir)
    work_dir.mkdir(parents=True)

    with tarfile.open(fetched.path, "r:*") as tar:
        tar.extractall(work_dir, filter="data")

    entries = [p for p in work_dir.iterdir() if not p.name.startswith(".")]
    if len(entries) == 1 and entries[0].is_dir():
        root = entries[0]
    else:
        root = work_dir
    logger.info("Staged %s → %s", fetched.path.name, root)
    return root
