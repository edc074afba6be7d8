"""
Audit ledger — one NDJSON line per install or test run.

Lives at ``<cache>/audit.ndjson``. Entries are only ever appended; a
line that no longer parses is skipped on read rather than failing the
whole history.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """What one run did and where it stopped."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    operation_type: str = ""            # install | test

    recipe: str = ""
    version: str = ""                   # 0.1.0, HEAD-<commit>
    selector: str = ""                  # stable | head; empty for test runs
    prefix: str = ""

    status: str = ""                    # ok | failed
    failed_phase: str | None = None
    phases: list[dict[str, Any]] = Field(default_factory=list)
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Appends entries to, and reads them back from, the ledger file."""

    def __init__(self, path: Path | None = None, cache_dir: Path | None = None):
        if path is None:
            path = (cache_dir or Path.cwd()) / DEFAULT_AUDIT_FILE
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append ``entry``. An unwritable ledger is logged, not raised."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Could not append to audit ledger %s: %s", self._path, e)
            return
        logger.debug("Audit: %s %s %s", entry.operation_type, entry.recipe, entry.status)

    def _lines(self) -> Iterator[tuple[int, str]]:
        if not self._path.is_file():
            return
        try:
            with self._path.open(encoding="utf-8") as f:
                for number, line in enumerate(f, start=1):
                    if line.strip():
                        yield number, line
        except OSError as e:
            logger.error("Could not read audit ledger %s: %s", self._path, e)

    def read_all(self) -> list[AuditEntry]:
        """Every readable entry, oldest first."""
        entries = []
        for number, line in self._lines():
            try:
                entries.append(AuditEntry.model_validate_json(line))
            except ValidationError as e:
                logger.warning("Skipping unreadable audit line %d: %s", number, e.errors()[0]["msg"])
        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:]

    def for_recipe(self, recipe: str) -> list[AuditEntry]:
        return [e for e in self.read_all() if e.recipe == recipe]
