"""
Action and Receipt — what a service asks for and what it gets back.

Every process recipekit starts (cargo, git, the installed binary under
test) is described by an ``Action`` and answered by a ``Receipt``.
Adapters turn failures into failed receipts; interpreting a receipt
and raising the right ``RecipeError`` is the calling service's job.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "failed"]


class Action(BaseModel):
    """One process invocation requested by a pipeline phase.

    ``id`` follows ``<recipe>:<phase>:<step>`` (``lala:test:version``),
    which is also the key mocks use to script responses.
    """

    id: str
    adapter: str                    # "shell" or "git"
    name: str = ""
    phase: str = ""
    params: dict[str, Any] = Field(default_factory=dict)

    def describe(self) -> str:
        """Command line for logs, falling back to the action id."""
        argv = self.params.get("argv")
        if argv:
            return " ".join(str(a) for a in argv)
        return self.params.get("command") or self.name or self.id


class Receipt(BaseModel):
    """Outcome of one action."""

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"
    return_code: int | None = None  # None when the process never ran
    output: str = ""                # stdout, stripped
    error: str | None = None        # stderr tail or adapter message
    duration_ms: int = 0
    finished_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        kwargs.setdefault("return_code", 0)
        return cls(adapter=adapter, action_id=action_id, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)
