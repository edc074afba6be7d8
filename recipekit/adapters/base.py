"""
Adapter contract.

The services in ``recipekit.core.services`` never spawn processes
themselves: they hand an ``Action`` to the registry, which picks an
adapter, and they read the ``Receipt`` that comes back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from recipekit.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """An action plus where and how to run it."""

    action: Action
    working_dir: str = "."
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def cwd(self) -> str:
        return self.params.get("cwd") or self.working_dir


class Adapter(ABC):
    """A way of running one kind of action (processes, git checkouts).

    ``execute`` reports every failure in the returned receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key; matches ``Action.adapter``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying tool exists on this machine."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check params before running. Returns ``(ok, reason)``."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the action."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
