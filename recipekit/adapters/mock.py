"""
Mock adapter — records actions instead of running them.

Dry runs and tests route every action here. Responses can be scripted
per action id (``lala:build:install``, ``lala:test:help``, ...);
anything unscripted succeeds with ``default_output``.
"""

from __future__ import annotations

from recipekit.adapters.base import Adapter, ExecutionContext
from recipekit.core.models.action import Receipt


class MockAdapter(Adapter):
    """Stand-in for the shell and git adapters."""

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self.default_output = default_output
        self._scripted: dict[str, Receipt] = {}
        self._calls: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    @property
    def action_ids(self) -> list[str]:
        """Ids of the actions received, in order."""
        return [c.action.id for c in self._calls]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self._scripted[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure", return_code: int = 1) -> None:
        """Make ``action_id`` fail as if the process exited with ``return_code``."""
        self._scripted[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            return_code=return_code,
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._calls.append(context)
        scripted = self._scripted.get(context.action.id)
        if scripted is not None:
            return scripted.model_copy()
        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self.default_output,
            details={"mock": True},
        )
