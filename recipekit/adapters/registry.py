"""
Adapter registry — the single dispatch point for actions.

``execute_action`` is the only way services run anything. In mock mode
every action goes to the mock adapter (or, with none set, succeeds
without running), which is how ``install --dry-run`` stays side-effect
free.
"""

from __future__ import annotations

import logging
import time

from recipekit.adapters.base import Adapter, ExecutionContext
from recipekit.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Adapters by name, plus mock-mode routing."""

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode
        self._mock: Adapter | None = None

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        """Route every action to ``mock_adapter`` (or a built-in no-op) while enabled."""
        self._mock_mode = enabled
        self._mock = mock_adapter

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter '%s'", adapter.name)
        self._adapters[adapter.name] = adapter
        logger.debug("Registered %r", adapter)

    def adapter_status(self) -> dict[str, dict]:
        """Availability of each registered adapter's tool."""
        return {
            name: {"name": name, "available": self._probe(adapter), "type": type(adapter).__name__}
            for name, adapter in self._adapters.items()
        }

    @staticmethod
    def _probe(adapter: Adapter) -> bool:
        try:
            return adapter.is_available()
        except Exception as e:
            logger.debug("Availability probe for %s raised: %s", adapter.name, e)
            return False

    def _select(self, action: Action) -> Adapter | Receipt:
        """The adapter for ``action``, or a finished receipt when none is needed or found."""
        if self._mock_mode:
            if self._mock is not None:
                return self._mock
            return Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output=f"[mock] {action.adapter}:{action.id} executed",
                details={"mock": True},
            )
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )
        return adapter

    def execute_action(
        self,
        action: Action,
        working_dir: str = ".",
    ) -> Receipt:
        """Validate and run ``action``; failures come back as failed receipts."""
        started = time.monotonic()
        selected = self._select(action)
        if isinstance(selected, Receipt):
            return selected

        context = ExecutionContext(
            action=action, working_dir=working_dir, params=action.params,
        )

        try:
            valid, reason = selected.validate(context)
        except Exception as e:
            valid, reason = False, f"validator raised {e}"
        if not valid:
            logger.debug("Rejected %s: %s", action.id, reason)
            return Receipt.failure(
                adapter=action.adapter, action_id=action.id, error=f"Validation failed: {reason}",
            )

        try:
            receipt = selected.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised on %s: %s", selected.name, action.id, e)
            receipt = Receipt.failure(
                adapter=action.adapter, action_id=action.id, error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - started) * 1000)
        return receipt


def default_registry(mock_mode: bool = False) -> AdapterRegistry:
    """Registry with the shell and git adapters registered."""
    from recipekit.adapters.shell.command import ShellCommandAdapter
    from recipekit.adapters.vcs.git import GitAdapter

    registry = AdapterRegistry(mock_mode=mock_mode)
    registry.register(ShellCommandAdapter())
    registry.register(GitAdapter())
    return registry
