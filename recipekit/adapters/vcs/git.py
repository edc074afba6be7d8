"""
Git adapter — shallow checkouts for head builds.

A head build needs exactly two things from git: a depth-1 clone of one
branch, and the short commit id it landed on (which becomes the
``HEAD-<commit>`` version). Both go through the git CLI.
"""

from __future__ import annotations

import logging
import shutil
import subprocess

from recipekit.adapters.base import Adapter, ExecutionContext
from recipekit.core.models.action import Receipt

logger = logging.getLogger(__name__)

OPERATIONS = ("clone", "rev-parse")
_CLONE_REQUIRED = ("repository", "dest")


class GitCommandError(RuntimeError):
    """git exited non-zero; the message is its stderr."""

    def __init__(self, args: list[str], returncode: int, stderr: str):
        super().__init__(stderr or f"git {args[0]} exited with code {returncode}")
        self.returncode = returncode


class GitAdapter(Adapter):
    """Clone a branch or read the checked-out commit.

    Action params:
        operation (str): ``clone`` or ``rev-parse``.
        repository (str): Remote URL (clone).
        branch (str): Branch to check out (clone, default ``main``).
        dest (str): Checkout directory (clone).
        depth (int): History depth (clone, default 1).
        timeout (int): Seconds before git is killed (default 300).
    """

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        operation = params.get("operation", "")
        if operation not in OPERATIONS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(OPERATIONS)}"
        if operation == "clone":
            missing = [key for key in _CLONE_REQUIRED if not params.get(key)]
            if missing:
                return False, f"Missing required param: '{missing[0]}' for clone"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        timeout = params.get("timeout", 300)

        if params["operation"] == "clone":
            argv = [
                "clone",
                f"--depth={params.get('depth', 1)}",
                "--branch", params.get("branch", "main"),
                "--", params["repository"], params["dest"],
            ]
        else:
            argv = ["rev-parse", "--short", "HEAD"]

        try:
            stdout = self._run(argv, context.cwd, timeout)
        except GitCommandError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Git error: {e}",
                return_code=e.returncode,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"git {argv[0]} timed out after {timeout}s",
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name, action_id=context.action.id, error=f"Git error: {e}",
            )

        if params["operation"] == "clone":
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=stdout,
                details={"dest": params["dest"], "branch": params.get("branch", "main")},
            )
        commit = stdout.strip()
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=commit,
            details={"commit": commit},
        )

    @staticmethod
    def _run(args: list[str], cwd: str, timeout: int) -> str:
        logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
        proc = subprocess.run(
            ["git", *args], cwd=cwd, capture_output=True, text=True, timeout=timeout,
        )
        if proc.returncode != 0:
            raise GitCommandError(args, proc.returncode, proc.stderr.strip())
        return proc.stdout
