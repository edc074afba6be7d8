"""
Shell adapter — runs build tools and installed binaries.

``cargo install`` and every smoke-test check go through here. Output is
captured; only the tail of each stream is kept on the receipt since
build logs can run to megabytes.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from recipekit.adapters.base import Adapter, ExecutionContext
from recipekit.core.models.action import Receipt

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 4000
DEFAULT_TIMEOUT = 300


def _tail(text: str) -> str:
    return text[-_OUTPUT_TAIL:]


def _environment(overrides: dict[str, str] | None) -> dict[str, str]:
    """Inherited environment with overrides applied; ``$VAR`` in values is expanded."""
    env = dict(os.environ)
    for key, value in (overrides or {}).items():
        env[key] = os.path.expandvars(value)
    return env


class ShellCommandAdapter(Adapter):
    """Run a program, wait for it, capture stdout and stderr.

    Action params:
        argv (list[str]): Program and arguments; run directly, no shell.
        command (str): Shell command line; used only when ``argv`` is absent.
        cwd (str): Working directory (default: the context's working_dir).
        env (dict[str, str]): Environment overrides, e.g. a ``PATH`` that
            puts the toolchain first.
        timeout (int): Seconds before the process is killed (default: 300).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        if not params.get("argv") and not params.get("command"):
            return False, "Missing required param: 'argv' or 'command'"
        if context.cwd and not Path(context.cwd).is_dir():
            return False, f"Working directory does not exist: {context.cwd}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        argv = params.get("argv")
        timeout = params.get("timeout", DEFAULT_TIMEOUT)
        display = context.action.describe()
        details = {"command": display, "cwd": context.cwd}

        logger.debug("$ %s  (cwd=%s)", display, context.cwd)
        started = time.monotonic()
        try:
            proc = subprocess.run(
                [str(a) for a in argv] if argv else params["command"],
                shell=not argv,
                cwd=context.cwd,
                env=_environment(params.get("env")),
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                details={**details, "timed_out": True, "timeout": timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Could not run {display}: {e}",
                details=details,
            )

        elapsed_ms = int((time.monotonic() - started) * 1000)
        stdout, stderr = proc.stdout.strip(), proc.stderr.strip()

        if proc.returncode != 0:
            details["stdout"] = _tail(stdout)
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=_tail(stderr) or f"Command exited with code {proc.returncode}",
                return_code=proc.returncode,
                duration_ms=elapsed_ms,
                details=details,
            )

        details["stderr"] = _tail(stderr)
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=stdout,
            return_code=proc.returncode,
            duration_ms=elapsed_ms,
            details=details,
        )
