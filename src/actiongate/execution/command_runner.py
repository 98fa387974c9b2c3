"""Command Runner - sequential shell execution for approved actions"""

from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from actiongate.core.structured_logger import get_logger
from actiongate.core.types import ExecutionOutcome

if TYPE_CHECKING:
    from actiongate.observability.metrics import ApprovalMetrics

logger = get_logger("CommandRunner")

DEFAULT_TIMEOUT_SECONDS = 60
DEFAULT_SHELL = "/bin/bash"
DEFAULT_PATH_PREFIX = "/opt/homebrew/bin"
BLOCK_SEPARATOR = "\n\n"


@dataclass
class ExecutionReport:
    """Aggregated outcome of running one record's command list."""

    outcome: ExecutionOutcome
    results: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def result_text(self) -> str:
        return BLOCK_SEPARATOR.join(self.results)

    @property
    def error_text(self) -> str | None:
        return BLOCK_SEPARATOR.join(self.errors) if self.errors else None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class CommandRunner:
    """
    Runs command strings one after another under a shell.

    A failing command (non-zero exit, timeout, launch error) is recorded
    and execution continues with the next one. Nothing is raised for
    command failures.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        shell: str = DEFAULT_SHELL,
        path_prefix: str | None = DEFAULT_PATH_PREFIX,
        metrics: ApprovalMetrics | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.shell = shell
        self.path_prefix = path_prefix
        self.metrics = metrics

    def build_env(self, extra_env: Mapping[str, str] | None = None) -> dict[str, str]:
        """Process environment, baseline PATH prefix, then the record's env."""
        env = dict(os.environ)
        if self.path_prefix:
            current = env.get("PATH", "")
            env["PATH"] = f"{self.path_prefix}:{current}" if current else self.path_prefix
        if extra_env:
            env.update({str(k): str(v) for k, v in extra_env.items()})
        return env

    def run(
        self,
        commands: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> ExecutionReport:
        merged_env = self.build_env(env)
        results: list[str] = []
        errors: list[str] = []

        for command in commands:
            ok, text = self._run_one(command, merged_env)
            if ok:
                results.append(f"$ {command}\n{text}")
            else:
                errors.append(f"$ {command}\nERROR: {text}")

        outcome = ExecutionOutcome.classify(succeeded=len(results), failed=len(errors))
        logger.info(
            "Commands finished",
            command_count=len(commands),
            succeeded=len(results),
            failed=len(errors),
            outcome=outcome.value,
        )
        return ExecutionReport(outcome=outcome, results=results, errors=errors)

    def _run_one(self, command: str, env: dict[str, str]) -> tuple[bool, str]:
        """Run a single command; returns (succeeded, output-or-error-message)."""
        start = time.perf_counter()
        try:
            completed = subprocess.run(
                command,
                shell=True,
                executable=self.shell,
                env=env,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out", command=command, timeout=self.timeout_seconds)
            return False, f"Command timed out after {self.timeout_seconds:g}s"
        except OSError as e:
            logger.error("Command could not be started", command=command, error=str(e))
            return False, str(e)
        finally:
            if self.metrics is not None:
                self.metrics.observe_command(time.perf_counter() - start)

        if completed.returncode == 0:
            return True, completed.stdout.strip()

        stderr = completed.stderr.strip()
        logger.warning("Command failed", command=command, returncode=completed.returncode)
        return False, stderr or f"Command exited with status {completed.returncode}"
