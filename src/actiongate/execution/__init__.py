"""Shell execution for approved actions."""

from .command_runner import CommandRunner, ExecutionReport

__all__ = ["CommandRunner", "ExecutionReport"]
