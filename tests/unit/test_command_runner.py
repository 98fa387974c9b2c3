"""Tests for actiongate.execution.command_runner — CommandRunner"""

import pytest

from actiongate.core.types import ExecutionOutcome
from actiongate.execution import CommandRunner


@pytest.fixture
def shell_runner():
    return CommandRunner(timeout_seconds=5, path_prefix=None)


class TestCommandRunner:
    def test_success_block_format(self, shell_runner):
        report = shell_runner.run(["echo '  hello  '"])
        assert report.outcome is ExecutionOutcome.EXECUTED
        assert report.result_text == "$ echo '  hello  '\nhello"
        assert report.error_text is None
        assert not report.has_errors

    def test_failure_prefers_stderr(self, shell_runner):
        report = shell_runner.run(["echo broken >&2; exit 2"])
        assert report.outcome is ExecutionOutcome.FAILED
        assert report.error_text == "$ echo broken >&2; exit 2\nERROR: broken"
        assert report.result_text == ""

    def test_failure_without_stderr_names_exit_status(self, shell_runner):
        report = shell_runner.run(["exit 7"])
        assert report.error_text == "$ exit 7\nERROR: Command exited with status 7"

    def test_continues_after_failure(self, shell_runner):
        report = shell_runner.run(["echo one", "false", "echo three"])
        assert report.outcome is ExecutionOutcome.PARTIAL
        assert report.results == ["$ echo one\none", "$ echo three\nthree"]
        assert len(report.errors) == 1

    def test_blocks_joined_by_blank_line(self, shell_runner):
        report = shell_runner.run(["echo a", "echo b"])
        assert report.result_text == "$ echo a\na\n\n$ echo b\nb"

    def test_commands_share_working_state_in_order(self, shell_runner, tmp_path):
        marker = tmp_path / "marker"
        report = shell_runner.run([f"echo first > {marker}", f"cat {marker}"])
        assert report.results[1].endswith("first")

    def test_timeout_is_a_failure(self):
        runner = CommandRunner(timeout_seconds=0.2, path_prefix=None)
        report = runner.run(["sleep 5", "echo after"])
        assert report.outcome is ExecutionOutcome.PARTIAL
        assert report.errors == ["$ sleep 5\nERROR: Command timed out after 0.2s"]
        assert report.results == ["$ echo after\nafter"]

    def test_missing_shell_is_a_failure(self):
        runner = CommandRunner(shell="/nonexistent/shell", path_prefix=None)
        report = runner.run(["echo hi"])
        assert report.outcome is ExecutionOutcome.FAILED
        assert report.errors[0].startswith("$ echo hi\nERROR: ")

    def test_record_env_overrides_process_env(self, shell_runner, monkeypatch):
        monkeypatch.setenv("ACTIONGATE_TEST_VALUE", "process")
        report = shell_runner.run(["echo $ACTIONGATE_TEST_VALUE"], env={"ACTIONGATE_TEST_VALUE": "record"})
        assert report.results == ["$ echo $ACTIONGATE_TEST_VALUE\nrecord"]

    def test_path_prefix_is_prepended(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin:/bin")
        runner = CommandRunner(path_prefix="/opt/tools/bin")
        assert runner.build_env()["PATH"] == "/opt/tools/bin:/usr/bin:/bin"

    def test_no_path_prefix_leaves_path(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin:/bin")
        assert CommandRunner(path_prefix=None).build_env()["PATH"] == "/usr/bin:/bin"

    def test_durations_observed(self, metrics):
        runner = CommandRunner(timeout_seconds=5, path_prefix=None, metrics=metrics)
        runner.run(["true", "false"])
        assert metrics.registry.get_sample_value("actiongate_command_duration_seconds_count") == 2.0
