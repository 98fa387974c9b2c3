"""
End-to-end tests for CLI commands
"""

import json
from datetime import timedelta

import pytest
from click.testing import CliRunner

from actiongate.cli import cli
from actiongate.core.types import ApprovalStatus


@pytest.mark.e2e
class TestCLICommands:
    """Drive the click CLI against a tmp-dir store"""

    @pytest.fixture(autouse=True)
    def _wire(self, engine, settings, monkeypatch):
        monkeypatch.setenv("USER", "tester")
        self.engine = engine
        self.settings = settings
        self.runner = CliRunner()

    def run_cli(self, *args):
        """Helper to run CLI commands"""
        return self.runner.invoke(cli, list(args), obj={"engine": self.engine, "settings": self.settings})

    def test_cli_help(self):
        result = self.run_cli("--help")
        assert result.exit_code == 0
        for command in ("list", "yes", "no", "show", "clean", "history", "stats", "propose"):
            assert command in result.output

    def test_propose_prints_request(self):
        result = self.run_cli("propose", "Archive promo", "-c", "echo archived", "--by", "agent", "--ttl", "30")
        assert result.exit_code == 0, result.output
        assert "**Approval needed: `" in result.output

        record = self.engine.list()[0]
        assert record.commands == ["echo archived"]
        assert record.proposed_by == "agent"
        assert record.expires_at - record.created_at == timedelta(minutes=30)

    def test_propose_without_commands_uses_placeholder(self):
        self.run_cli("propose", "Nothing to do")
        assert self.engine.list()[0].commands == ["echo 'No commands specified'"]

    def test_list_empty(self):
        result = self.run_cli("list")
        assert result.exit_code == 0
        assert "No pending approvals" in result.output

    def test_list_verbose(self):
        record = self.engine.propose("Archive promo", ["echo archived"], details="15 emails")
        result = self.run_cli("list", "-v")
        assert "1 approval(s):" in result.output
        assert f"[{record.id}] PENDING" in result.output
        assert "    $ echo archived" in result.output
        assert "Details: 15 emails" in result.output

    def test_list_all_includes_finished(self):
        record = self.engine.propose("Archive promo", ["true"])
        self.engine.deny(record.id)
        assert "No pending approvals" in self.run_cli("list").output
        assert f"[{record.id}] DENIED" in self.run_cli("list", "--all").output

    def test_yes_single_uses_default_actor(self):
        record = self.engine.propose("Say hi", ["echo hi"])
        result = self.run_cli("yes", record.id.lower())

        assert result.exit_code == 0, result.output
        assert f"✓ {record.id}: Say hi (executed)" in result.output
        assert "$ echo hi\nhi" in result.output
        stored = self.engine.load(record.id)
        assert stored.status == ApprovalStatus.EXECUTED
        assert stored.approved_by == "cli:tester"

    def test_yes_single_shows_errors(self):
        record = self.engine.propose("Fail", ["exit 1"])
        result = self.run_cli("yes", record.id, "--as", "user:alex")
        assert result.exit_code == 0
        assert f"✗ {record.id}: Fail (failed)" in result.output
        assert "Errors:\n$ exit 1\nERROR: Command exited with status 1" in result.output

    def test_yes_all(self):
        first = self.engine.propose("one", ["echo 1"])
        second = self.engine.propose("two", ["echo 2"])
        result = self.run_cli("yes", "all")

        assert "Processed 2 approval(s)" in result.output
        assert f"✓ {first.id}: one (executed)" in result.output
        assert f"✓ {second.id}: two (executed)" in result.output

    def test_yes_several_with_unknown(self):
        record = self.engine.propose("one", ["echo 1"])
        result = self.run_cli("yes", record.id, "NOPE")
        assert result.exit_code == 0
        assert "Processed 1 approval(s)" in result.output
        assert "✗ NOPE: Approval NOPE not found" in result.output

    def test_yes_unknown_exits_1(self):
        result = self.run_cli("yes", "NOPE")
        assert result.exit_code == 1
        assert "Error: Approval NOPE not found" in result.output

    def test_yes_expired_exits_1(self, clock):
        record = self.engine.propose("stale", ["echo x"], ttl=timedelta(minutes=1))
        clock.advance(minutes=3)
        result = self.run_cli("yes", record.id)
        assert result.exit_code == 1
        assert f"Error: Approval {record.id} has expired" in result.output

    def test_no(self):
        record = self.engine.propose("Archive promo", ["true"])
        result = self.run_cli("no", record.id, "--as", "user:sam")
        assert result.exit_code == 0
        assert f"Denied {record.id}: Archive promo" in result.output
        assert self.engine.load(record.id).denied_by == "user:sam"

    def test_no_twice_exits_1(self):
        record = self.engine.propose("Archive promo", ["true"])
        self.run_cli("no", record.id)
        result = self.run_cli("no", record.id)
        assert result.exit_code == 1
        assert f"Error: Approval {record.id} is denied, not pending" in result.output

    def test_show(self):
        record = self.engine.propose("Archive promo", ["echo archived"])
        result = self.run_cli("show", record.id)
        assert result.exit_code == 0
        assert "  Commands:" in result.output

    def test_show_missing(self):
        result = self.run_cli("show", "zz99")
        assert result.exit_code == 1
        assert "Approval ZZ99 not found" in result.output

    def test_clean(self, clock):
        record = self.engine.propose("done", ["true"])
        self.engine.deny(record.id)
        clock.advance(days=3)

        assert "Removed 0 old approval(s)" in self.run_cli("clean").output
        assert "Removed 1 old approval(s)" in self.run_cli("clean", "-d", "2").output

    def test_history_table_and_json(self):
        record = self.engine.propose("Archive promo", ["true"], proposed_by="agent")
        self.engine.deny(record.id, "user:sam")

        table = self.run_cli("history").output
        assert "Audit History (most recent first):" in table
        assert "denied" in table and "user:sam" in table

        entries = json.loads(self.run_cli("history", "--json", "-n", "1").output)
        assert entries == [{
            "ts": entries[0]["ts"],
            "event": "denied",
            "id": record.id,
            "summary": "Archive promo",
            "actor": "user:sam",
        }]

    def test_history_empty(self):
        assert "No audit history yet" in self.run_cli("history").output

    def test_stats(self):
        record = self.engine.propose("Archive promo", ["true"])
        self.engine.propose("Other", ["true"])
        self.engine.deny(record.id)

        output = self.run_cli("stats").output
        assert "Total records: 2" in output
        assert "  denied: 1" in output
        assert "  pending: 1" in output
        assert "denied: Archive promo" in output


@pytest.mark.e2e
class TestCLIConfigErrors:
    """--config problems surface as click errors on every command"""

    @pytest.mark.parametrize("command", [["show", "K7QX"], ["history"], ["stats"], ["list"]])
    def test_invalid_yaml_reports_error(self, tmp_path, command):
        config = tmp_path / "bad.yaml"
        config.write_text("store: [unclosed\n")

        result = CliRunner().invoke(cli, ["--config", str(config), *command])

        assert result.exit_code == 1
        assert "Error: Invalid YAML" in result.output
        assert "Traceback" not in result.output

    def test_missing_config_file_is_usage_error(self, tmp_path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "stats"])
        assert result.exit_code == 2
        assert "does not exist" in result.output
