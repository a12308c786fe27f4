"""Tests for journal commands."""

import pytest
from fundledger.cli.main import cli

JOURNAL_NUMBER = "JE/HQ/202501/0001"


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI against the test database as a given user."""

    def _run(*args, user="alice", input=None):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "--user", user, *args], input=input)

    return _run


@pytest.fixture
def setup_ledger(chart, branch, fiscal_year, fund, program):
    """Chart, branch, fiscal year and dimensions shared by the CLI tests."""
    return chart


def _create(run, *lines, date="2025-01-15", description="Tuition January"):
    args = ["journal", "create", "--branch", "HQ", "--date", date, "--description", description]
    for line in lines:
        args += ["--line", line]
    return run(*args)


def _create_tuition(run):
    return _create(run, "1100:D:500,000", "4100:C:500000:fund=GEN:desc=Tuition: January")


class TestJournalCreate:
    """Tests for journal create."""

    def test_create(self, run, setup_ledger, reopen_db):
        result = _create_tuition(run)
        assert result.exit_code == 0
        assert f"Created journal {JOURNAL_NUMBER}" in result.output

        journal = reopen_db().get_journal_by_number(JOURNAL_NUMBER)
        assert journal.created_by == "alice"
        assert journal.lines[1].description == "Tuition: January"
        assert journal.lines[1].fund_id is not None
        assert journal.lines[0].fund_id is None

    def test_unbalanced(self, run, setup_ledger):
        result = _create(run, "1100:D:500", "4100:C:400")
        assert result.exit_code == 1
        assert "not balanced" in result.output

    def test_header_account(self, run, setup_ledger):
        result = _create(run, "1000:D:500", "4100:C:500")
        assert result.exit_code == 1
        assert "cannot have transactions" in result.output

    @pytest.mark.parametrize(
        "line,message",
        [
            ("1100:500", "Expected ACCOUNT:D|C:AMOUNT"),
            ("1100:X:500", "Invalid side"),
            ("1100:D:abc", "Invalid amount"),
            ("1100:D:500:color=red", "Unknown line option"),
            ("1100:D:500:fund=NOPE", "Fund 'NOPE' not found"),
            ("9999:D:500", "not found"),
        ],
    )
    def test_bad_line(self, run, setup_ledger, line, message):
        result = _create(run, line, "4100:C:500")
        assert result.exit_code == 1
        assert message in result.output

    def test_unknown_branch(self, run, setup_ledger):
        result = run(
            "journal", "create", "--branch", "XX", "--description", "x", "--line", "1100:D:1", "--line", "4100:C:1"
        )
        assert result.exit_code == 1
        assert "Branch 'XX' not found" in result.output


class TestJournalWorkflow:
    """Tests for submit, approve, reject, post and unpost commands."""

    def test_full_workflow(self, run, setup_ledger):
        assert _create_tuition(run).exit_code == 0

        result = run("journal", "submit", JOURNAL_NUMBER)
        assert result.exit_code == 0
        assert f"Journal {JOURNAL_NUMBER} submitted for review" in result.output

        result = run("journal", "approve", JOURNAL_NUMBER, "--notes", "ok", user="bob")
        assert result.exit_code == 0
        assert "approved" in result.output

        result = run("journal", "post", JOURNAL_NUMBER, user="bob")
        assert result.exit_code == 0
        assert "posted" in result.output

        result = run("journal", "show", JOURNAL_NUMBER)
        assert "Status: Posted" in result.output
        assert "Approved by: bob" in result.output

        result = run("journal", "post", JOURNAL_NUMBER, user="bob")
        assert result.exit_code == 1
        assert "status is 'posted'" in result.output

        result = run("journal", "unpost", JOURNAL_NUMBER, user="bob")
        assert result.exit_code == 0
        assert "unposted" in result.output

    def test_self_approval_rejected(self, run, setup_ledger):
        _create_tuition(run)
        run("journal", "submit", JOURNAL_NUMBER)
        result = run("journal", "approve", JOURNAL_NUMBER)
        assert result.exit_code == 1
        assert "cannot review" in result.output

    def test_reject(self, run, setup_ledger):
        _create_tuition(run)
        run("journal", "submit", "1")
        result = run("journal", "reject", JOURNAL_NUMBER, "--reason", "Wrong fund", user="bob")
        assert result.exit_code == 0
        assert "rejected" in result.output

        result = run("journal", "show", JOURNAL_NUMBER)
        assert "Rejected by: bob (Wrong fund)" in result.output

    def test_submit_by_other_user(self, run, setup_ledger):
        _create_tuition(run)
        result = run("journal", "submit", JOURNAL_NUMBER, user="bob")
        assert result.exit_code == 1
        assert "Only the creator" in result.output

    def test_history(self, run, setup_ledger):
        _create_tuition(run)
        run("journal", "submit", JOURNAL_NUMBER)
        run("journal", "reject", JOURNAL_NUMBER, "--reason", "Wrong fund", user="bob")

        result = run("journal", "history", "1")
        assert result.exit_code == 0
        lines = [line for line in result.output.splitlines() if line.strip()]
        assert len(lines) == 3
        assert "created" in lines[0]
        assert "review -> rejected | bob | Wrong fund" in lines[2]

    def test_history_empty(self, run, setup_ledger):
        result = run("journal", "history", "42")
        assert result.exit_code == 0
        assert "No history found." in result.output

    def test_unknown_journal(self, run, setup_ledger):
        result = run("journal", "submit", "JE/HQ/209901/0001")
        assert result.exit_code == 1
        assert "not found" in result.output


class TestJournalEditing:
    """Tests for update, delete and list."""

    def test_update_description_only(self, run, setup_ledger, reopen_db):
        _create_tuition(run)
        result = run("journal", "update", JOURNAL_NUMBER, "--description", "Tuition, corrected")
        assert result.exit_code == 0
        assert f"Updated journal {JOURNAL_NUMBER}" in result.output

        journal = reopen_db().get_journal_by_number(JOURNAL_NUMBER)
        assert journal.description == "Tuition, corrected"
        assert len(journal.lines) == 2

    def test_update_lines(self, run, setup_ledger, reopen_db):
        _create_tuition(run)
        result = run(
            "journal", "update", JOURNAL_NUMBER, "--line", "1200:D:750", "--line", "4100:C:750"
        )
        assert result.exit_code == 0
        journal = reopen_db().get_journal_by_number(JOURNAL_NUMBER)
        assert journal.lines[0].account_code == "1200"
        assert str(journal.total_debit) == "750.00"

    def test_delete(self, run, setup_ledger):
        _create_tuition(run)
        result = run("journal", "delete", JOURNAL_NUMBER, "--yes")
        assert result.exit_code == 0
        assert f"Deleted journal {JOURNAL_NUMBER}" in result.output
        assert "No journals found." in run("journal", "list").output

    def test_delete_cancelled(self, run, setup_ledger):
        _create_tuition(run)
        result = run("journal", "delete", JOURNAL_NUMBER, input="n\n")
        assert "Deletion cancelled." in result.output

    def test_list_filters(self, run, setup_ledger):
        _create_tuition(run)
        _create(run, "5100:D:100", "1100:C:100", date="2025-02-03", description="Payroll")

        result = run("journal", "list")
        assert result.exit_code == 0
        assert "Found 2 journal(s)" in result.output

        result = run("journal", "list", "--period", "2025-02")
        assert "Found 1 journal(s)" in result.output
        assert "Payroll" in result.output

        result = run("journal", "list", "--status", "posted")
        assert "No journals found." in result.output

    def test_list_period_conflict(self, run, setup_ledger):
        result = run("journal", "list", "--period", "2025-02", "--start-date", "2025-01-01")
        assert result.exit_code == 1
        assert "cannot be combined" in result.output
