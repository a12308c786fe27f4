"""Tests for budget commands."""

import pytest
from datetime import date
from fundledger.cli.main import cli


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI against the test database."""

    def _run(*args, input=None):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], input=input)

    return _run


@pytest.fixture
def budget_ledger(chart, branch, fiscal_year):
    """Chart, branch and fiscal year shared by the budget CLI tests."""
    return chart


def _create(run, *extra, account="5100", period="2025-02", amount="1,000"):
    return run(
        "budget", "create", "--fiscal-year", "FY2025", "--account", account,
        "--period", period, "--amount", amount, *extra,
    )


def _total_line(output):
    return [line for line in output.splitlines() if line.startswith("Total")][0]


class TestBudgetCreate:
    """Tests for budget create."""

    def test_create(self, run, budget_ledger):
        result = _create(run)
        assert result.exit_code == 0
        assert "Created budget (ID: 1)" in result.output

    def test_revenue_account_rejected(self, run, budget_ledger):
        result = _create(run, account="4100")
        assert result.exit_code == 1
        assert "expense" in result.output

    def test_duplicate(self, run, budget_ledger):
        _create(run)
        result = _create(run, amount="500")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_amount(self, run, budget_ledger):
        result = _create(run, amount="lots")
        assert result.exit_code == 1
        assert "Invalid amount" in result.output

    def test_unknown_fiscal_year(self, run, budget_ledger):
        result = run("budget", "create", "--fiscal-year", "FY1999", "--account", "5100",
                     "--period", "1999-01", "--amount", "1")
        assert result.exit_code == 1
        assert "Fiscal year 'FY1999' not found" in result.output


class TestBudgetMaintenance:
    """Tests for budget list, update and delete."""

    def test_list(self, run, budget_ledger):
        _create(run)
        _create(run, account="5200", period="2025-03", amount="250")

        result = run("budget", "list")
        assert result.exit_code == 0
        assert "1,000.00" in result.output
        assert "250.00" in result.output
        assert "(2 budgets)" in result.output

        result = run("budget", "list", "--period", "2025-03")
        assert "(1 budgets)" in result.output
        assert "5200" in result.output

    def test_list_empty(self, run, budget_ledger):
        result = run("budget", "list")
        assert "No budgets found." in result.output

    def test_update_and_deactivate(self, run, budget_ledger):
        _create(run)
        result = run("budget", "update", "1", "--amount", "2,000")
        assert result.exit_code == 0
        assert "Updated budget 1" in result.output

        run("budget", "update", "1", "--inactive")
        result = run("budget", "list")
        assert "2,000.00 (inactive)" in result.output

    def test_delete(self, run, budget_ledger):
        _create(run)
        assert "Deletion cancelled." in run("budget", "delete", "1", input="n\n").output

        result = run("budget", "delete", "1", "--yes")
        assert result.exit_code == 0
        assert "Deleted budget 1" in result.output
        assert "No budgets found." in run("budget", "list").output

    def test_delete_missing(self, run, budget_ledger):
        result = run("budget", "delete", "99", "--yes")
        assert result.exit_code == 1
        assert "not found" in result.output


class TestBudgetVariance:
    """Tests for budget variance."""

    @pytest.fixture
    def spending(self, run, budget_ledger, post_journal):
        chart = budget_ledger
        post_journal([(chart["5100"], "300", "0"), (chart["1100"], "0", "300")], journal_date=date(2025, 1, 20))
        post_journal([(chart["5100"], "200", "0"), (chart["1100"], "0", "200")], journal_date=date(2025, 2, 10))
        _create(run)

    def test_year_to_date(self, run, spending):
        result = run("budget", "variance", "--fiscal-year", "FY2025")
        assert result.exit_code == 0
        total = _total_line(result.output)
        assert "1,000.00" in total
        assert "500.00" in total
        assert "50.00%" in total

    def test_month_only(self, run, spending):
        result = run("budget", "variance", "--fiscal-year", "FY2025", "--month-only")
        total = _total_line(result.output)
        assert "200.00" in total
        assert "800.00" in total
        assert "80.00%" in total

    def test_no_budgets_for_period(self, run, spending):
        result = run("budget", "variance", "--fiscal-year", "FY2025", "--period", "2025-06")
        assert result.exit_code == 0
        assert "No budgets found." in result.output
