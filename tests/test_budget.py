"""Tests for BudgetService."""

import pytest
from datetime import date
from decimal import Decimal

from fundledger.domain.budget import variance_percentage
from fundledger.domain.errors import (
    BudgetAlreadyExistsError,
    FiscalYearClosedError,
    InvalidAccountCategoryError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def salaries_budget(budget_service, chart, fiscal_year):
    """A 1,000,000 salaries budget for January 2025."""
    return budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", Decimal("1000000"))


def _pay_salaries(post_journal, chart, amount, journal_date=date(2025, 1, 25), **tags):
    post_journal([(chart["5100"], amount, "0"), (chart["1100"], "0", amount)], journal_date=journal_date, **tags)


class TestCreateBudget:
    """Tests for create_budget."""

    def test_create(self, budget_service, salaries_budget, chart):
        budget = budget_service.get_budget(salaries_budget)
        assert budget.account_id == chart["5100"]
        assert budget.period == "2025-01"
        assert budget.amount == Decimal("1000000.00")
        assert budget.is_active

    def test_period_is_normalized(self, budget_service, chart, fiscal_year):
        budget_id = budget_service.create_budget(fiscal_year.id, chart["5200"], " 2025-03 ", "500")
        assert budget_service.get_budget(budget_id).period == "2025-03"

    def test_non_expense_account(self, budget_service, chart, fiscal_year):
        with pytest.raises(InvalidAccountCategoryError, match="expense"):
            budget_service.create_budget(fiscal_year.id, chart["1100"], "2025-01", "100")

    def test_period_outside_fiscal_year(self, budget_service, chart, fiscal_year):
        with pytest.raises(ValidationError, match="outside"):
            budget_service.create_budget(fiscal_year.id, chart["5100"], "2026-01", "100")

    def test_negative_amount(self, budget_service, chart, fiscal_year):
        with pytest.raises(ValidationError):
            budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", "-1")

    def test_bad_period(self, budget_service, chart, fiscal_year):
        with pytest.raises(ValidationError):
            budget_service.create_budget(fiscal_year.id, chart["5100"], "January", "100")

    def test_duplicate_active_budget(self, budget_service, salaries_budget, chart, fiscal_year):
        with pytest.raises(BudgetAlreadyExistsError):
            budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", "5")

    def test_same_account_different_scope(self, budget_service, salaries_budget, chart, fiscal_year, fund):
        budget_id = budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", "5", fund_id=fund.id)
        assert budget_service.get_budget(budget_id).fund_id == fund.id

    def test_unknown_scope(self, budget_service, chart, fiscal_year):
        with pytest.raises(NotFoundError):
            budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", "5", program_id=999)

    def test_unknown_fiscal_year(self, budget_service, chart):
        with pytest.raises(NotFoundError):
            budget_service.create_budget(999, chart["5100"], "2025-01", "5")

    def test_closed_fiscal_year(self, budget_service, reference_service, chart, fiscal_year):
        reference_service.close_fiscal_year(fiscal_year.id, "controller")
        with pytest.raises(FiscalYearClosedError):
            budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", "5")


class TestModifyBudget:
    """Tests for update_budget and delete_budget."""

    def test_update_amount(self, budget_service, salaries_budget):
        budget = budget_service.update_budget(salaries_budget, amount="1200000", description="Revised")
        assert budget.amount == Decimal("1200000.00")
        assert budget.description == "Revised"

    def test_reactivation_conflict(self, budget_service, salaries_budget, chart, fiscal_year):
        budget_service.update_budget(salaries_budget, is_active=False)
        replacement = budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", "900000")
        assert budget_service.get_budget(replacement).is_active
        with pytest.raises(BudgetAlreadyExistsError):
            budget_service.update_budget(salaries_budget, is_active=True)

    def test_closed_year_is_immutable(self, budget_service, reference_service, salaries_budget, fiscal_year):
        reference_service.close_fiscal_year(fiscal_year.id, "controller")
        with pytest.raises(FiscalYearClosedError):
            budget_service.update_budget(salaries_budget, amount="1")
        with pytest.raises(FiscalYearClosedError):
            budget_service.delete_budget(salaries_budget)

    def test_delete(self, budget_service, salaries_budget):
        budget_service.delete_budget(salaries_budget)
        assert budget_service.get_budget(salaries_budget) is None
        with pytest.raises(NotFoundError):
            budget_service.delete_budget(salaries_budget)


class TestBudgetVsActual:
    """Tests for budget_vs_actual."""

    def test_variance(self, budget_service, salaries_budget, chart, fiscal_year, post_journal):
        _pay_salaries(post_journal, chart, "300000")
        report = budget_service.budget_vs_actual(fiscal_year.id, period="2025-01")
        assert len(report.lines) == 1
        line = report.lines[0]
        assert line.budget == Decimal("1000000.00")
        assert line.actual == Decimal("300000.00")
        assert line.variance == Decimal("700000.00")
        assert line.variance_pct == Decimal("70.00")
        assert report.total_variance == Decimal("700000.00")
        assert report.total_variance_pct == Decimal("70.00")

    def test_drafts_do_not_count(self, budget_service, salaries_budget, chart, fiscal_year, create_draft):
        create_draft([(chart["5100"], "300000", "0"), (chart["1100"], "0", "300000")])
        report = budget_service.budget_vs_actual(fiscal_year.id)
        assert report.lines[0].actual == Decimal("0")
        assert report.lines[0].variance_pct == Decimal("100.00")

    def test_overspend(self, budget_service, salaries_budget, chart, fiscal_year, post_journal):
        _pay_salaries(post_journal, chart, "1100000")
        line = budget_service.budget_vs_actual(fiscal_year.id).lines[0]
        assert line.variance == Decimal("-100000.00")
        assert line.variance_pct == Decimal("-10.00")

    def test_cumulative_and_month_only(self, budget_service, chart, fiscal_year, post_journal):
        budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-02", "500000")
        _pay_salaries(post_journal, chart, "300000", journal_date=date(2025, 1, 25))
        _pay_salaries(post_journal, chart, "100000", journal_date=date(2025, 2, 25))

        ytd = budget_service.budget_vs_actual(fiscal_year.id, period="2025-02")
        assert ytd.lines[0].actual == Decimal("400000.00")

        month = budget_service.budget_vs_actual(fiscal_year.id, period="2025-02", cumulative=False)
        assert month.lines[0].actual == Decimal("100000.00")

    def test_year_to_date_total_counts_spending_once(self, budget_service, chart, fiscal_year, post_journal):
        """Monthly rows of one account share a single year-to-date actual in the totals."""
        budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", "1000")
        budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-02", "1000")
        budget_service.create_budget(fiscal_year.id, chart["5200"], "2025-01", "100")
        _pay_salaries(post_journal, chart, "300", journal_date=date(2025, 1, 20))
        _pay_salaries(post_journal, chart, "200", journal_date=date(2025, 2, 10))
        post_journal([(chart["5200"], "40", "0"), (chart["1100"], "0", "40")], journal_date=date(2025, 1, 22))

        report = budget_service.budget_vs_actual(fiscal_year.id)
        actuals = {(line.account_code, line.period): line.actual for line in report.lines}
        assert actuals == {
            ("5100", "2025-01"): Decimal("300.00"),
            ("5100", "2025-02"): Decimal("500.00"),
            ("5200", "2025-01"): Decimal("40.00"),
        }
        assert report.total_budget == Decimal("2100.00")
        assert report.total_actual == Decimal("540.00")
        assert report.total_variance == Decimal("1560.00")

        month = budget_service.budget_vs_actual(fiscal_year.id, cumulative=False)
        assert month.total_actual == Decimal("540.00")

    def test_actual_follows_budget_scope(self, budget_service, chart, fiscal_year, post_journal, fund):
        budget_service.create_budget(fiscal_year.id, chart["5100"], "2025-01", "1000", fund_id=fund.id)
        _pay_salaries(post_journal, chart, "250", fund_id=fund.id)
        _pay_salaries(post_journal, chart, "600")
        line = budget_service.budget_vs_actual(fiscal_year.id).lines[0]
        assert line.actual == Decimal("250.00")

    def test_inactive_budgets_skipped(self, budget_service, salaries_budget, fiscal_year):
        budget_service.update_budget(salaries_budget, is_active=False)
        report = budget_service.budget_vs_actual(fiscal_year.id)
        assert report.lines == ()
        assert report.total_budget == Decimal("0")
        assert report.total_variance_pct == Decimal("0")


def test_variance_percentage_zero_budget():
    assert variance_percentage(Decimal("0"), Decimal("-50")) == Decimal("0")
    assert variance_percentage(Decimal("200"), Decimal("50")) == Decimal("25.00")
