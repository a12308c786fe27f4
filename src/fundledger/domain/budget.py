"""Budget allocations and budget-versus-actual variance."""

from decimal import Decimal
from typing import Any, Optional

from fundledger.config import LedgerConfig
from fundledger.database.base import Database
from fundledger.domain.balance import BalanceService
from fundledger.domain.entities import (
    ZERO,
    AccountCategory,
    Budget as BudgetEntity,
    BudgetVarianceLine,
    BudgetVarianceReport,
    DimensionKind,
    FiscalYear,
    Page,
    PageRequest,
)
from fundledger.domain.errors import (
    BudgetAlreadyExistsError,
    FiscalYearClosedError,
    InvalidAccountCategoryError,
    NotFoundError,
    ValidationError,
    account_not_found,
    branch_not_found,
    budget_not_found,
    dimension_not_found,
    fiscal_year_closed,
    fiscal_year_not_found,
)
from fundledger.domain.pagination import resolve_page_request
from fundledger.domain.validation import optional_text, to_amount
from fundledger.logging_config import get_logger
from fundledger.utils.date_parser import format_period, period_bounds

logger = get_logger("budgets")

HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def variance_percentage(budget: Decimal, variance: Decimal) -> Decimal:
    """Variance as a percentage of budget, 0 when the budget is 0."""
    if budget == 0:
        return ZERO
    return (variance / budget * HUNDRED).quantize(CENT)


def _normalize_period(period: str) -> str:
    return format_period(period_bounds(period)[0])


class BudgetService:
    """Service for budget rows and variance reporting.

    Budgets may only target expense accounts, and a closed fiscal year makes
    its budgets immutable.
    """

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        self.db = db
        self.config = config or LedgerConfig()
        self.balances = BalanceService(db, self.config)

    def create_budget(
        self,
        fiscal_year_id: int,
        account_id: int,
        period: str,
        amount: Any,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> int:
        """Create a budget allocation.

        Args:
            fiscal_year_id: Fiscal year the budget belongs to
            account_id: Expense account being budgeted
            period: Month in ``YYYY-MM`` form, inside the fiscal year
            amount: Non-negative amount
            branch_id: Optional branch scope
            fund_id: Optional fund scope
            program_id: Optional program scope
            description: Optional description

        Returns:
            Budget ID

        Raises:
            NotFoundError: If a referenced record does not exist
            FiscalYearClosedError: If the fiscal year is closed
            InvalidAccountCategoryError: If the account is not an expense account
            ValidationError: If the period or amount is invalid
            BudgetAlreadyExistsError: If an active budget already exists for
                the same account, period, branch, fund and program
        """
        fiscal_year = self._require_open_fiscal_year(fiscal_year_id)
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.category != AccountCategory.EXPENSE:
            raise InvalidAccountCategoryError(
                f"Budgets can only be set on expense accounts; {account.code} is {account.category.value}"
            )

        period = _normalize_period(period)
        period_start, period_end = period_bounds(period)
        if period_start > fiscal_year.end_date or period_end < fiscal_year.start_date:
            raise ValidationError(f"Period {period} is outside fiscal year '{fiscal_year.name}'")

        amount = to_amount(amount, "Budget amount")
        if amount < 0:
            raise ValidationError("Budget amount must not be negative")

        self._check_scope(branch_id, fund_id, program_id)
        if self.db.find_active_budget(account_id, period, branch_id, fund_id, program_id) is not None:
            raise BudgetAlreadyExistsError(
                f"An active budget already exists for account {account.code} in {period}"
            )

        budget_id = self.db.create_budget(
            fiscal_year_id=fiscal_year_id,
            account_id=account_id,
            period=period,
            amount=amount,
            branch_id=branch_id,
            fund_id=fund_id,
            program_id=program_id,
            description=optional_text(description),
        )
        logger.info(
            "Created budget for %s %s",
            account.code,
            period,
            extra={"budget_id": budget_id, "amount": str(amount)},
        )
        return budget_id

    def get_budget(self, budget_id: int) -> Optional[BudgetEntity]:
        return self.db.get_budget(budget_id)

    def require_budget(self, budget_id: int) -> BudgetEntity:
        """Get budget by ID, raising NotFoundError when missing."""
        budget = self.db.get_budget(budget_id)
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))
        return budget

    def update_budget(
        self,
        budget_id: int,
        amount: Any = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> BudgetEntity:
        """Change the amount, description or active flag of a budget.

        Raises:
            NotFoundError: If the budget does not exist
            FiscalYearClosedError: If its fiscal year is closed
            BudgetAlreadyExistsError: If reactivating would duplicate an
                active budget
        """
        budget = self.require_budget(budget_id)
        self._require_open_fiscal_year(budget.fiscal_year_id)

        if amount is not None:
            amount = to_amount(amount, "Budget amount")
            if amount < 0:
                raise ValidationError("Budget amount must not be negative")
        if is_active and not budget.is_active:
            duplicate = self.db.find_active_budget(
                budget.account_id,
                budget.period,
                budget.branch_id,
                budget.fund_id,
                budget.program_id,
                exclude_id=budget_id,
            )
            if duplicate is not None:
                raise BudgetAlreadyExistsError(
                    f"Budget {duplicate.id} is already active for the same account and period"
                )

        self.db.update_budget(budget_id, amount=amount, description=description, is_active=is_active)
        logger.info("Updated budget %s", budget_id)
        return self.require_budget(budget_id)

    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget.

        Raises:
            NotFoundError: If the budget does not exist
            FiscalYearClosedError: If its fiscal year is closed
        """
        budget = self.require_budget(budget_id)
        self._require_open_fiscal_year(budget.fiscal_year_id)
        self.db.delete_budget(budget_id)
        logger.info("Deleted budget %s", budget_id)

    def list_budgets(
        self,
        page: Optional[PageRequest] = None,
        fiscal_year_id: Optional[int] = None,
        period: Optional[str] = None,
        branch_id: Optional[int] = None,
        account_id: Optional[int] = None,
    ) -> Page[BudgetEntity]:
        """List one page of budgets. Sortable by period, amount, account_id, created_at."""
        request = resolve_page_request(page, self.config)
        return self.db.list_budgets_page(
            page=request.page,
            page_size=request.page_size,
            sort=request.sort,
            fiscal_year_id=fiscal_year_id,
            period=_normalize_period(period) if period else None,
            branch_id=branch_id,
            account_id=account_id,
        )

    def budget_vs_actual(
        self,
        fiscal_year_id: int,
        period: Optional[str] = None,
        branch_id: Optional[int] = None,
        account_id: Optional[int] = None,
        cumulative: bool = True,
    ) -> BudgetVarianceReport:
        """Compare active budgets with posted spending.

        Each budget row's actual is the expense account's period balance
        (debits minus credits) within the row's own branch, fund and program
        scope. With ``cumulative`` the window runs from the start of the
        fiscal year to the end of the row's period (year to date); otherwise
        it covers only the row's month.

        Year-to-date windows of one account and scope overlap, so the
        summary counts each scope's actual once, at its latest period.
        Line actuals are left as they are.

        Args:
            fiscal_year_id: Fiscal year to report on
            period: Only budgets for this ``YYYY-MM`` period
            branch_id: Only budgets scoped to this branch
            account_id: Only budgets for this account
            cumulative: Year-to-date actuals instead of single-month actuals

        Returns:
            BudgetVarianceReport with one line per budget row and totals
        """
        fiscal_year = self._require_fiscal_year(fiscal_year_id)
        if period is not None:
            period = _normalize_period(period)
        budgets = self.db.list_budgets(
            fiscal_year_id=fiscal_year_id,
            period=period,
            branch_id=branch_id,
            account_id=account_id,
            active_only=True,
        )

        lines = []
        total_budget = ZERO
        scope_actuals = {}
        for budget in budgets:
            account = self.db.get_account(budget.account_id)
            if account is None:
                raise NotFoundError(account_not_found(budget.account_id))
            period_start, period_end = period_bounds(budget.period)
            if cumulative:
                window_start = fiscal_year.start_date
            else:
                window_start = max(fiscal_year.start_date, period_start)
            actual = self.balances.period_balance(
                budget.account_id,
                window_start,
                period_end,
                branch_id=budget.branch_id,
                fund_id=budget.fund_id,
                program_id=budget.program_id,
            )
            variance = budget.amount - actual
            lines.append(
                BudgetVarianceLine(
                    budget_id=budget.id,
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    period=budget.period,
                    budget=budget.amount,
                    actual=actual,
                    variance=variance,
                    variance_pct=variance_percentage(budget.amount, variance),
                )
            )
            total_budget += budget.amount
            if cumulative:
                scope = (budget.account_id, budget.branch_id, budget.fund_id, budget.program_id)
                latest = scope_actuals.get(scope)
                if latest is None or budget.period > latest[0]:
                    scope_actuals[scope] = (budget.period, actual)
            else:
                scope_actuals[budget.id] = (budget.period, actual)

        total_actual = sum((actual for _, actual in scope_actuals.values()), ZERO)

        total_variance = total_budget - total_actual
        logger.debug(
            "Budget vs actual for %s: %d lines", fiscal_year.name, len(lines),
            extra={"period": period, "cumulative": cumulative},
        )
        return BudgetVarianceReport(
            fiscal_year=fiscal_year,
            period=period,
            lines=tuple(lines),
            total_budget=total_budget,
            total_actual=total_actual,
            total_variance=total_variance,
            total_variance_pct=variance_percentage(total_budget, total_variance),
        )

    def _require_fiscal_year(self, fiscal_year_id: int) -> FiscalYear:
        fiscal_year = self.db.get_fiscal_year(fiscal_year_id)
        if fiscal_year is None:
            raise NotFoundError(fiscal_year_not_found(fiscal_year_id))
        return fiscal_year

    def _require_open_fiscal_year(self, fiscal_year_id: int) -> FiscalYear:
        fiscal_year = self._require_fiscal_year(fiscal_year_id)
        if fiscal_year.is_closed:
            logger.warning("Rejected budget change in closed fiscal year %s", fiscal_year.name)
            raise FiscalYearClosedError(fiscal_year_closed(fiscal_year.name))
        return fiscal_year

    def _check_scope(self, branch_id: Optional[int], fund_id: Optional[int], program_id: Optional[int]) -> None:
        if branch_id is not None and self.db.get_branch(branch_id) is None:
            raise NotFoundError(branch_not_found(branch_id))
        for kind, dimension_id in ((DimensionKind.FUND, fund_id), (DimensionKind.PROGRAM, program_id)):
            if dimension_id is not None and self.db.get_dimension(kind, dimension_id) is None:
                raise NotFoundError(dimension_not_found(kind.value, dimension_id))
