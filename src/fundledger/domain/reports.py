"""Financial statements built from posted journals.

Every report is a read-only composition of the chart of accounts and the
balance service; unposted journals never appear.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from fundledger.config import LedgerConfig
from fundledger.database.base import Database
from fundledger.domain.balance import BalanceService, ledger_scope, normal_balance_amount
from fundledger.domain.entities import (
    ZERO,
    Account,
    AccountCategory,
    BalanceSheetReport,
    GeneralLedgerEntry,
    GeneralLedgerReport,
    IncomeStatementReport,
    NormalBalance,
    StatementLine,
    StatementSection,
    TrialBalanceLine,
    TrialBalanceReport,
)
from fundledger.domain.errors import NotFoundError, ValidationError, account_not_found
from fundledger.logging_config import get_logger

logger = get_logger("reports")

NET_INCOME_CODE = "NET_INCOME"
NET_INCOME_NAME = "Net Income (Current Year)"


def _section(
    category: AccountCategory, accounts: list[Account], balances: dict[int, Decimal]
) -> StatementSection:
    """Build a statement section from the non-zero balances of a category."""
    lines = []
    total = ZERO
    for account in accounts:
        if account.category != category:
            continue
        amount = balances.get(account.id, ZERO)
        if amount == 0:
            continue
        lines.append(
            StatementLine(
                account_code=account.code,
                account_name=account.name,
                amount=amount,
                level=account.level,
                account_id=account.id,
            )
        )
        total += amount
    return StatementSection(category=category, lines=tuple(lines), total=total)


class ReportService:
    """Trial balance, balance sheet, income statement and general ledger."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        self.db = db
        self.config = config or LedgerConfig()
        self.balances = BalanceService(db, self.config)

    def trial_balance(
        self,
        as_of_date: date,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
    ) -> TrialBalanceReport:
        """Balances of every detail account with a non-zero balance.

        A positive balance appears on the account's normal side and a
        negative balance on the opposite side, so the two columns total the
        same for any ledger built from balanced journals.
        """
        accounts = self.db.list_accounts(detail_only=True)
        balances = self.balances.balances_for_accounts(
            accounts, as_of_date=as_of_date, branch_id=branch_id, fund_id=fund_id, program_id=program_id
        )

        lines = []
        total_debit = ZERO
        total_credit = ZERO
        for account in accounts:
            balance = balances[account.id]
            if balance == 0:
                continue
            on_debit_side = (account.normal_balance == NormalBalance.DEBIT) == (balance > 0)
            debit = abs(balance) if on_debit_side else ZERO
            credit = ZERO if on_debit_side else abs(balance)
            lines.append(
                TrialBalanceLine(
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    category=account.category,
                    debit=debit,
                    credit=credit,
                )
            )
            total_debit += debit
            total_credit += credit

        report = TrialBalanceReport(
            as_of_date=as_of_date,
            lines=tuple(lines),
            total_debit=total_debit,
            total_credit=total_credit,
        )
        logger.debug(
            "Trial balance as of %s: %d lines", as_of_date.isoformat(), len(lines),
            extra={"is_balanced": report.is_balanced},
        )
        if not report.is_balanced:
            logger.warning(
                "Trial balance as of %s is out of balance by %s", as_of_date.isoformat(), report.difference
            )
        return report

    def balance_sheet(
        self,
        as_of_date: date,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
    ) -> BalanceSheetReport:
        """Assets, liabilities and equity at a date.

        Equity gains a synthetic ``NET_INCOME`` line holding revenue minus
        expenses from January 1 of the as-of year through the as-of date.
        """
        accounts = self.db.list_accounts(detail_only=True)
        balances = self.balances.balances_for_accounts(
            accounts, as_of_date=as_of_date, branch_id=branch_id, fund_id=fund_id, program_id=program_id
        )
        assets = _section(AccountCategory.ASSET, accounts, balances)
        liabilities = _section(AccountCategory.LIABILITY, accounts, balances)
        equity = _section(AccountCategory.EQUITY, accounts, balances)

        year_start = date(as_of_date.year, 1, 1)
        income = self.income_statement(
            year_start, as_of_date, branch_id=branch_id, fund_id=fund_id, program_id=program_id
        )
        net_income = income.net_income
        net_income_line = StatementLine(account_code=NET_INCOME_CODE, account_name=NET_INCOME_NAME, amount=net_income)
        equity = StatementSection(
            category=AccountCategory.EQUITY,
            lines=equity.lines + (net_income_line,),
            total=equity.total + net_income,
        )

        report = BalanceSheetReport(
            as_of_date=as_of_date,
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            net_income=net_income,
        )
        logger.debug(
            "Balance sheet as of %s", as_of_date.isoformat(), extra={"is_balanced": report.is_balanced}
        )
        return report

    def income_statement(
        self,
        start_date: date,
        end_date: date,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
    ) -> IncomeStatementReport:
        """Revenue and expenses over a date range.

        Raises:
            ValidationError: If start_date is after end_date
        """
        accounts = [
            acc
            for acc in self.db.list_accounts(detail_only=True)
            if acc.category in (AccountCategory.REVENUE, AccountCategory.EXPENSE)
        ]
        balances = self.balances.balances_for_accounts(
            accounts,
            start_date=start_date,
            end_date=end_date,
            branch_id=branch_id,
            fund_id=fund_id,
            program_id=program_id,
        )
        report = IncomeStatementReport(
            start_date=start_date,
            end_date=end_date,
            revenue=_section(AccountCategory.REVENUE, accounts, balances),
            expenses=_section(AccountCategory.EXPENSE, accounts, balances),
        )
        logger.debug(
            "Income statement %s..%s", start_date.isoformat(), end_date.isoformat(),
            extra={"net_income": str(report.net_income)},
        )
        return report

    def general_ledger(
        self,
        account_id: int,
        start_date: date,
        end_date: date,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
    ) -> GeneralLedgerReport:
        """Chronological postings of one account with a running balance.

        The opening balance is the account balance at the end of the day
        before ``start_date``. Entries are ordered by journal date, then
        journal creation time, then line.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If start_date is after end_date
        """
        if start_date > end_date:
            raise ValidationError(
                f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
            )
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        opening_balance = self.balances.account_balance(
            account_id,
            start_date - timedelta(days=1),
            branch_id=branch_id,
            fund_id=fund_id,
            program_id=program_id,
        )
        ledger_entries = self.db.list_ledger_entries(
            account_id, start_date, end_date, scope=ledger_scope(branch_id, fund_id, program_id)
        )

        running = opening_balance
        total_debit = ZERO
        total_credit = ZERO
        entries = []
        for entry in ledger_entries:
            running += normal_balance_amount(account.normal_balance, entry.debit, entry.credit)
            total_debit += entry.debit
            total_credit += entry.credit
            entries.append(
                GeneralLedgerEntry(
                    journal_id=entry.journal_id,
                    journal_number=entry.journal_number,
                    journal_date=entry.journal_date,
                    description=entry.description,
                    debit=entry.debit,
                    credit=entry.credit,
                    balance=running,
                )
            )

        logger.debug("General ledger for %s: %d entries", account.code, len(entries))
        return GeneralLedgerReport(
            account=account,
            start_date=start_date,
            end_date=end_date,
            opening_balance=opening_balance,
            entries=tuple(entries),
            total_debit=total_debit,
            total_credit=total_credit,
            closing_balance=running,
        )
