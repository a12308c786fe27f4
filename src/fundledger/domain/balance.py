"""Balance computation over posted journal lines.

All balances are expressed on the account's normal side: a debit-normal
account reports ``debit - credit`` and a credit-normal account reports
``credit - debit``. A positive number is therefore a normal balance and a
negative one shows the account sitting on its unusual side.

Point-in-time and period balances use the same convention, so for every
account ``account_balance(t2) - account_balance(t1) == period_balance(t1 + 1
day, t2)``.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from fundledger.config import LedgerConfig
from fundledger.database.base import Database
from fundledger.domain.entities import ZERO, Account, LedgerScope, NormalBalance
from fundledger.domain.errors import NotFoundError, ValidationError, account_not_found
from fundledger.logging_config import get_logger

logger = get_logger("balances")


def normal_balance_amount(normal_balance: NormalBalance, debit: Decimal, credit: Decimal) -> Decimal:
    """Express debit and credit sums as a balance on the normal side."""
    if normal_balance == NormalBalance.DEBIT:
        return debit - credit
    return credit - debit


def ledger_scope(
    branch_id: Optional[int] = None,
    fund_id: Optional[int] = None,
    program_id: Optional[int] = None,
) -> Optional[LedgerScope]:
    """Build a LedgerScope, or None when no filter is set."""
    if branch_id is None and fund_id is None and program_id is None:
        return None
    return LedgerScope(branch_id=branch_id, fund_id=fund_id, program_id=program_id)


class BalanceService:
    """Read-only balance queries over posted journals."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        self.db = db
        self.config = config or LedgerConfig()

    def account_balance(
        self,
        account_id: int,
        as_of_date: date,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
    ) -> Decimal:
        """Balance of an account at the end of a day.

        Args:
            account_id: Account ID
            as_of_date: Include postings dated on or before this day
            branch_id: Only journals of this branch
            fund_id: Only lines tagged with this fund
            program_id: Only lines tagged with this program

        Returns:
            Balance on the account's normal side

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self._require_account(account_id)
        debit, credit = self.db.sum_posted_lines(
            account_id, end_date=as_of_date, scope=ledger_scope(branch_id, fund_id, program_id)
        )
        return normal_balance_amount(account.normal_balance, debit, credit)

    def period_balance(
        self,
        account_id: int,
        start_date: date,
        end_date: date,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
    ) -> Decimal:
        """Net movement of an account between two days, inclusive.

        Revenue accounts report credits minus debits and expense accounts
        debits minus credits, matching the sign of ``account_balance``.

        Raises:
            ValidationError: If start_date is after end_date
            NotFoundError: If the account does not exist
        """
        _check_range(start_date, end_date)
        account = self._require_account(account_id)
        debit, credit = self.db.sum_posted_lines(
            account_id,
            start_date=start_date,
            end_date=end_date,
            scope=ledger_scope(branch_id, fund_id, program_id),
        )
        return normal_balance_amount(account.normal_balance, debit, credit)

    def balances_for_accounts(
        self,
        accounts: Iterable[Account],
        as_of_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
    ) -> dict[int, Decimal]:
        """Balances for many accounts from a single grouped query.

        Pass ``as_of_date`` for point-in-time balances, or ``start_date`` and
        ``end_date`` for period movements. Results agree with
        ``account_balance`` and ``period_balance``.

        Returns:
            Mapping of account ID to balance; accounts without postings map to 0
        """
        accounts = list(accounts)
        if as_of_date is not None:
            if start_date is not None or end_date is not None:
                raise ValidationError("Pass either as_of_date or a start/end range, not both")
            start_date, end_date = None, as_of_date
        elif start_date is None or end_date is None:
            raise ValidationError("Pass as_of_date or both start_date and end_date")
        else:
            _check_range(start_date, end_date)

        sums = self.db.sum_posted_lines_by_account(
            [acc.id for acc in accounts],
            start_date=start_date,
            end_date=end_date,
            scope=ledger_scope(branch_id, fund_id, program_id),
        )
        logger.debug("Computed balances for %d accounts", len(accounts))
        return {
            acc.id: normal_balance_amount(acc.normal_balance, *sums.get(acc.id, (ZERO, ZERO)))
            for acc in accounts
        }

    def _require_account(self, account_id: int) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account


def _check_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise ValidationError(
            f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
        )
