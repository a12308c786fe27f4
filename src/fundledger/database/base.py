"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from fundledger.domain.entities import (
    Account,
    AccountCategory,
    AccountDraft,
    Branch,
    Budget,
    Dimension,
    DimensionKind,
    FiscalYear,
    Journal,
    JournalEvent,
    JournalLineInput,
    JournalStatus,
    JournalTransition,
    LedgerEntry,
    LedgerScope,
    Page,
)


class Database(ABC):
    """Abstract database interface for fundledger."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Branch operations
    @abstractmethod
    def create_branch(self, code: str, name: str) -> int:
        """Create a branch. Returns branch ID."""
        pass

    @abstractmethod
    def get_branch(self, branch_id: int) -> Optional[Branch]:
        """Get branch by ID."""
        pass

    @abstractmethod
    def get_branch_by_code(self, code: str) -> Optional[Branch]:
        """Get branch by code."""
        pass

    @abstractmethod
    def list_branches(self, active_only: bool = False) -> list[Branch]:
        """List branches ordered by code."""
        pass

    # Dimension (fund/program/donor) operations
    @abstractmethod
    def create_dimension(
        self, kind: DimensionKind, code: str, name: str, description: Optional[str] = None
    ) -> int:
        """Create a fund, program or donor. Returns its ID."""
        pass

    @abstractmethod
    def get_dimension(self, kind: DimensionKind, dimension_id: int) -> Optional[Dimension]:
        """Get a dimension by ID."""
        pass

    @abstractmethod
    def get_dimension_by_code(self, kind: DimensionKind, code: str) -> Optional[Dimension]:
        """Get a dimension by code."""
        pass

    @abstractmethod
    def list_dimensions(self, kind: DimensionKind, active_only: bool = False) -> list[Dimension]:
        """List dimensions of one kind ordered by code."""
        pass

    @abstractmethod
    def update_dimension(
        self,
        kind: DimensionKind,
        dimension_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update dimension fields."""
        pass

    # Fiscal year operations
    @abstractmethod
    def create_fiscal_year(self, name: str, start_date: date, end_date: date) -> int:
        """Create a fiscal year. Returns fiscal year ID."""
        pass

    @abstractmethod
    def get_fiscal_year(self, fiscal_year_id: int) -> Optional[FiscalYear]:
        """Get fiscal year by ID."""
        pass

    @abstractmethod
    def list_fiscal_years(self) -> list[FiscalYear]:
        """List fiscal years, newest first."""
        pass

    @abstractmethod
    def get_current_fiscal_year(self) -> Optional[FiscalYear]:
        """Get the fiscal year flagged as current."""
        pass

    @abstractmethod
    def set_current_fiscal_year(self, fiscal_year_id: int) -> None:
        """Flag one fiscal year as current and clear the flag on all others."""
        pass

    @abstractmethod
    def close_fiscal_year(self, fiscal_year_id: int, actor: str) -> None:
        """Mark a fiscal year as closed."""
        pass

    @abstractmethod
    def find_fiscal_year_for_date(self, day: date) -> Optional[FiscalYear]:
        """Get the fiscal year whose range contains the given date."""
        pass

    # Account operations
    @abstractmethod
    def create_accounts(self, drafts: list[AccountDraft]) -> list[int]:
        """Create accounts in one transaction. Returns IDs in input order.

        Each draft's ``parent_code`` is resolved against existing accounts and
        accounts created earlier in the same batch.
        """
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, code: str) -> Optional[Account]:
        """Get account by code."""
        pass

    @abstractmethod
    def list_accounts(
        self,
        category: Optional[AccountCategory] = None,
        detail_only: bool = False,
        active_only: bool = False,
    ) -> list[Account]:
        """List accounts ordered by code."""
        pass

    @abstractmethod
    def list_accounts_page(
        self,
        page: int,
        page_size: int,
        sort: Optional[str] = None,
        search: Optional[str] = None,
        category: Optional[AccountCategory] = None,
    ) -> Page[Account]:
        """List one page of accounts, optionally filtered by code/name search."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        name_en: Optional[str] = None,
        is_active: Optional[bool] = None,
        description: Optional[str] = None,
    ) -> None:
        """Update the mutable fields of an account."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def count_child_accounts(self, account_id: int) -> int:
        """Count accounts whose parent is the given account."""
        pass

    @abstractmethod
    def count_account_lines(self, account_id: int) -> int:
        """Count journal lines (any status) referencing the account."""
        pass

    @abstractmethod
    def count_account_budgets(self, account_id: int) -> int:
        """Count budget rows (active or not) for the account."""
        pass

    # Journal operations
    @abstractmethod
    def create_journal(
        self,
        number_prefix: str,
        branch_id: int,
        journal_date: date,
        description: str,
        reference_no: Optional[str],
        created_by: str,
        total_debit: Decimal,
        total_credit: Decimal,
        lines: list[JournalLineInput],
    ) -> int:
        """Create a draft journal with its lines. Returns journal ID.

        The journal number is ``<number_prefix>/<NNNN>`` where the sequence is
        allocated from the counter row named ``number_prefix`` in the same
        transaction.

        Raises:
            DuplicateSequenceError: If the allocated number collides
        """
        pass

    @abstractmethod
    def get_journal(self, journal_id: int) -> Optional[Journal]:
        """Get journal with its lines by ID."""
        pass

    @abstractmethod
    def get_journal_by_number(self, journal_number: str) -> Optional[Journal]:
        """Get journal with its lines by journal number."""
        pass

    @abstractmethod
    def list_journals(
        self,
        page: int,
        page_size: int,
        sort: Optional[str] = None,
        status: Optional[JournalStatus] = None,
        branch_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Page[Journal]:
        """List one page of journal headers (without lines)."""
        pass

    @abstractmethod
    def replace_journal(
        self,
        journal_id: int,
        actor: str,
        journal_date: date,
        description: str,
        reference_no: Optional[str],
        total_debit: Decimal,
        total_credit: Decimal,
        lines: list[JournalLineInput],
    ) -> None:
        """Replace header fields and all lines of a draft journal."""
        pass

    @abstractmethod
    def delete_journal(self, journal_id: int, actor: str) -> None:
        """Delete a draft journal and its lines."""
        pass

    @abstractmethod
    def apply_journal_transition(
        self,
        journal_id: int,
        transition: JournalTransition,
        from_status: JournalStatus,
        to_status: JournalStatus,
        actor: str,
        fields: dict[str, Any],
        notes: Optional[str] = None,
    ) -> None:
        """Move a journal between statuses and record the event.

        Raises:
            InvalidTransitionError: If the stored status is not ``from_status``
        """
        pass

    @abstractmethod
    def list_journal_events(self, journal_id: int) -> list[JournalEvent]:
        """List the recorded events of a journal in order of occurrence."""
        pass

    # Ledger queries (posted lines only)
    @abstractmethod
    def sum_posted_lines(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        scope: Optional[LedgerScope] = None,
    ) -> tuple[Decimal, Decimal]:
        """Sum debit and credit of posted lines for one account."""
        pass

    @abstractmethod
    def sum_posted_lines_by_account(
        self,
        account_ids: Optional[list[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        scope: Optional[LedgerScope] = None,
    ) -> dict[int, tuple[Decimal, Decimal]]:
        """Sum debit and credit of posted lines grouped by account."""
        pass

    @abstractmethod
    def list_ledger_entries(
        self,
        account_id: int,
        start_date: date,
        end_date: date,
        scope: Optional[LedgerScope] = None,
    ) -> list[LedgerEntry]:
        """List posted lines for one account in chronological order."""
        pass

    # Budget operations
    @abstractmethod
    def create_budget(
        self,
        fiscal_year_id: int,
        account_id: int,
        period: str,
        amount: Decimal,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> int:
        """Create a budget row. Returns budget ID."""
        pass

    @abstractmethod
    def get_budget(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID."""
        pass

    @abstractmethod
    def find_active_budget(
        self,
        account_id: int,
        period: str,
        branch_id: Optional[int] = None,
        fund_id: Optional[int] = None,
        program_id: Optional[int] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[Budget]:
        """Find the active budget for an (account, period, scope) tuple."""
        pass

    @abstractmethod
    def update_budget(
        self,
        budget_id: int,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update budget fields."""
        pass

    @abstractmethod
    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget row."""
        pass

    @abstractmethod
    def list_budgets(
        self,
        fiscal_year_id: Optional[int] = None,
        period: Optional[str] = None,
        branch_id: Optional[int] = None,
        account_id: Optional[int] = None,
        active_only: bool = False,
    ) -> list[Budget]:
        """List budgets ordered by period and account code."""
        pass

    @abstractmethod
    def list_budgets_page(
        self,
        page: int,
        page_size: int,
        sort: Optional[str] = None,
        fiscal_year_id: Optional[int] = None,
        period: Optional[str] = None,
        branch_id: Optional[int] = None,
        account_id: Optional[int] = None,
    ) -> Page[Budget]:
        """List one page of budgets."""
        pass
