"""Domain model entities for fundledger.

These are pure data classes representing ledger concepts, independent of the
database schema. The database layer converts ORM rows into these entities so
that services and reports never see SQLAlchemy objects.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

ZERO = Decimal("0.00")


class NormalBalance(str, Enum):
    """Side on which an account's balance normally sits."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountCategory(str, Enum):
    """Top-level classification of an account."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def default_normal_balance(self) -> NormalBalance:
        """Normal balance implied by the category."""
        if self in (AccountCategory.ASSET, AccountCategory.EXPENSE):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT


class AccountType(str, Enum):
    """Position of an account in the chart of accounts.

    The values are the short codes used by chart-of-accounts import files.
    """

    HEADER = "H"
    SUB_HEADER = "SH"
    DETAIL = "B"
    INCOME_EXPENSE_DETAIL = "I"
    RETAINED_EARNINGS = "R"
    CURRENT_YEAR_RETAINED = "R1"

    @property
    def is_detail(self) -> bool:
        """Whether journal lines may be posted to accounts of this type."""
        return _DETAIL_TYPES[self]

    @property
    def label(self) -> str:
        """Human-readable type name."""
        return _TYPE_LABELS[self]


_DETAIL_TYPES: dict[AccountType, bool] = {
    AccountType.HEADER: False,
    AccountType.SUB_HEADER: False,
    AccountType.DETAIL: True,
    AccountType.INCOME_EXPENSE_DETAIL: True,
    AccountType.RETAINED_EARNINGS: True,
    AccountType.CURRENT_YEAR_RETAINED: True,
}

_TYPE_LABELS: dict[AccountType, str] = {
    AccountType.HEADER: "Header",
    AccountType.SUB_HEADER: "Sub-Header",
    AccountType.DETAIL: "Detail",
    AccountType.INCOME_EXPENSE_DETAIL: "Income/Expense",
    AccountType.RETAINED_EARNINGS: "Retained Earnings",
    AccountType.CURRENT_YEAR_RETAINED: "Current Year Retained",
}


class JournalStatus(str, Enum):
    """Lifecycle status of a journal."""

    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    REJECTED = "rejected"
    POSTED = "posted"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS: dict[JournalStatus, str] = {
    JournalStatus.DRAFT: "Draft",
    JournalStatus.REVIEW: "Under Review",
    JournalStatus.APPROVED: "Approved",
    JournalStatus.REJECTED: "Rejected",
    JournalStatus.POSTED: "Posted",
}


class JournalTransition(str, Enum):
    """Kinds of events recorded in the journal event log."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    POSTED = "posted"
    UNPOSTED = "unposted"


class ReviewAction(str, Enum):
    """Decision taken by a reviewer."""

    APPROVE = "approve"
    REJECT = "reject"


class DimensionKind(str, Enum):
    """Dimension tags that journal lines and budgets can carry."""

    FUND = "fund"
    PROGRAM = "program"
    DONOR = "donor"


@dataclass(frozen=True)
class Branch:
    """Branch (organizational unit) entity."""

    id: int
    code: str
    name: str
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Dimension:
    """Fund, program or donor tag."""

    id: int
    kind: DimensionKind
    code: str
    name: str
    description: Optional[str]
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class FiscalYear:
    """Fiscal year entity."""

    id: int
    name: str
    start_date: date
    end_date: date
    is_current: bool
    is_closed: bool
    closed_at: Optional[datetime] = None
    closed_by: Optional[str] = None

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class Account:
    """Chart-of-accounts entry."""

    id: int
    parent_id: Optional[int]
    code: str
    name: str
    account_type: AccountType
    category: AccountCategory
    normal_balance: NormalBalance
    is_active: bool
    is_detail: bool
    level: int
    created_at: datetime
    name_en: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_header(self) -> bool:
        return self.account_type in (AccountType.HEADER, AccountType.SUB_HEADER)

    @property
    def can_post(self) -> bool:
        """Whether journal lines may reference this account."""
        return self.is_detail and self.is_active and not self.is_header


@dataclass(frozen=True)
class AccountDraft:
    """Validated account row ready to be persisted.

    ``parent_code`` is resolved to a parent ID by the database inside the same
    transaction, which lets a bulk import reference parents created earlier
    in the batch.
    """

    code: str
    name: str
    account_type: AccountType
    category: AccountCategory
    normal_balance: NormalBalance
    is_detail: bool
    level: int
    parent_code: Optional[str] = None
    name_en: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class AccountImportRow:
    """One row of a chart-of-accounts import."""

    code: str
    name: str
    account_type: AccountType
    category: Optional[AccountCategory] = None
    parent_code: Optional[str] = None
    normal_balance: Optional[NormalBalance] = None
    name_en: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class AccountTreeNode:
    """Account with its children, used for hierarchical display."""

    id: int
    code: str
    name: str
    account_type: AccountType
    category: AccountCategory
    is_active: bool
    is_detail: bool
    level: int
    parent_id: Optional[int] = None
    children: tuple["AccountTreeNode", ...] = ()


@dataclass(frozen=True)
class JournalLineInput:
    """A journal line as supplied by a caller, before validation."""

    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None
    fund_id: Optional[int] = None
    program_id: Optional[int] = None
    donor_id: Optional[int] = None


@dataclass(frozen=True)
class JournalLine:
    """One persisted leg of a journal."""

    id: int
    journal_id: int
    account_id: int
    account_code: str
    account_name: str
    description: Optional[str]
    debit: Decimal
    credit: Decimal
    fund_id: Optional[int] = None
    program_id: Optional[int] = None
    donor_id: Optional[int] = None


@dataclass(frozen=True)
class Journal:
    """Journal (ledger entry) with its lines."""

    id: int
    branch_id: int
    journal_number: str
    journal_date: date
    description: str
    reference_no: Optional[str]
    status: JournalStatus
    total_debit: Decimal
    total_credit: Decimal
    is_posted: bool
    created_by: str
    created_at: datetime
    updated_at: datetime
    posted_at: Optional[datetime] = None
    posted_by: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    lines: tuple[JournalLine, ...] = ()

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass(frozen=True)
class JournalEvent:
    """Append-only record of a journal state change."""

    id: int
    journal_id: int
    journal_number: str
    transition: JournalTransition
    from_status: Optional[JournalStatus]
    to_status: Optional[JournalStatus]
    actor: str
    occurred_at: datetime
    notes: Optional[str] = None
    snapshot: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Budget:
    """Budget allocation for one account and period."""

    id: int
    fiscal_year_id: int
    account_id: int
    period: str
    amount: Decimal
    is_active: bool
    created_at: datetime
    branch_id: Optional[int] = None
    fund_id: Optional[int] = None
    program_id: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class LedgerScope:
    """Optional branch/fund/program filters applied to ledger queries."""

    branch_id: Optional[int] = None
    fund_id: Optional[int] = None
    program_id: Optional[int] = None


@dataclass(frozen=True)
class LedgerEntry:
    """A posted journal line joined with its journal header."""

    line_id: int
    journal_id: int
    journal_number: str
    journal_date: date
    journal_created_at: datetime
    description: Optional[str]
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class PageRequest:
    """Pagination and sort descriptor for list operations."""

    page: int = 1
    page_size: Optional[int] = None
    sort: Optional[str] = None


T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results with the total row count."""

    items: tuple[T, ...]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size


# Report shapes


@dataclass(frozen=True)
class TrialBalanceLine:
    account_id: int
    account_code: str
    account_name: str
    category: AccountCategory
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    as_of_date: date
    lines: tuple[TrialBalanceLine, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass(frozen=True)
class StatementLine:
    account_code: str
    account_name: str
    amount: Decimal
    level: int = 0
    account_id: Optional[int] = None


@dataclass(frozen=True)
class StatementSection:
    category: AccountCategory
    lines: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSheetReport:
    as_of_date: date
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    net_income: Decimal

    @property
    def total_assets(self) -> Decimal:
        return self.assets.total

    @property
    def total_liabilities(self) -> Decimal:
        return self.liabilities.total

    @property
    def total_equity(self) -> Decimal:
        return self.equity.total

    @property
    def is_balanced(self) -> bool:
        return self.total_assets == self.total_liabilities + self.total_equity


@dataclass(frozen=True)
class IncomeStatementReport:
    start_date: date
    end_date: date
    revenue: StatementSection
    expenses: StatementSection

    @property
    def total_revenue(self) -> Decimal:
        return self.revenue.total

    @property
    def total_expenses(self) -> Decimal:
        return self.expenses.total

    @property
    def net_income(self) -> Decimal:
        return self.total_revenue - self.total_expenses


@dataclass(frozen=True)
class GeneralLedgerEntry:
    journal_id: int
    journal_number: str
    journal_date: date
    description: Optional[str]
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class GeneralLedgerReport:
    account: Account
    start_date: date
    end_date: date
    opening_balance: Decimal
    entries: tuple[GeneralLedgerEntry, ...]
    total_debit: Decimal
    total_credit: Decimal
    closing_balance: Decimal


@dataclass(frozen=True)
class BudgetVarianceLine:
    budget_id: int
    account_id: int
    account_code: str
    account_name: str
    period: str
    budget: Decimal
    actual: Decimal
    variance: Decimal
    variance_pct: Decimal


@dataclass(frozen=True)
class BudgetVarianceReport:
    fiscal_year: FiscalYear
    period: Optional[str]
    lines: tuple[BudgetVarianceLine, ...]
    total_budget: Decimal
    total_actual: Decimal
    total_variance: Decimal
    total_variance_pct: Decimal
