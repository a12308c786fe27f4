"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so that services and reports only
ever see frozen domain entities. Each mapper assembles exactly the graph its
entity exposes (a journal carries its lines, a line carries its account's
code and name) and nothing more.
"""

from decimal import Decimal
from typing import Any, Optional

from fundledger.domain import entities as domain
from fundledger.domain.entities import ZERO
from fundledger.database.models import (
    Account as ORMAccount,
    Branch as ORMBranch,
    Budget as ORMBudget,
    FiscalYear as ORMFiscalYear,
    Journal as ORMJournal,
    JournalEvent as ORMJournalEvent,
    JournalLine as ORMJournalLine,
)

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Normalize a numeric column or aggregate to a two-place Decimal.

    SQLite returns SUM() results as float or int, so aggregates are routed
    through ``str`` before quantizing.
    """
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


def branch_to_domain(orm_branch: ORMBranch) -> domain.Branch:
    """Convert SQLAlchemy Branch model to domain Branch entity."""
    return domain.Branch(
        id=orm_branch.id,
        code=orm_branch.code,
        name=orm_branch.name,
        is_active=orm_branch.is_active,
        created_at=orm_branch.created_at,
    )


def dimension_to_domain(kind: domain.DimensionKind, orm_dimension: Any) -> domain.Dimension:
    """Convert a Fund, Program or Donor row to a domain Dimension."""
    return domain.Dimension(
        id=orm_dimension.id,
        kind=kind,
        code=orm_dimension.code,
        name=orm_dimension.name,
        description=orm_dimension.description,
        is_active=orm_dimension.is_active,
        created_at=orm_dimension.created_at,
    )


def fiscal_year_to_domain(orm_year: ORMFiscalYear) -> domain.FiscalYear:
    """Convert SQLAlchemy FiscalYear model to domain FiscalYear entity."""
    return domain.FiscalYear(
        id=orm_year.id,
        name=orm_year.name,
        start_date=orm_year.start_date,
        end_date=orm_year.end_date,
        is_current=orm_year.is_current,
        is_closed=orm_year.is_closed,
        closed_at=orm_year.closed_at,
        closed_by=orm_year.closed_by,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        parent_id=orm_account.parent_id,
        code=orm_account.code,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        category=domain.AccountCategory(orm_account.category),
        normal_balance=domain.NormalBalance(orm_account.normal_balance),
        is_active=orm_account.is_active,
        is_detail=orm_account.is_detail,
        level=orm_account.level,
        created_at=orm_account.created_at,
        name_en=orm_account.name_en,
        description=orm_account.description,
    )


def journal_line_to_domain(orm_line: ORMJournalLine) -> domain.JournalLine:
    """Convert SQLAlchemy JournalLine model to domain JournalLine entity."""
    return domain.JournalLine(
        id=orm_line.id,
        journal_id=orm_line.journal_id,
        account_id=orm_line.account_id,
        account_code=orm_line.account.code,
        account_name=orm_line.account.name,
        description=orm_line.description,
        debit=to_decimal(orm_line.debit),
        credit=to_decimal(orm_line.credit),
        fund_id=orm_line.fund_id,
        program_id=orm_line.program_id,
        donor_id=orm_line.donor_id,
    )


def journal_to_domain(orm_journal: ORMJournal, include_lines: bool = True) -> domain.Journal:
    """Convert SQLAlchemy Journal model to domain Journal entity."""
    lines: tuple[domain.JournalLine, ...] = ()
    if include_lines:
        lines = tuple(journal_line_to_domain(line) for line in orm_journal.lines)
    return domain.Journal(
        id=orm_journal.id,
        branch_id=orm_journal.branch_id,
        journal_number=orm_journal.journal_number,
        journal_date=orm_journal.journal_date,
        description=orm_journal.description,
        reference_no=orm_journal.reference_no,
        status=domain.JournalStatus(orm_journal.status),
        total_debit=to_decimal(orm_journal.total_debit),
        total_credit=to_decimal(orm_journal.total_credit),
        is_posted=orm_journal.is_posted,
        created_by=orm_journal.created_by,
        created_at=orm_journal.created_at,
        updated_at=orm_journal.updated_at,
        posted_at=orm_journal.posted_at,
        posted_by=orm_journal.posted_by,
        reviewed_by=orm_journal.reviewed_by,
        reviewed_at=orm_journal.reviewed_at,
        approved_by=orm_journal.approved_by,
        approved_at=orm_journal.approved_at,
        rejected_by=orm_journal.rejected_by,
        rejected_at=orm_journal.rejected_at,
        reject_reason=orm_journal.reject_reason,
        lines=lines,
    )


def _optional_status(value: Optional[str]) -> Optional[domain.JournalStatus]:
    return domain.JournalStatus(value) if value is not None else None


def journal_event_to_domain(orm_event: ORMJournalEvent) -> domain.JournalEvent:
    """Convert SQLAlchemy JournalEvent model to domain JournalEvent entity."""
    return domain.JournalEvent(
        id=orm_event.id,
        journal_id=orm_event.journal_id,
        journal_number=orm_event.journal_number,
        transition=domain.JournalTransition(orm_event.transition),
        from_status=_optional_status(orm_event.from_status),
        to_status=_optional_status(orm_event.to_status),
        actor=orm_event.actor,
        occurred_at=orm_event.occurred_at,
        notes=orm_event.notes,
        snapshot=dict(orm_event.snapshot or {}),
    )


def journal_snapshot(orm_journal: ORMJournal) -> dict[str, Any]:
    """Build the JSON payload stored with each journal event."""
    return {
        "journal_number": orm_journal.journal_number,
        "journal_date": orm_journal.journal_date.isoformat(),
        "description": orm_journal.description,
        "reference_no": orm_journal.reference_no,
        "status": orm_journal.status,
        "total_debit": str(to_decimal(orm_journal.total_debit)),
        "total_credit": str(to_decimal(orm_journal.total_credit)),
        "lines": [
            {
                "account_id": line.account_id,
                "debit": str(to_decimal(line.debit)),
                "credit": str(to_decimal(line.credit)),
                "description": line.description,
                "fund_id": line.fund_id,
                "program_id": line.program_id,
                "donor_id": line.donor_id,
            }
            for line in orm_journal.lines
        ],
    }


def budget_to_domain(orm_budget: ORMBudget) -> domain.Budget:
    """Convert SQLAlchemy Budget model to domain Budget entity."""
    return domain.Budget(
        id=orm_budget.id,
        fiscal_year_id=orm_budget.fiscal_year_id,
        account_id=orm_budget.account_id,
        period=orm_budget.period,
        amount=to_decimal(orm_budget.amount),
        is_active=orm_budget.is_active,
        created_at=orm_budget.created_at,
        branch_id=orm_budget.branch_id,
        fund_id=orm_budget.fund_id,
        program_id=orm_budget.program_id,
        description=orm_budget.description,
    )
