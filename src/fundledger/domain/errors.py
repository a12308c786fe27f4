"""Shared domain error messages and error types."""

from datetime import date
from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. ``code`` is a stable,
    machine-readable identifier for API and CLI consumers.
    """

    code = "DOMAIN_ERROR"


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    code = "VALIDATION_ERROR"


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""

    code = "NOT_FOUND"


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""

    code = "CONFLICT"


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""

    code = "DEPENDENCY"


class ForbiddenError(DomainError):
    """The acting user may not perform this operation on this record."""

    code = "FORBIDDEN"


class InvalidTransitionError(DomainError):
    """Operation not permitted from the record's current status."""

    code = "INVALID_TRANSITION"


class UnbalancedJournalError(ValidationError):
    """Total debit and total credit of a journal differ."""

    code = "UNBALANCED"

    def __init__(self, total_debit: Decimal, total_credit: Decimal):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Journal is not balanced: debit {total_debit} != credit {total_credit}"
        )


class InvalidLineError(ValidationError):
    """A journal line is malformed, or too few lines were supplied."""

    code = "INVALID_LINE"


class AccountNotPostableError(ValidationError):
    """A journal line references a header or inactive account."""

    code = "ACCOUNT_NOT_POSTABLE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account {account_code} cannot have transactions")


class SelfReviewError(ForbiddenError):
    """The creator of a journal attempted to review it."""

    code = "SELF_REVIEW"


class JournalNotPostableError(InvalidTransitionError):
    """An approved journal failed the posting checks."""

    code = "NOT_POSTABLE"


class AccountHasChildrenError(DependencyError):
    code = "HAS_CHILDREN"


class AccountHasTransactionsError(DependencyError):
    code = "HAS_TRANSACTIONS"


class AccountHasBudgetsError(DependencyError):
    code = "HAS_BUDGETS"


class BudgetAlreadyExistsError(ConflictError):
    code = "BUDGET_ALREADY_EXISTS"


class InvalidAccountCategoryError(ValidationError):
    code = "INVALID_ACCOUNT_CATEGORY"


class FiscalYearClosedError(ConflictError):
    code = "FISCAL_YEAR_CLOSED"


class DuplicateSequenceError(ConflictError):
    """Two writers allocated the same journal number; retry the operation."""

    code = "DUPLICATE_SEQUENCE"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_code_not_found(code: str) -> str:
    """Return message for missing account by code."""
    return f"Account with code '{code}' not found"


def duplicate_account_code(code: str) -> str:
    """Return message for duplicate account code."""
    return f"Account code '{code}' already exists"


def journal_not_found(journal_id: int) -> str:
    """Return message for missing journal."""
    return f"Journal {journal_id} not found"


def branch_not_found(branch_id: int) -> str:
    return f"Branch {branch_id} not found"


def dimension_not_found(kind: str, dimension_id: int) -> str:
    return f"{kind.capitalize()} {dimension_id} not found"


def fiscal_year_not_found(fiscal_year_id: int) -> str:
    return f"Fiscal year {fiscal_year_id} not found"


def budget_not_found(budget_id: int) -> str:
    return f"Budget {budget_id} not found"


def fiscal_year_closed(name: str) -> str:
    """Return message when a closed fiscal year blocks a change."""
    return f"Fiscal year '{name}' is closed"


def journal_in_closed_year(journal_number: str, journal_date: date, name: str) -> str:
    return (
        f"Journal {journal_number} is dated {journal_date.isoformat()}, "
        f"inside closed fiscal year '{name}'"
    )


def invalid_transition(journal_number: str, status: str, operation: str) -> str:
    """Return message for an operation attempted from the wrong status."""
    return f"Cannot {operation} journal {journal_number}: status is '{status}'"


def account_delete_blocked(account_code: str, child_count: int, line_count: int, budget_count: int = 0) -> str:
    """Return message when account has child accounts, journal lines or budgets."""
    parts = []
    if child_count > 0:
        parts.append(f"{child_count} child account{'s' if child_count != 1 else ''}")
    if line_count > 0:
        parts.append(f"{line_count} journal line{'s' if line_count != 1 else ''}")
    if budget_count > 0:
        parts.append(f"{budget_count} budget{'s' if budget_count != 1 else ''}")
    return f"Cannot delete account {account_code}: it has {', '.join(parts)}."
