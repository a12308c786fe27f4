"""Branches, dimension tags and fiscal years.

These records are owned by other parts of the organization; the ledger only
needs to create, look up and list them.
"""

from datetime import date
from typing import Optional, Union

from fundledger.config import LedgerConfig
from fundledger.database.base import Database
from fundledger.domain.entities import Branch, Dimension, DimensionKind, FiscalYear
from fundledger.domain.errors import (
    ConflictError,
    FiscalYearClosedError,
    NotFoundError,
    ValidationError,
    branch_not_found,
    dimension_not_found,
    fiscal_year_closed,
    fiscal_year_not_found,
)
from fundledger.domain.validation import coerce_enum, optional_text, require_text
from fundledger.logging_config import get_logger

logger = get_logger("reference")


class ReferenceDataService:
    """Service for branches, funds, programs, donors and fiscal years."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        self.db = db
        self.config = config or LedgerConfig()

    # Branches
    def create_branch(self, code: str, name: str) -> int:
        """Create a branch.

        Raises:
            ValidationError: If code or name is empty, or the code contains '/'
            ConflictError: If the code already exists
        """
        code = require_text(code, "Branch code").upper()
        if "/" in code:
            raise ValidationError(f"Branch code '{code}' must not contain '/'")
        if self.db.get_branch_by_code(code) is not None:
            raise ConflictError(f"Branch code '{code}' already exists")
        branch_id = self.db.create_branch(code=code, name=require_text(name, "Branch name"))
        logger.info("Created branch %s", code, extra={"branch_id": branch_id})
        return branch_id

    def get_branch(self, branch_id: int) -> Optional[Branch]:
        return self.db.get_branch(branch_id)

    def get_branch_by_code(self, code: str) -> Optional[Branch]:
        return self.db.get_branch_by_code(code.strip().upper())

    def require_branch(self, branch_id: int) -> Branch:
        """Get branch by ID, raising NotFoundError when missing."""
        branch = self.db.get_branch(branch_id)
        if branch is None:
            raise NotFoundError(branch_not_found(branch_id))
        return branch

    def list_branches(self, active_only: bool = False) -> list[Branch]:
        return self.db.list_branches(active_only=active_only)

    # Funds, programs, donors
    def create_dimension(
        self,
        kind: Union[DimensionKind, str],
        code: str,
        name: str,
        description: Optional[str] = None,
    ) -> int:
        """Create a fund, program or donor.

        Raises:
            ValidationError: If the kind is unknown or code/name is empty
            ConflictError: If the code already exists for that kind
        """
        kind = coerce_enum(DimensionKind, kind, "dimension kind")
        code = require_text(code, f"{kind.value.capitalize()} code").upper()
        if self.db.get_dimension_by_code(kind, code) is not None:
            raise ConflictError(f"{kind.value.capitalize()} code '{code}' already exists")
        dimension_id = self.db.create_dimension(
            kind,
            code=code,
            name=require_text(name, f"{kind.value.capitalize()} name"),
            description=optional_text(description),
        )
        logger.info("Created %s %s", kind.value, code, extra={"dimension_id": dimension_id})
        return dimension_id

    def get_dimension(self, kind: Union[DimensionKind, str], dimension_id: int) -> Optional[Dimension]:
        kind = coerce_enum(DimensionKind, kind, "dimension kind")
        return self.db.get_dimension(kind, dimension_id)

    def get_dimension_by_code(self, kind: Union[DimensionKind, str], code: str) -> Optional[Dimension]:
        kind = coerce_enum(DimensionKind, kind, "dimension kind")
        return self.db.get_dimension_by_code(kind, code.strip().upper())

    def require_dimension(self, kind: Union[DimensionKind, str], dimension_id: int) -> Dimension:
        """Get a dimension by ID, raising NotFoundError when missing."""
        kind = coerce_enum(DimensionKind, kind, "dimension kind")
        dimension = self.db.get_dimension(kind, dimension_id)
        if dimension is None:
            raise NotFoundError(dimension_not_found(kind.value, dimension_id))
        return dimension

    def list_dimensions(self, kind: Union[DimensionKind, str], active_only: bool = False) -> list[Dimension]:
        kind = coerce_enum(DimensionKind, kind, "dimension kind")
        return self.db.list_dimensions(kind, active_only=active_only)

    def update_dimension(
        self,
        kind: Union[DimensionKind, str],
        dimension_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Dimension:
        """Rename, describe, or (de)activate a dimension."""
        kind = coerce_enum(DimensionKind, kind, "dimension kind")
        if name is not None:
            name = require_text(name, f"{kind.value.capitalize()} name")
        self.db.update_dimension(kind, dimension_id, name=name, description=description, is_active=is_active)
        logger.info("Updated %s %s", kind.value, dimension_id)
        return self.require_dimension(kind, dimension_id)

    # Fiscal years
    def create_fiscal_year(
        self, name: str, start_date: date, end_date: date, make_current: bool = False
    ) -> int:
        """Create a fiscal year.

        Args:
            name: Unique name, e.g. "FY2025"
            start_date: First day of the year
            end_date: Last day of the year
            make_current: Also flag the new year as current

        Raises:
            ValidationError: If the name is empty or start is after end
            ConflictError: If the name is taken or the range overlaps another year
        """
        name = require_text(name, "Fiscal year name")
        if start_date > end_date:
            raise ValidationError(
                f"Fiscal year start {start_date.isoformat()} is after end {end_date.isoformat()}"
            )
        for year in self.db.list_fiscal_years():
            if year.name == name:
                raise ConflictError(f"Fiscal year '{name}' already exists")
            if year.start_date <= end_date and start_date <= year.end_date:
                raise ConflictError(f"Fiscal year '{name}' overlaps fiscal year '{year.name}'")

        fiscal_year_id = self.db.create_fiscal_year(name=name, start_date=start_date, end_date=end_date)
        if make_current:
            self.db.set_current_fiscal_year(fiscal_year_id)
        logger.info("Created fiscal year %s", name, extra={"fiscal_year_id": fiscal_year_id})
        return fiscal_year_id

    def get_fiscal_year(self, fiscal_year_id: int) -> Optional[FiscalYear]:
        return self.db.get_fiscal_year(fiscal_year_id)

    def require_fiscal_year(self, fiscal_year_id: int) -> FiscalYear:
        """Get fiscal year by ID, raising NotFoundError when missing."""
        year = self.db.get_fiscal_year(fiscal_year_id)
        if year is None:
            raise NotFoundError(fiscal_year_not_found(fiscal_year_id))
        return year

    def list_fiscal_years(self) -> list[FiscalYear]:
        """List fiscal years, newest first."""
        return self.db.list_fiscal_years()

    def get_current_fiscal_year(self) -> Optional[FiscalYear]:
        return self.db.get_current_fiscal_year()

    def set_current_fiscal_year(self, fiscal_year_id: int) -> FiscalYear:
        """Make one fiscal year current; all others lose the flag."""
        self.db.set_current_fiscal_year(fiscal_year_id)
        logger.info("Fiscal year %s is now current", fiscal_year_id)
        return self.require_fiscal_year(fiscal_year_id)

    def close_fiscal_year(self, fiscal_year_id: int, actor: str) -> FiscalYear:
        """Close a fiscal year.

        Budgets under a closed year become immutable, and journals dated
        inside it can no longer be posted or unposted.

        Raises:
            NotFoundError: If the fiscal year does not exist
            FiscalYearClosedError: If it is already closed
        """
        year = self.require_fiscal_year(fiscal_year_id)
        if year.is_closed:
            raise FiscalYearClosedError(fiscal_year_closed(year.name))
        self.db.close_fiscal_year(fiscal_year_id, actor=require_text(actor, "Actor"))
        logger.info("Closed fiscal year %s", year.name, extra={"actor": actor})
        return self.require_fiscal_year(fiscal_year_id)

    def find_fiscal_year_for_date(self, day: date) -> Optional[FiscalYear]:
        return self.db.find_fiscal_year_for_date(day)
