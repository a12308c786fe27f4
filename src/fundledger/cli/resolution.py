"""CLI helpers that turn codes, names or IDs into record IDs.

Each helper prints ``Error: ...`` and exits with status 1 when nothing
matches, so commands can use the returned ID directly.
"""

from __future__ import annotations

import click
from fundledger.domain.account import AccountService
from fundledger.domain.entities import DimensionKind
from fundledger.domain.errors import NotFoundError
from fundledger.domain.reference import ReferenceDataService
from fundledger.utils.account_resolver import resolve_account


def _fail(ctx: click.Context, message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    ctx.exit(1)


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve an account code, ID or name."""
    try:
        return resolve_account(account_service, account)
    except NotFoundError as exc:
        _fail(ctx, str(exc))


def resolve_branch_or_exit(ctx: click.Context, service: ReferenceDataService, branch: str) -> int:
    """Resolve a branch code or ID."""
    found = service.get_branch_by_code(branch)
    if found is None and branch.strip().isdigit():
        found = service.get_branch(int(branch))
    if found is None:
        _fail(ctx, f"Branch '{branch}' not found")
    return found.id


def resolve_dimension_or_exit(
    ctx: click.Context, service: ReferenceDataService, kind: DimensionKind, value: str
) -> int:
    """Resolve a fund, program or donor code or ID."""
    found = service.get_dimension_by_code(kind, value)
    if found is None and value.strip().isdigit():
        found = service.get_dimension(kind, int(value))
    if found is None:
        _fail(ctx, f"{kind.value.capitalize()} '{value}' not found")
    return found.id


def resolve_fiscal_year_or_exit(ctx: click.Context, service: ReferenceDataService, fiscal_year: str) -> int:
    """Resolve a fiscal year name or ID."""
    for year in service.list_fiscal_years():
        if year.name == fiscal_year or str(year.id) == fiscal_year:
            return year.id
    _fail(ctx, f"Fiscal year '{fiscal_year}' not found")
