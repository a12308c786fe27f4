"""Budget commands."""

import click
from fundledger.cli.error_handling import handle_domain_error
from fundledger.cli.resolution import (
    resolve_account_or_exit,
    resolve_branch_or_exit,
    resolve_dimension_or_exit,
    resolve_fiscal_year_or_exit,
)
from fundledger.domain.account import AccountService
from fundledger.domain.budget import BudgetService
from fundledger.domain.entities import DimensionKind, PageRequest
from fundledger.domain.errors import DomainError
from fundledger.domain.reference import ReferenceDataService
from fundledger.utils.amount_parser import parse_amount


def _resolve_scope(ctx, branch: str | None, fund: str | None, program: str | None):
    reference = ReferenceDataService(ctx.obj["db"], ctx.obj["config"])
    branch_id = resolve_branch_or_exit(ctx, reference, branch) if branch else None
    fund_id = resolve_dimension_or_exit(ctx, reference, DimensionKind.FUND, fund) if fund else None
    program_id = resolve_dimension_or_exit(ctx, reference, DimensionKind.PROGRAM, program) if program else None
    return branch_id, fund_id, program_id


def _parse_amount_or_exit(ctx, amount: str):
    try:
        return parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount: {e}", err=True)
        ctx.exit(1)


@click.group()
def budget_group():
    """Manage budgets and compare them with actual spending."""
    pass


@budget_group.command("create")
@click.option("--fiscal-year", required=True, help="Fiscal year name or ID")
@click.option("--account", required=True, help="Expense account code, name or ID")
@click.option("--period", required=True, help="Budget month (YYYY-MM)")
@click.option("--amount", required=True, help="Budget amount")
@click.option("--branch", help="Branch code or ID")
@click.option("--fund", help="Fund code or ID")
@click.option("--program", help="Program code or ID")
@click.option("--description", help="Description")
@click.pass_context
def create_budget(
    ctx,
    fiscal_year: str,
    account: str,
    period: str,
    amount: str,
    branch: str | None,
    fund: str | None,
    program: str | None,
    description: str | None,
):
    """Create a budget allocation.

    Examples:
        fundledger budget create --fiscal-year FY2025 --account 5100 --period 2025-01 --amount 10000000
    """
    service = BudgetService(ctx.obj["db"], ctx.obj["config"])
    fiscal_year_id = resolve_fiscal_year_or_exit(ctx, ReferenceDataService(ctx.obj["db"], ctx.obj["config"]), fiscal_year)
    account_id = resolve_account_or_exit(ctx, AccountService(ctx.obj["db"], ctx.obj["config"]), account)
    branch_id, fund_id, program_id = _resolve_scope(ctx, branch, fund, program)
    value = _parse_amount_or_exit(ctx, amount)

    try:
        budget_id = service.create_budget(
            fiscal_year_id=fiscal_year_id,
            account_id=account_id,
            period=period,
            amount=value,
            branch_id=branch_id,
            fund_id=fund_id,
            program_id=program_id,
            description=description,
        )
        click.echo(f"Created budget (ID: {budget_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@budget_group.command("list")
@click.option("--fiscal-year", help="Fiscal year name or ID")
@click.option("--period", help="Budget month (YYYY-MM)")
@click.option("--branch", help="Branch code or ID")
@click.option("--account", help="Account code, name or ID")
@click.option("--page", type=int, default=1, show_default=True, help="Page number")
@click.option("--page-size", type=int, help="Rows per page")
@click.option("--sort", help="Sort field (period, amount, account_id, created_at); '-' for descending")
@click.pass_context
def list_budgets(
    ctx,
    fiscal_year: str | None,
    period: str | None,
    branch: str | None,
    account: str | None,
    page: int,
    page_size: int | None,
    sort: str | None,
):
    """List budgets."""
    service = BudgetService(ctx.obj["db"], ctx.obj["config"])
    account_service = AccountService(ctx.obj["db"], ctx.obj["config"])
    reference = ReferenceDataService(ctx.obj["db"], ctx.obj["config"])
    fiscal_year_id = resolve_fiscal_year_or_exit(ctx, reference, fiscal_year) if fiscal_year else None
    branch_id = resolve_branch_or_exit(ctx, reference, branch) if branch else None
    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None

    try:
        result = service.list_budgets(
            page=PageRequest(page=page, page_size=page_size, sort=sort),
            fiscal_year_id=fiscal_year_id,
            period=period,
            branch_id=branch_id,
            account_id=account_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not result.items:
        click.echo("No budgets found.")
        return

    codes = {acc.id: acc.code for acc in account_service.list_accounts()}
    click.echo("\nBudgets:")
    click.echo("-" * 70)
    for budget in result.items:
        status = "" if budget.is_active else " (inactive)"
        click.echo(
            f"ID: {budget.id:4d} | {budget.period} | {codes.get(budget.account_id, '?'):10s} | "
            f"{budget.amount:>16,.2f}{status}"
        )
    click.echo(f"\nPage {result.page} of {result.total_pages} ({result.total} budgets)")


@budget_group.command("update")
@click.argument("budget_id", type=int)
@click.option("--amount", help="New amount")
@click.option("--description", help="New description")
@click.option("--active/--inactive", "is_active", default=None, help="Activate or deactivate the budget")
@click.pass_context
def update_budget(ctx, budget_id: int, amount: str | None, description: str | None, is_active: bool | None):
    """Update a budget's amount, description or active flag."""
    service = BudgetService(ctx.obj["db"], ctx.obj["config"])
    value = _parse_amount_or_exit(ctx, amount) if amount is not None else None
    try:
        service.update_budget(budget_id, amount=value, description=description, is_active=is_active)
        click.echo(f"Updated budget {budget_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@budget_group.command("delete")
@click.argument("budget_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_budget(ctx, budget_id: int, yes: bool):
    """Delete a budget."""
    service = BudgetService(ctx.obj["db"], ctx.obj["config"])
    if not yes and not click.confirm(f"Are you sure you want to delete budget {budget_id}?"):
        click.echo("Deletion cancelled.")
        return
    try:
        service.delete_budget(budget_id)
        click.echo(f"Deleted budget {budget_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@budget_group.command("variance")
@click.option("--fiscal-year", required=True, help="Fiscal year name or ID")
@click.option("--period", help="Only budgets for this month (YYYY-MM)")
@click.option("--branch", help="Branch code or ID")
@click.option("--account", help="Account code, name or ID")
@click.option("--month-only", is_flag=True, help="Compare with the budget month only instead of year to date")
@click.pass_context
def budget_variance(
    ctx, fiscal_year: str, period: str | None, branch: str | None, account: str | None, month_only: bool
):
    """Compare budgets with posted spending."""
    service = BudgetService(ctx.obj["db"], ctx.obj["config"])
    reference = ReferenceDataService(ctx.obj["db"], ctx.obj["config"])
    fiscal_year_id = resolve_fiscal_year_or_exit(ctx, reference, fiscal_year)
    branch_id = resolve_branch_or_exit(ctx, reference, branch) if branch else None
    account_id = (
        resolve_account_or_exit(ctx, AccountService(ctx.obj["db"], ctx.obj["config"]), account) if account else None
    )

    try:
        report = service.budget_vs_actual(
            fiscal_year_id,
            period=period,
            branch_id=branch_id,
            account_id=account_id,
            cumulative=not month_only,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nBudget vs Actual - {report.fiscal_year.name}" + (f" ({report.period})" if report.period else ""))
    click.echo("=" * 100)
    if not report.lines:
        click.echo("No budgets found.")
        return
    click.echo(f"{'Account':32s} {'Period':8s} {'Budget':>14s} {'Actual':>14s} {'Variance':>14s} {'%':>8s}")
    click.echo("-" * 100)
    for line in report.lines:
        label = f"{line.account_code} {line.account_name}"
        click.echo(
            f"{label[:32]:32s} {line.period:8s} {line.budget:>14,.2f} {line.actual:>14,.2f} "
            f"{line.variance:>14,.2f} {line.variance_pct:>7.2f}%"
        )
    click.echo("-" * 100)
    click.echo(
        f"{'Total':32s} {'':8s} {report.total_budget:>14,.2f} {report.total_actual:>14,.2f} "
        f"{report.total_variance:>14,.2f} {report.total_variance_pct:>7.2f}%"
    )


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
