"""Financial statement commands."""

from datetime import date

import click
from fundledger.cli.date_filters import parse_date_or_exit, resolve_cli_date_range
from fundledger.cli.error_handling import handle_domain_error
from fundledger.cli.resolution import resolve_account_or_exit, resolve_branch_or_exit, resolve_dimension_or_exit
from fundledger.domain.account import AccountService
from fundledger.domain.entities import DimensionKind, StatementSection
from fundledger.domain.errors import DomainError
from fundledger.domain.reference import ReferenceDataService
from fundledger.domain.reports import ReportService


def scope_options(func):
    """Add --branch, --fund and --program filter options to a command."""
    func = click.option("--program", help="Only lines tagged with this program code")(func)
    func = click.option("--fund", help="Only lines tagged with this fund code")(func)
    func = click.option("--branch", help="Only journals of this branch code")(func)
    return func


def _resolve_scope(ctx, branch: str | None, fund: str | None, program: str | None) -> dict:
    reference = ReferenceDataService(ctx.obj["db"], ctx.obj["config"])
    return {
        "branch_id": resolve_branch_or_exit(ctx, reference, branch) if branch else None,
        "fund_id": resolve_dimension_or_exit(ctx, reference, DimensionKind.FUND, fund) if fund else None,
        "program_id": (
            resolve_dimension_or_exit(ctx, reference, DimensionKind.PROGRAM, program) if program else None
        ),
    }


def _as_of(ctx, as_of: str | None) -> date:
    return parse_date_or_exit(ctx, as_of, "as-of date") if as_of else date.today()


def _echo_section(title: str, section: StatementSection) -> None:
    click.echo(f"\n{title}")
    click.echo("-" * 70)
    for line in section.lines:
        indent = "  " * line.level
        label = f"{indent}{line.account_code} {line.account_name}"
        click.echo(f"{label[:50]:50s} {line.amount:>18,.2f}")
    click.echo(f"{'Total ' + title:50s} {section.total:>18,.2f}")


@click.group()
def report_group():
    """Financial statements from posted journals."""
    pass


@report_group.command("trial-balance")
@click.option("--as-of", help="Report date (defaults to today)")
@scope_options
@click.pass_context
def trial_balance(ctx, as_of: str | None, branch: str | None, fund: str | None, program: str | None):
    """Show the trial balance."""
    service = ReportService(ctx.obj["db"], ctx.obj["config"])
    as_of_date = _as_of(ctx, as_of)
    try:
        report = service.trial_balance(as_of_date, **_resolve_scope(ctx, branch, fund, program))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nTrial Balance as of {report.as_of_date}")
    click.echo("=" * 90)
    if not report.lines:
        click.echo("No posted balances.")
        return
    click.echo(f"{'Account':50s} {'Debit':>18s} {'Credit':>18s}")
    click.echo("-" * 90)
    for line in report.lines:
        label = f"{line.account_code} {line.account_name}"
        debit = f"{line.debit:,.2f}" if line.debit else ""
        credit = f"{line.credit:,.2f}" if line.credit else ""
        click.echo(f"{label[:50]:50s} {debit:>18s} {credit:>18s}")
    click.echo("-" * 90)
    click.echo(f"{'Total':50s} {report.total_debit:>18,.2f} {report.total_credit:>18,.2f}")
    if report.is_balanced:
        click.echo("Balanced")
    else:
        click.echo(f"OUT OF BALANCE by {report.difference:,.2f}")


@report_group.command("balance-sheet")
@click.option("--as-of", help="Report date (defaults to today)")
@scope_options
@click.pass_context
def balance_sheet(ctx, as_of: str | None, branch: str | None, fund: str | None, program: str | None):
    """Show the balance sheet."""
    service = ReportService(ctx.obj["db"], ctx.obj["config"])
    as_of_date = _as_of(ctx, as_of)
    try:
        report = service.balance_sheet(as_of_date, **_resolve_scope(ctx, branch, fund, program))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nBalance Sheet as of {report.as_of_date}")
    click.echo("=" * 70)
    _echo_section("Assets", report.assets)
    _echo_section("Liabilities", report.liabilities)
    _echo_section("Equity", report.equity)
    click.echo("=" * 70)
    click.echo(f"{'Total Liabilities and Equity':50s} {report.total_liabilities + report.total_equity:>18,.2f}")
    click.echo("Balanced" if report.is_balanced else "OUT OF BALANCE")


@report_group.command("income-statement")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative)")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative)")
@click.option("--period", help="Named range: this-month, last-quarter, this-year, ... or YYYY-MM")
@scope_options
@click.pass_context
def income_statement(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    branch: str | None,
    fund: str | None,
    program: str | None,
):
    """Show revenue, expenses and net income for a date range.

    Defaults to the current year to date.
    """
    service = ReportService(ctx.obj["db"], ctx.obj["config"])
    today = date.today()
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period=period,
        default_range=(date(today.year, 1, 1), today),
    )
    start = start or date(today.year, 1, 1)
    end = end or today
    try:
        report = service.income_statement(start, end, **_resolve_scope(ctx, branch, fund, program))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nIncome Statement {report.start_date} to {report.end_date}")
    click.echo("=" * 70)
    _echo_section("Revenue", report.revenue)
    _echo_section("Expenses", report.expenses)
    click.echo("=" * 70)
    click.echo(f"{'Net Income':50s} {report.net_income:>18,.2f}")


@report_group.command("general-ledger")
@click.argument("account")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative)")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative)")
@click.option("--period", help="Named range: this-month, last-quarter, this-year, ... or YYYY-MM")
@scope_options
@click.pass_context
def general_ledger(
    ctx,
    account: str,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    branch: str | None,
    fund: str | None,
    program: str | None,
):
    """Show the postings of ACCOUNT with a running balance.

    ACCOUNT can be an account code, name or ID. Defaults to the current
    month to date.
    """
    service = ReportService(ctx.obj["db"], ctx.obj["config"])
    account_id = resolve_account_or_exit(ctx, AccountService(ctx.obj["db"], ctx.obj["config"]), account)
    today = date.today()
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period=period,
        default_range=(today.replace(day=1), today),
    )
    start = start or today.replace(day=1)
    end = end or today
    try:
        report = service.general_ledger(account_id, start, end, **_resolve_scope(ctx, branch, fund, program))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nGeneral Ledger - {report.account.code} {report.account.name}")
    click.echo(f"{report.start_date} to {report.end_date}")
    click.echo("=" * 110)
    click.echo(f"{'Opening balance':104s} {report.opening_balance:>18,.2f}")
    for entry in report.entries:
        debit = f"{entry.debit:,.2f}" if entry.debit else ""
        credit = f"{entry.credit:,.2f}" if entry.credit else ""
        description = (entry.description or "")[:24]
        click.echo(
            f"{entry.journal_date} {entry.journal_number:22s} {description:24s} "
            f"{debit:>16s} {credit:>16s} {entry.balance:>18,.2f}"
        )
    click.echo("-" * 110)
    click.echo(f"{'Total debit':30s} {report.total_debit:>18,.2f}")
    click.echo(f"{'Total credit':30s} {report.total_credit:>18,.2f}")
    click.echo(f"{'Closing balance':104s} {report.closing_balance:>18,.2f}")


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
