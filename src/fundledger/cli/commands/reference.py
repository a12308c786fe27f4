"""Branch, fund, program, donor and fiscal year commands."""

import click
from fundledger.cli.date_filters import parse_date_or_exit
from fundledger.cli.error_handling import handle_domain_error
from fundledger.cli.resolution import resolve_fiscal_year_or_exit
from fundledger.domain.entities import DimensionKind
from fundledger.domain.errors import DomainError
from fundledger.domain.reference import ReferenceDataService


def _service(ctx) -> ReferenceDataService:
    return ReferenceDataService(ctx.obj["db"], ctx.obj["config"])


@click.group()
def branch_group():
    """Manage branches."""
    pass


@branch_group.command("create")
@click.argument("code")
@click.argument("name")
@click.pass_context
def create_branch(ctx, code: str, name: str):
    """Create a branch.

    Examples:
        fundledger branch create HQ "Head Office"
    """
    try:
        branch_id = _service(ctx).create_branch(code=code, name=name)
        click.echo(f"Created branch {code.upper()} '{name}' (ID: {branch_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@branch_group.command("list")
@click.pass_context
def list_branches(ctx):
    """List branches."""
    branches = _service(ctx).list_branches()
    if not branches:
        click.echo("No branches found.")
        return
    click.echo("\nBranches:")
    click.echo("-" * 60)
    for branch in branches:
        status = "" if branch.is_active else " (inactive)"
        click.echo(f"ID: {branch.id:3d} | {branch.code:10s} | {branch.name}{status}")


def _dimension_group(kind: DimensionKind) -> click.Group:
    """Build the create/list/update command group for one dimension kind."""
    title = kind.value.capitalize()

    @click.group(help=f"Manage {kind.value}s.")
    def group():
        pass

    @group.command("create", help=f"Create a {kind.value}.")
    @click.argument("code")
    @click.argument("name")
    @click.option("--description", help="Description")
    @click.pass_context
    def create(ctx, code: str, name: str, description: str | None):
        try:
            dimension_id = _service(ctx).create_dimension(kind, code=code, name=name, description=description)
            click.echo(f"Created {kind.value} {code.upper()} '{name}' (ID: {dimension_id})")
        except DomainError as e:
            handle_domain_error(ctx, e)

    @group.command("list", help=f"List {kind.value}s.")
    @click.option("--active-only", is_flag=True, help="Hide inactive records")
    @click.pass_context
    def list_(ctx, active_only: bool):
        dimensions = _service(ctx).list_dimensions(kind, active_only=active_only)
        if not dimensions:
            click.echo(f"No {kind.value}s found.")
            return
        click.echo(f"\n{title}s:")
        click.echo("-" * 60)
        for dim in dimensions:
            status = "" if dim.is_active else " (inactive)"
            click.echo(f"ID: {dim.id:3d} | {dim.code:10s} | {dim.name}{status}")

    @group.command("update", help=f"Update a {kind.value} by code.")
    @click.argument("code")
    @click.option("--name", help="New name")
    @click.option("--description", help="New description")
    @click.option("--active/--inactive", "is_active", default=None, help="Activate or deactivate")
    @click.pass_context
    def update(ctx, code: str, name: str | None, description: str | None, is_active: bool | None):
        service = _service(ctx)
        dimension = service.get_dimension_by_code(kind, code)
        if dimension is None:
            click.echo(f"Error: {title} '{code}' not found", err=True)
            ctx.exit(1)
        try:
            updated = service.update_dimension(
                kind, dimension.id, name=name, description=description, is_active=is_active
            )
            click.echo(f"Updated {kind.value} {updated.code}")
        except DomainError as e:
            handle_domain_error(ctx, e)

    return group


@click.group()
def fiscal_year_group():
    """Manage fiscal years."""
    pass


@fiscal_year_group.command("create")
@click.argument("name")
@click.option("--start", "start_date", required=True, help="First day (YYYY-MM-DD)")
@click.option("--end", "end_date", required=True, help="Last day (YYYY-MM-DD)")
@click.option("--current", is_flag=True, help="Make this the current fiscal year")
@click.pass_context
def create_fiscal_year(ctx, name: str, start_date: str, end_date: str, current: bool):
    """Create a fiscal year.

    Examples:
        fundledger fiscal-year create FY2025 --start 2025-01-01 --end 2025-12-31 --current
    """
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")
    try:
        fiscal_year_id = _service(ctx).create_fiscal_year(name, start, end, make_current=current)
        click.echo(f"Created fiscal year '{name}' (ID: {fiscal_year_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@fiscal_year_group.command("list")
@click.pass_context
def list_fiscal_years(ctx):
    """List fiscal years, newest first."""
    years = _service(ctx).list_fiscal_years()
    if not years:
        click.echo("No fiscal years found.")
        return
    click.echo("\nFiscal years:")
    click.echo("-" * 60)
    for year in years:
        flags = []
        if year.is_current:
            flags.append("current")
        if year.is_closed:
            flags.append("closed")
        suffix = f" ({', '.join(flags)})" if flags else ""
        click.echo(f"ID: {year.id:3d} | {year.name:10s} | {year.start_date} to {year.end_date}{suffix}")


@fiscal_year_group.command("set-current")
@click.argument("fiscal_year")
@click.pass_context
def set_current_fiscal_year(ctx, fiscal_year: str):
    """Make FISCAL_YEAR (name or ID) the current fiscal year."""
    service = _service(ctx)
    fiscal_year_id = resolve_fiscal_year_or_exit(ctx, service, fiscal_year)
    try:
        year = service.set_current_fiscal_year(fiscal_year_id)
        click.echo(f"Fiscal year '{year.name}' is now current")
    except DomainError as e:
        handle_domain_error(ctx, e)


@fiscal_year_group.command("close")
@click.argument("fiscal_year")
@click.pass_context
def close_fiscal_year(ctx, fiscal_year: str):
    """Close FISCAL_YEAR (name or ID).

    Journals dated in a closed year can no longer be posted or unposted,
    and its budgets become read-only.
    """
    service = _service(ctx)
    fiscal_year_id = resolve_fiscal_year_or_exit(ctx, service, fiscal_year)
    try:
        year = service.close_fiscal_year(fiscal_year_id, actor=ctx.obj["user"])
        click.echo(f"Closed fiscal year '{year.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register reference data commands with main CLI."""
    cli.add_command(branch_group, name="branch")
    for kind in DimensionKind:
        cli.add_command(_dimension_group(kind), name=kind.value)
    cli.add_command(fiscal_year_group, name="fiscal-year")
