"""Journal entry and workflow commands."""

from decimal import Decimal

import click
from fundledger.cli.date_filters import parse_date_or_exit, resolve_cli_date_range
from fundledger.cli.error_handling import handle_domain_error
from fundledger.cli.resolution import resolve_account_or_exit, resolve_branch_or_exit, resolve_dimension_or_exit
from fundledger.domain.account import AccountService
from fundledger.domain.entities import ZERO, DimensionKind, JournalLineInput, JournalStatus, PageRequest, ReviewAction
from fundledger.domain.errors import DomainError
from fundledger.domain.journal import JournalService
from fundledger.domain.reference import ReferenceDataService
from fundledger.utils.amount_parser import parse_amount

LINE_HELP = (
    "Journal line as ACCOUNT:D|C:AMOUNT with optional :fund=CODE, :program=CODE, "
    ":donor=CODE and :desc=TEXT parts (repeat for each line)"
)


def _parse_line(ctx, line_spec: str) -> JournalLineInput:
    """Parse one --line option into a JournalLineInput.

    ``desc=`` swallows the remaining fields so descriptions may contain colons.
    """
    parts = line_spec.split(":")
    if len(parts) < 3:
        click.echo(f"Error: Invalid line '{line_spec}'. Expected ACCOUNT:D|C:AMOUNT", err=True)
        ctx.exit(1)

    account_ref, side, amount_text = parts[0], parts[1].strip().upper(), parts[2]
    if side not in ("D", "C"):
        click.echo(f"Error: Invalid side '{parts[1]}' in line '{line_spec}'. Use D or C", err=True)
        ctx.exit(1)
    try:
        amount = parse_amount(amount_text)
    except ValueError as e:
        click.echo(f"Error: Invalid amount in line '{line_spec}': {e}", err=True)
        ctx.exit(1)

    account_id = resolve_account_or_exit(ctx, AccountService(ctx.obj["db"], ctx.obj["config"]), account_ref)
    reference = ReferenceDataService(ctx.obj["db"], ctx.obj["config"])
    dimensions: dict[str, int] = {}
    description = None
    extras = parts[3:]
    for index, extra in enumerate(extras):
        key, sep, value = extra.partition("=")
        key = key.strip().lower()
        if key == "desc" and sep:
            description = ":".join([value] + extras[index + 1:])
            break
        if not sep or key not in (k.value for k in DimensionKind):
            click.echo(f"Error: Unknown line option '{extra}' in line '{line_spec}'", err=True)
            ctx.exit(1)
        dimensions[key] = resolve_dimension_or_exit(ctx, reference, DimensionKind(key), value)

    return JournalLineInput(
        account_id=account_id,
        debit=amount if side == "D" else ZERO,
        credit=amount if side == "C" else ZERO,
        description=description,
        fund_id=dimensions.get("fund"),
        program_id=dimensions.get("program"),
        donor_id=dimensions.get("donor"),
    )


def _resolve_journal_or_exit(ctx, service: JournalService, journal: str) -> int:
    """Resolve a journal number or ID, or exit with a CLI error."""
    found = service.get_journal_by_number(journal)
    if found is None and journal.strip().isdigit():
        found = service.get_journal(int(journal))
    if found is None:
        click.echo(f"Error: Journal '{journal}' not found", err=True)
        ctx.exit(1)
    return found.id


def _format_amount(value: Decimal) -> str:
    return f"{value:,.2f}" if value else ""


@click.group()
def journal_group():
    """Record journals and move them through review and posting."""
    pass


@journal_group.command("create")
@click.option("--branch", required=True, help="Branch code or ID")
@click.option("--date", "journal_date", default="today", show_default=True,
              help="Journal date (YYYY-MM-DD or relative like 'today', 'yesterday')")
@click.option("--description", required=True, help="Journal description")
@click.option("--reference", help="External reference number")
@click.option("--line", "lines", multiple=True, required=True, help=LINE_HELP)
@click.pass_context
def create_journal(ctx, branch: str, journal_date: str, description: str, reference: str | None, lines):
    """Create a draft journal.

    Examples:
        fundledger journal create --branch HQ --description "Cash donation" \\
            --line 1100:D:500000 --line 4100:C:500000:fund=GEN
    """
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    branch_id = resolve_branch_or_exit(ctx, ReferenceDataService(ctx.obj["db"], ctx.obj["config"]), branch)
    day = parse_date_or_exit(ctx, journal_date, "date")
    line_inputs = [_parse_line(ctx, line_spec) for line_spec in lines]

    try:
        journal_id = service.create_journal(
            branch_id=branch_id,
            journal_date=day,
            description=description,
            lines=line_inputs,
            actor=ctx.obj["user"],
            reference_no=reference,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    journal = service.require_journal(journal_id)
    click.echo(f"Created journal {journal.journal_number} (ID: {journal_id})")


@journal_group.command("list")
@click.option("--status", type=click.Choice([s.value for s in JournalStatus]), help="Only journals in this status")
@click.option("--branch", help="Branch code or ID")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative)")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative)")
@click.option("--period", help="Named range: this-month, last-quarter, this-year, ... or YYYY-MM")
@click.option("--page", type=int, default=1, show_default=True, help="Page number")
@click.option("--page-size", type=int, help="Rows per page")
@click.option("--sort", help="Sort field (journal_date, journal_number, status, total_debit, created_at); '-' for descending")
@click.pass_context
def list_journals(
    ctx,
    status: str | None,
    branch: str | None,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    page: int,
    page_size: int | None,
    sort: str | None,
):
    """List journal headers."""
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    branch_id = None
    if branch:
        branch_id = resolve_branch_or_exit(ctx, ReferenceDataService(ctx.obj["db"], ctx.obj["config"]), branch)
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)

    try:
        result = service.list_journals(
            page=PageRequest(page=page, page_size=page_size, sort=sort),
            status=status,
            branch_id=branch_id,
            start_date=start,
            end_date=end,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not result.items:
        click.echo("No journals found.")
        return

    click.echo(f"\nFound {result.total} journal(s):")
    click.echo("-" * 100)
    for journal in result.items:
        click.echo(
            f"ID: {journal.id:4d} | {journal.journal_number:22s} | {journal.journal_date} | "
            f"{journal.status.label:12s} | {journal.total_debit:>14,.2f} | {journal.description}"
        )
    click.echo(f"\nPage {result.page} of {result.total_pages}")


@journal_group.command("show")
@click.argument("journal")
@click.pass_context
def show_journal(ctx, journal: str):
    """Show a journal with its lines.

    JOURNAL can be a journal number or ID.
    """
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    entry = service.require_journal(_resolve_journal_or_exit(ctx, service, journal))

    click.echo(f"Journal {entry.journal_number} (ID: {entry.id})")
    click.echo(f"  Date: {entry.journal_date}")
    click.echo(f"  Status: {entry.status.label}")
    click.echo(f"  Description: {entry.description}")
    if entry.reference_no:
        click.echo(f"  Reference: {entry.reference_no}")
    click.echo(f"  Created by: {entry.created_by}")
    if entry.approved_by:
        click.echo(f"  Approved by: {entry.approved_by}")
    if entry.rejected_by:
        click.echo(f"  Rejected by: {entry.rejected_by} ({entry.reject_reason or 'no reason given'})")
    if entry.is_posted:
        click.echo(f"  Posted by: {entry.posted_by} at {entry.posted_at}")
    click.echo("")
    click.echo(f"  {'Account':30s} {'Debit':>16s} {'Credit':>16s}")
    for line in entry.lines:
        label = f"{line.account_code} {line.account_name}"
        click.echo(f"  {label[:30]:30s} {_format_amount(line.debit):>16s} {_format_amount(line.credit):>16s}")
        if line.description:
            click.echo(f"      {line.description}")
    click.echo(f"  {'Total':30s} {entry.total_debit:>16,.2f} {entry.total_credit:>16,.2f}")


@journal_group.command("update")
@click.argument("journal")
@click.option("--date", "journal_date", help="New journal date")
@click.option("--description", help="New description")
@click.option("--reference", help="New reference number")
@click.option("--line", "lines", multiple=True, help=LINE_HELP + "; replaces all lines")
@click.pass_context
def update_journal(ctx, journal: str, journal_date: str | None, description: str | None, reference: str | None, lines):
    """Update a draft journal.

    Options that are not given keep their current value. Passing any
    --line replaces the whole set of lines.
    """
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    current = service.require_journal(_resolve_journal_or_exit(ctx, service, journal))

    day = parse_date_or_exit(ctx, journal_date, "date") if journal_date else current.journal_date
    if lines:
        line_inputs = [_parse_line(ctx, line_spec) for line_spec in lines]
    else:
        line_inputs = [
            JournalLineInput(
                account_id=line.account_id,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
                fund_id=line.fund_id,
                program_id=line.program_id,
                donor_id=line.donor_id,
            )
            for line in current.lines
        ]

    try:
        updated = service.update_journal(
            current.id,
            actor=ctx.obj["user"],
            journal_date=day,
            description=description if description is not None else current.description,
            lines=line_inputs,
            reference_no=reference if reference is not None else current.reference_no,
        )
        click.echo(f"Updated journal {updated.journal_number}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("delete")
@click.argument("journal")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_journal(ctx, journal: str, yes: bool):
    """Delete a draft journal."""
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    entry = service.require_journal(_resolve_journal_or_exit(ctx, service, journal))

    if not yes and not click.confirm(f"Are you sure you want to delete journal {entry.journal_number}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_journal(entry.id, actor=ctx.obj["user"])
        click.echo(f"Deleted journal {entry.journal_number}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("submit")
@click.argument("journal")
@click.pass_context
def submit_journal(ctx, journal: str):
    """Submit a draft journal for review."""
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    journal_id = _resolve_journal_or_exit(ctx, service, journal)
    try:
        entry = service.submit_for_review(journal_id, actor=ctx.obj["user"])
        click.echo(f"Journal {entry.journal_number} submitted for review")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("approve")
@click.argument("journal")
@click.option("--notes", help="Review notes")
@click.pass_context
def approve_journal(ctx, journal: str, notes: str | None):
    """Approve a journal under review. The reviewer must not be its creator."""
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    journal_id = _resolve_journal_or_exit(ctx, service, journal)
    try:
        entry = service.review_journal(journal_id, actor=ctx.obj["user"], action=ReviewAction.APPROVE, notes=notes)
        click.echo(f"Journal {entry.journal_number} approved")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("reject")
@click.argument("journal")
@click.option("--reason", help="Rejection reason")
@click.pass_context
def reject_journal(ctx, journal: str, reason: str | None):
    """Reject a journal under review. The reviewer must not be its creator."""
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    journal_id = _resolve_journal_or_exit(ctx, service, journal)
    try:
        entry = service.review_journal(journal_id, actor=ctx.obj["user"], action=ReviewAction.REJECT, notes=reason)
        click.echo(f"Journal {entry.journal_number} rejected")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("post")
@click.argument("journal")
@click.option("--date", "post_date", help="Posting date (defaults to now)")
@click.pass_context
def post_journal(ctx, journal: str, post_date: str | None):
    """Post an approved journal to the ledger."""
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    journal_id = _resolve_journal_or_exit(ctx, service, journal)
    day = parse_date_or_exit(ctx, post_date, "posting date") if post_date else None
    try:
        entry = service.post_journal(journal_id, actor=ctx.obj["user"], post_date=day)
        click.echo(f"Journal {entry.journal_number} posted")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("unpost")
@click.argument("journal")
@click.pass_context
def unpost_journal(ctx, journal: str):
    """Take a posted journal off the ledger, returning it to approved."""
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    journal_id = _resolve_journal_or_exit(ctx, service, journal)
    try:
        entry = service.unpost_journal(journal_id, actor=ctx.obj["user"])
        click.echo(f"Journal {entry.journal_number} unposted")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("history")
@click.argument("journal_id", type=int)
@click.pass_context
def journal_history(ctx, journal_id: int):
    """Show the recorded state changes of a journal.

    History survives deletion, so JOURNAL_ID is always a numeric ID.
    """
    service = JournalService(ctx.obj["db"], ctx.obj["config"])
    events = service.get_journal_history(journal_id)
    if not events:
        click.echo("No history found.")
        return
    for event in events:
        from_status = event.from_status.value if event.from_status else "-"
        to_status = event.to_status.value if event.to_status else "-"
        notes = f" | {event.notes}" if event.notes else ""
        click.echo(
            f"{event.occurred_at:%Y-%m-%d %H:%M:%S} | {event.transition.value:9s} | "
            f"{from_status} -> {to_status} | {event.actor}{notes}"
        )


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
