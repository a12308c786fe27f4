"""CLI helpers for date range resolution."""

from datetime import date

import click

from fundledger.utils.date_parser import get_date_range, parse_date


def parse_date_or_exit(ctx, value: str, label: str) -> date:
    """Parse a CLI date argument, or exit with a CLI error."""
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    default_range: tuple[date, date] | None = None,
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from a named period or explicit dates.

    ``period`` accepts this-month, last-quarter, this-year, ... or YYYY-MM.
    """
    if period and (start_date or end_date):
        click.echo(
            "Error: --period cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period:
        try:
            return get_date_range(period)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

    start = parse_date_or_exit(ctx, start_date, "start date") if start_date else None
    end = parse_date_or_exit(ctx, end_date, "end date") if end_date else None

    if start is None and end is None and default_range is not None:
        start, end = default_range

    return start, end
