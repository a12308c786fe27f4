"""CLI error handling helpers."""

import click

from fundledger.domain.errors import DomainError
from fundledger.logging_config import get_logger

logger = get_logger("cli")


def handle_domain_error(ctx: click.Context, error: DomainError) -> None:
    """Print a domain error as ``Error: <message>`` and exit with status 1.

    The error's ``code`` goes to the log only; the terminal shows the message.
    """
    logger.debug(
        "%s failed", ctx.command_path, extra={"error_code": getattr(error, "code", None)}
    )
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
