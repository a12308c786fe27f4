"""Chart of accounts commands."""

import click
from fundledger.cli.error_handling import handle_domain_error
from fundledger.cli.resolution import resolve_account_or_exit
from fundledger.domain.account import AccountService
from fundledger.domain.entities import AccountCategory, AccountType, NormalBalance, PageRequest
from fundledger.domain.errors import DomainError

CATEGORY_CHOICES = [c.value for c in AccountCategory]
TYPE_CHOICES = [t.value for t in AccountType]


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code")
@click.argument("name")
@click.option("--type", "account_type", type=click.Choice(TYPE_CHOICES), default="B", show_default=True,
              help="Account type: H header, SH sub-header, B detail, I income/expense detail, R/R1 retained earnings")
@click.option("--category", type=click.Choice(CATEGORY_CHOICES), required=True, help="Account category")
@click.option("--parent", help="Parent account code, name or ID")
@click.option("--normal-balance", type=click.Choice([n.value for n in NormalBalance]),
              help="Override the category's default normal balance")
@click.option("--name-en", help="English name")
@click.option("--description", help="Description")
@click.pass_context
def create_account(
    ctx,
    code: str,
    name: str,
    account_type: str,
    category: str,
    parent: str | None,
    normal_balance: str | None,
    name_en: str | None,
    description: str | None,
):
    """Create a new account.

    Examples:
        fundledger account create 1000 "Assets" --type H --category asset
        fundledger account create 1100 "Cash" --category asset --parent 1000
    """
    service = AccountService(ctx.obj["db"], ctx.obj["config"])

    parent_id = resolve_account_or_exit(ctx, service, parent) if parent else None

    try:
        account_id = service.create_account(
            code=code,
            name=name,
            account_type=account_type,
            category=category,
            parent_id=parent_id,
            normal_balance=normal_balance,
            description=description,
            name_en=name_en,
        )
        click.echo(f"Created account {code} '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--category", type=click.Choice(CATEGORY_CHOICES), help="Only accounts of this category")
@click.option("--search", help="Match code or name")
@click.option("--page", type=int, default=1, show_default=True, help="Page number")
@click.option("--page-size", type=int, help="Rows per page")
@click.option("--sort", help="Sort field (code, name, category, level, created_at); prefix '-' for descending")
@click.pass_context
def list_accounts(ctx, category: str | None, search: str | None, page: int, page_size: int | None, sort: str | None):
    """List accounts."""
    service = AccountService(ctx.obj["db"], ctx.obj["config"])

    try:
        result = service.list_accounts_page(
            page=PageRequest(page=page, page_size=page_size, sort=sort),
            search=search,
            category=category,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not result.items:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in result.items:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:4d} | {acc.code:10s} | {acc.name:30s} | "
            f"{acc.category.value:9s} | {acc.account_type.value:2s}{status}"
        )
    click.echo(f"\nPage {result.page} of {result.total_pages} ({result.total} accounts)")


def _echo_tree(nodes, depth: int = 0) -> None:
    for node in nodes:
        marker = "" if node.is_detail else " [header]"
        click.echo(f"{'  ' * depth}{node.code} {node.name}{marker}")
        _echo_tree(node.children, depth + 1)


@account_group.command("tree")
@click.pass_context
def account_tree(ctx):
    """Show the chart of accounts as a tree."""
    service = AccountService(ctx.obj["db"], ctx.obj["config"])
    tree = service.get_account_tree()
    if not tree:
        click.echo("No accounts found.")
        return
    _echo_tree(tree)


@account_group.command("show")
@click.argument("account")
@click.pass_context
def show_account(ctx, account: str):
    """Show account details.

    ACCOUNT can be an account code, name or ID.
    """
    service = AccountService(ctx.obj["db"], ctx.obj["config"])
    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.require_account(account_id)

    click.echo(f"Account: {acc.code} {acc.name}")
    if acc.name_en:
        click.echo(f"  English name: {acc.name_en}")
    click.echo(f"  ID: {acc.id}")
    click.echo(f"  Type: {acc.account_type.label} ({acc.account_type.value})")
    click.echo(f"  Category: {acc.category.value}")
    click.echo(f"  Normal balance: {acc.normal_balance.value}")
    click.echo(f"  Level: {acc.level}")
    if acc.parent_id is not None:
        parent = service.get_account(acc.parent_id)
        click.echo(f"  Parent: {parent.code} {parent.name}" if parent else f"  Parent ID: {acc.parent_id}")
    click.echo(f"  Active: {'yes' if acc.is_active else 'no'}")
    if acc.description:
        click.echo(f"  Description: {acc.description}")


@account_group.command("update")
@click.argument("account")
@click.option("--name", help="New name")
@click.option("--name-en", help="New English name")
@click.option("--description", help="New description")
@click.option("--active/--inactive", "is_active", default=None, help="Activate or deactivate the account")
@click.pass_context
def update_account(
    ctx, account: str, name: str | None, name_en: str | None, description: str | None, is_active: bool | None
) -> None:
    """Update an account's name, description or active flag.

    ACCOUNT can be an account code, name or ID. Code, parent, type and
    category cannot be changed.
    """
    service = AccountService(ctx.obj["db"], ctx.obj["config"])
    account_id = resolve_account_or_exit(ctx, service, account)

    fields = {
        key: value
        for key, value in (("name", name), ("name_en", name_en), ("description", description), ("is_active", is_active))
        if value is not None
    }
    if not fields:
        click.echo("Error: Nothing to update.", err=True)
        ctx.exit(1)

    try:
        updated = service.update_account(account_id, **fields)
        click.echo(f"Updated account {updated.code}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account code, name or ID.

    The account can only be deleted if it has no child accounts, no
    journal lines and no budgets.
    """
    service = AccountService(ctx.obj["db"], ctx.obj["config"])
    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.require_account(account_id)

    if not yes and not click.confirm(f"Are you sure you want to delete account {acc.code} '{acc.name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
        click.echo(f"Deleted account {acc.code}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--skip-existing", is_flag=True, help="Skip codes that already exist instead of failing")
@click.pass_context
def import_accounts(ctx, path: str, skip_existing: bool) -> None:
    """Import a chart of accounts from a JSON file.

    The file holds a list of objects with at least ``code``, a name
    (``name`` or ``level1``..``level4``) and ``type``. The import is all or
    nothing.
    """
    service = AccountService(ctx.obj["db"], ctx.obj["config"])
    try:
        ids = service.import_from_json(path, skip_existing=skip_existing)
        click.echo(f"Imported {len(ids)} account(s)")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
