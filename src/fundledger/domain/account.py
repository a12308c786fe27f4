"""Chart-of-accounts domain service."""

import json
from collections import defaultdict
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from fundledger.config import LedgerConfig
from fundledger.database.base import Database
from fundledger.domain.entities import (
    Account as AccountEntity,
    AccountCategory,
    AccountDraft,
    AccountImportRow,
    AccountTreeNode,
    AccountType,
    NormalBalance,
    Page,
    PageRequest,
)
from fundledger.domain.errors import (
    AccountHasBudgetsError,
    AccountHasChildrenError,
    AccountHasTransactionsError,
    ConflictError,
    NotFoundError,
    ValidationError,
    account_code_not_found,
    account_delete_blocked,
    account_not_found,
    duplicate_account_code,
)
from fundledger.domain.pagination import resolve_page_request
from fundledger.domain.validation import coerce_enum, optional_text, require_text
from fundledger.logging_config import get_logger

logger = get_logger("accounts")

MUTABLE_FIELDS = frozenset({"name", "name_en", "is_active", "description"})
STRUCTURAL_FIELDS = frozenset(
    {"code", "parent_id", "account_type", "category", "normal_balance", "level", "is_detail"}
)

_CATEGORY_BY_FIRST_DIGIT = {
    "1": AccountCategory.ASSET,
    "2": AccountCategory.LIABILITY,
    "3": AccountCategory.EQUITY,
    "4": AccountCategory.REVENUE,
}

# Parent codes in import files are the first four characters of the child code
_IMPLIED_PARENT_LENGTH = 4


def infer_category_from_code(code: str) -> Optional[AccountCategory]:
    """Infer an account category from the first digit of its code.

    1 asset, 2 liability, 3 equity, 4 revenue, 5-9 expense.
    """
    if not code or not code[0].isdigit():
        return None
    if code[0] in _CATEGORY_BY_FIRST_DIGIT:
        return _CATEGORY_BY_FIRST_DIGIT[code[0]]
    if code[0] >= "5":
        return AccountCategory.EXPENSE
    return None


class AccountService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        """Initialize account service.

        Args:
            db: Database instance
            config: Ledger configuration (defaults apply when omitted)
        """
        self.db = db
        self.config = config or LedgerConfig()

    def create_account(
        self,
        code: str,
        name: str,
        account_type: Union[AccountType, str],
        category: Union[AccountCategory, str],
        parent_id: Optional[int] = None,
        normal_balance: Union[NormalBalance, str, None] = None,
        description: Optional[str] = None,
        name_en: Optional[str] = None,
    ) -> int:
        """Create a new account.

        The hierarchy level is the parent's level plus one (0 for roots),
        ``is_detail`` follows from the account type, and the normal balance
        defaults from the category.

        Args:
            code: Unique account code, e.g. "1100"
            name: Display name
            account_type: Account type or its short code ("H", "SH", "B", ...)
            category: Account category
            parent_id: Optional parent account ID
            normal_balance: Override for the category's default normal balance
            description: Optional description
            name_en: Optional English name

        Returns:
            Account ID

        Raises:
            ValidationError: If a field is missing or invalid
            ConflictError: If the code already exists
            NotFoundError: If the parent account does not exist
        """
        parent_code = None
        level = 0
        if parent_id is not None:
            parent = self.require_account(parent_id)
            parent_code = parent.code
            level = parent.level + 1

        draft = self._build_draft(
            code=code,
            name=name,
            account_type=account_type,
            category=category,
            normal_balance=normal_balance,
            level=level,
            parent_code=parent_code,
            name_en=name_en,
            description=description,
        )
        if self.db.get_account_by_code(draft.code) is not None:
            raise ConflictError(duplicate_account_code(draft.code))

        account_id = self.db.create_accounts([draft])[0]
        logger.info(
            "Created account %s %s",
            draft.code,
            draft.name,
            extra={"account_id": account_id, "category": draft.category.value},
        )
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def get_account_by_code(self, code: str) -> Optional[AccountEntity]:
        """Get account by code."""
        return self.db.get_account_by_code(code.strip())

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID, raising NotFoundError when missing."""
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(
        self,
        category: Union[AccountCategory, str, None] = None,
        detail_only: bool = False,
        active_only: bool = False,
    ) -> list[AccountEntity]:
        """List accounts ordered by code.

        Args:
            category: Only accounts of this category
            detail_only: Only accounts that can receive journal lines
            active_only: Only active accounts
        """
        if category is not None:
            category = coerce_enum(AccountCategory, category, "category")
        return self.db.list_accounts(category=category, detail_only=detail_only, active_only=active_only)

    def list_accounts_page(
        self,
        page: Optional[PageRequest] = None,
        search: Optional[str] = None,
        category: Union[AccountCategory, str, None] = None,
    ) -> Page[AccountEntity]:
        """List one page of accounts.

        Args:
            page: Page/size/sort descriptor; sortable by code, name, category,
                level, created_at
            search: Substring matched against code and names
            category: Only accounts of this category
        """
        request = resolve_page_request(page, self.config)
        if category is not None:
            category = coerce_enum(AccountCategory, category, "category")
        return self.db.list_accounts_page(
            page=request.page,
            page_size=request.page_size,
            sort=request.sort,
            search=optional_text(search),
            category=category,
        )

    def update_account(self, account_id: int, **fields: Any) -> AccountEntity:
        """Update the mutable fields of an account.

        Only ``name``, ``name_en``, ``is_active`` and ``description`` can
        change. Code, hierarchy position, type and category are fixed at
        creation because historical postings depend on them.

        Returns:
            The updated account

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If a structural or unknown field is supplied
        """
        structural = sorted(set(fields) & STRUCTURAL_FIELDS)
        if structural:
            raise ValidationError(
                f"Cannot change {', '.join(structural)} of an account after creation"
            )
        unknown = sorted(set(fields) - MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown account field(s): {', '.join(unknown)}")

        self.require_account(account_id)

        updates: dict[str, Any] = {}
        if "name" in fields:
            updates["name"] = require_text(fields["name"], "Account name")
        if "name_en" in fields:
            updates["name_en"] = optional_text(fields["name_en"])
        if "description" in fields:
            updates["description"] = optional_text(fields["description"])
        if "is_active" in fields:
            updates["is_active"] = bool(fields["is_active"])

        self.db.update_account(account_id, **updates)
        logger.info("Updated account %s", account_id, extra={"fields": sorted(updates)})
        return self.require_account(account_id)

    def delete_account(self, account_id: int) -> None:
        """Delete an account.

        Args:
            account_id: Account ID to delete

        Raises:
            NotFoundError: If the account does not exist
            AccountHasChildrenError: If another account has it as parent
            AccountHasTransactionsError: If any journal line references it
            AccountHasBudgetsError: If any budget row targets it
        """
        account = self.require_account(account_id)

        child_count = self.db.count_child_accounts(account_id)
        if child_count > 0:
            raise AccountHasChildrenError(account_delete_blocked(account.code, child_count, 0))

        line_count = self.db.count_account_lines(account_id)
        if line_count > 0:
            raise AccountHasTransactionsError(account_delete_blocked(account.code, 0, line_count))

        budget_count = self.db.count_account_budgets(account_id)
        if budget_count > 0:
            raise AccountHasBudgetsError(account_delete_blocked(account.code, 0, 0, budget_count))

        self.db.delete_account(account_id)
        logger.info("Deleted account %s", account.code, extra={"account_id": account_id})

    def get_account_tree(self) -> list[AccountTreeNode]:
        """Return the chart of accounts as a forest ordered by code at every level."""
        children_by_parent: dict[Optional[int], list[AccountEntity]] = defaultdict(list)
        for account in self.db.list_accounts():
            children_by_parent[account.parent_id].append(account)

        def build(parent_id: Optional[int]) -> tuple[AccountTreeNode, ...]:
            siblings = sorted(children_by_parent.get(parent_id, []), key=lambda acc: acc.code)
            return tuple(
                AccountTreeNode(
                    id=acc.id,
                    code=acc.code,
                    name=acc.name,
                    account_type=acc.account_type,
                    category=acc.category,
                    is_active=acc.is_active,
                    is_detail=acc.is_detail,
                    level=acc.level,
                    parent_id=acc.parent_id,
                    children=build(acc.id),
                )
                for acc in siblings
            )

        return list(build(None))

    def bulk_import(
        self,
        rows: Iterable[Union[AccountImportRow, Mapping[str, Any]]],
        skip_existing: bool = False,
    ) -> list[int]:
        """Import many accounts atomically.

        Parent references are by code and may point at rows anywhere in the
        batch or at existing accounts. Every row is validated and every level
        computed before anything is written; either all rows are created or
        none are.

        Args:
            rows: Import rows (entities or mappings with the same keys)
            skip_existing: Silently skip rows whose code already exists instead
                of failing

        Returns:
            IDs of the created accounts, parents before children

        Raises:
            ValidationError: If a row is invalid or parent references form a cycle
            ConflictError: If a code is duplicated in the batch or already exists
            NotFoundError: If a parent code matches neither the batch nor an
                existing account
        """
        import_rows = [row if isinstance(row, AccountImportRow) else self._row_from_mapping(row) for row in rows]
        if not import_rows:
            raise ValidationError("No accounts to import")

        by_code: dict[str, AccountImportRow] = {}
        for row in import_rows:
            code = require_text(row.code, "Account code")
            if code in by_code:
                raise ConflictError(f"Account code '{code}' appears more than once in the import")
            by_code[code] = row

        skipped: list[str] = []
        for code in list(by_code):
            if self.db.get_account_by_code(code) is not None:
                if not skip_existing:
                    raise ConflictError(duplicate_account_code(code))
                skipped.append(code)
                del by_code[code]

        levels = self._resolve_levels(by_code)
        drafts = []
        for code, row in by_code.items():
            category = row.category if row.category is not None else infer_category_from_code(code)
            if category is None:
                raise ValidationError(f"Account {code}: category is required")
            drafts.append(
                self._build_draft(
                    code=code,
                    name=row.name,
                    account_type=row.account_type,
                    category=category,
                    normal_balance=row.normal_balance,
                    level=levels[code],
                    parent_code=optional_text(row.parent_code),
                    name_en=row.name_en,
                    description=row.description,
                )
            )

        if not drafts:
            logger.info("Account import skipped: all %d codes already exist", len(skipped))
            return []

        # Parents always have a lower level than their children
        drafts.sort(key=lambda d: (d.level, d.code))
        ids = self.db.create_accounts(drafts)
        logger.info(
            "Imported %d accounts",
            len(ids),
            extra={"skipped": len(skipped)},
        )
        return ids

    def import_from_json(self, path: Union[str, Path], skip_existing: bool = False) -> list[int]:
        """Import a chart of accounts from a JSON file.

        The file holds a list of objects with ``code``, ``type`` and ``name``
        keys. When ``name`` is missing, the deepest non-empty of ``level1`` to
        ``level4`` is used. ``category`` is inferred from the code's first
        digit when omitted, and ``parent_code`` defaults to the first four
        characters of a longer code when that account exists in the file or
        in the database.

        Returns:
            IDs of the created accounts

        Raises:
            ValidationError: If the file cannot be read or parsed
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as e:
            raise ValidationError(f"Failed to read file {path}: {e}")
        except json.JSONDecodeError as e:
            raise ValidationError(f"Failed to parse JSON in {path}: {e}")
        if not isinstance(data, list):
            raise ValidationError(f"Expected a JSON list of accounts in {path}")

        codes_in_file = {str(item.get("code", "")).strip() for item in data if isinstance(item, dict)}
        rows = []
        for index, item in enumerate(data, start=1):
            if not isinstance(item, dict):
                raise ValidationError(f"Entry {index} in {path} is not an object")
            code = str(item.get("code", "")).strip()
            name = item.get("name") or next(
                (item[key] for key in ("level4", "level3", "level2", "level1") if item.get(key)),
                None,
            )
            parent_code = item.get("parent_code")
            if parent_code is None and len(code) > _IMPLIED_PARENT_LENGTH:
                implied = code[:_IMPLIED_PARENT_LENGTH]
                if implied in codes_in_file or self.db.get_account_by_code(implied) is not None:
                    parent_code = implied
            rows.append(
                {
                    "code": code,
                    "name": name,
                    "account_type": item.get("type") or item.get("account_type"),
                    "category": item.get("category") or None,
                    "parent_code": parent_code,
                    "normal_balance": item.get("normal_balance") or None,
                    "name_en": item.get("name_en"),
                    "description": item.get("description"),
                }
            )
        return self.bulk_import(rows, skip_existing=skip_existing)

    def _row_from_mapping(self, data: Mapping[str, Any]) -> AccountImportRow:
        account_type = data.get("account_type", data.get("type"))
        if account_type is None:
            raise ValidationError(f"Account {data.get('code')}: account type is required")
        category = data.get("category")
        normal_balance = data.get("normal_balance")
        return AccountImportRow(
            code=str(data.get("code") or "").strip(),
            name=data.get("name") or "",
            account_type=coerce_enum(AccountType, account_type, "account type"),
            category=coerce_enum(AccountCategory, category, "category") if category else None,
            parent_code=data.get("parent_code"),
            normal_balance=coerce_enum(NormalBalance, normal_balance, "normal balance") if normal_balance else None,
            name_en=data.get("name_en"),
            description=data.get("description"),
        )

    def _resolve_levels(self, by_code: Mapping[str, AccountImportRow]) -> dict[str, int]:
        """Compute the level of every batch row, rejecting cycles."""
        levels: dict[str, int] = {}

        def level_of(code: str, path: list[str]) -> int:
            if code in levels:
                return levels[code]
            if code in path:
                cycle = " -> ".join(path[path.index(code):] + [code])
                raise ValidationError(f"Parent references form a cycle: {cycle}")
            parent_code = optional_text(by_code[code].parent_code)
            if parent_code is None:
                level = 0
            elif parent_code in by_code:
                level = level_of(parent_code, path + [code]) + 1
            else:
                parent = self.db.get_account_by_code(parent_code)
                if parent is None:
                    raise NotFoundError(account_code_not_found(parent_code))
                level = parent.level + 1
            levels[code] = level
            return level

        for code in by_code:
            level_of(code, [])
        return levels

    def _build_draft(
        self,
        code: str,
        name: str,
        account_type: Union[AccountType, str],
        category: Union[AccountCategory, str],
        normal_balance: Union[NormalBalance, str, None],
        level: int,
        parent_code: Optional[str] = None,
        name_en: Optional[str] = None,
        description: Optional[str] = None,
    ) -> AccountDraft:
        code = require_text(code, "Account code")
        if any(ch.isspace() for ch in code):
            raise ValidationError(f"Account code '{code}' must not contain whitespace")
        account_type = coerce_enum(AccountType, account_type, "account type")
        category = coerce_enum(AccountCategory, category, "category")
        if normal_balance is None:
            normal_balance = category.default_normal_balance
        else:
            normal_balance = coerce_enum(NormalBalance, normal_balance, "normal balance")
        return AccountDraft(
            code=code,
            name=require_text(name, f"Account {code}: name"),
            account_type=account_type,
            category=category,
            normal_balance=normal_balance,
            is_detail=account_type.is_detail,
            level=level,
            parent_code=parent_code,
            name_en=optional_text(name_en),
            description=optional_text(description),
        )
