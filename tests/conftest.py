"""Shared pytest fixtures for fundledger tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from fundledger.config import LedgerConfig
from fundledger.database.factories import create_sqlite_database
from fundledger.domain.account import AccountService
from fundledger.domain.balance import BalanceService
from fundledger.domain.budget import BudgetService
from fundledger.domain.entities import JournalLineInput
from fundledger.domain.journal import JournalService
from fundledger.domain.reference import ReferenceDataService
from fundledger.domain.reports import ReportService
from fundledger.logging_config import reset_logging

CREATOR = "alice"
REVIEWER = "bob"

# (code, name, type, category, parent code)
SAMPLE_CHART = [
    ("1000", "Assets", "H", "asset", None),
    ("1100", "Cash", "B", "asset", "1000"),
    ("1200", "Receivables", "B", "asset", "1000"),
    ("2000", "Liabilities", "H", "liability", None),
    ("2100", "Payables", "B", "liability", "2000"),
    ("3000", "Equity", "H", "equity", None),
    ("3100", "Net Assets", "B", "equity", "3000"),
    ("4000", "Revenue", "H", "revenue", None),
    ("4100", "Tuition Revenue", "B", "revenue", "4000"),
    ("5000", "Expenses", "H", "expense", None),
    ("5100", "Salaries", "B", "expense", "5000"),
    ("5200", "Supplies", "B", "expense", "5000"),
]


@pytest.fixture(autouse=True)
def clean_logging():
    """Remove handlers installed by CLI runs between tests."""
    yield
    reset_logging()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def reopen_db(temp_db):
    """Open a second connection to the test database.

    Used to check state written by CLI commands, which run on their own
    connection.
    """
    opened = []

    def _reopen():
        db = create_sqlite_database(database_path=temp_db.database_path)
        opened.append(db)
        return db

    yield _reopen
    for db in opened:
        db.disconnect()


@pytest.fixture
def config():
    """Ledger configuration used by service fixtures."""
    return LedgerConfig()


@pytest.fixture
def account_service(temp_db, config):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db, config)


@pytest.fixture
def reference_service(temp_db, config):
    """Create a ReferenceDataService with a temporary database."""
    return ReferenceDataService(temp_db, config)


@pytest.fixture
def journal_service(temp_db, config):
    """Create a JournalService with a temporary database."""
    return JournalService(temp_db, config)


@pytest.fixture
def balance_service(temp_db, config):
    """Create a BalanceService with a temporary database."""
    return BalanceService(temp_db, config)


@pytest.fixture
def budget_service(temp_db, config):
    """Create a BudgetService with a temporary database."""
    return BudgetService(temp_db, config)


@pytest.fixture
def report_service(temp_db, config):
    """Create a ReportService with a temporary database."""
    return ReportService(temp_db, config)


@pytest.fixture
def chart(account_service):
    """Create a small chart of accounts and return account IDs by code."""
    ids = {}
    for code, name, account_type, category, parent_code in SAMPLE_CHART:
        ids[code] = account_service.create_account(
            code=code,
            name=name,
            account_type=account_type,
            category=category,
            parent_id=ids[parent_code] if parent_code else None,
        )
    return ids


@pytest.fixture
def branch(reference_service):
    """Create the head office branch."""
    branch_id = reference_service.create_branch("HQ", "Head Office")
    return reference_service.get_branch(branch_id)


@pytest.fixture
def fiscal_year(reference_service):
    """Create fiscal year 2025 and make it current."""
    fiscal_year_id = reference_service.create_fiscal_year(
        "FY2025", date(2025, 1, 1), date(2025, 12, 31), make_current=True
    )
    return reference_service.get_fiscal_year(fiscal_year_id)


@pytest.fixture
def fund(reference_service):
    """Create the general fund."""
    fund_id = reference_service.create_dimension("fund", "GEN", "General Fund")
    return reference_service.get_dimension("fund", fund_id)


@pytest.fixture
def program(reference_service):
    """Create the education program."""
    program_id = reference_service.create_dimension("program", "EDU", "Education")
    return reference_service.get_dimension("program", program_id)


def make_lines(*legs, **tags):
    """Build JournalLineInputs from (account_id, debit, credit) tuples."""
    return [
        JournalLineInput(account_id=account_id, debit=Decimal(debit), credit=Decimal(credit), **tags)
        for account_id, debit, credit in legs
    ]


@pytest.fixture
def create_draft(journal_service, branch):
    """Factory creating a draft journal for the creator user."""

    def _create(legs, journal_date=date(2025, 1, 15), description="Test journal", actor=CREATOR, **tags):
        return journal_service.create_journal(
            branch_id=branch.id,
            journal_date=journal_date,
            description=description,
            lines=make_lines(*legs, **tags),
            actor=actor,
        )

    return _create


@pytest.fixture
def post_journal(journal_service, create_draft):
    """Factory creating a journal and moving it all the way to posted."""

    def _post(legs, journal_date=date(2025, 1, 15), description="Test journal", **tags):
        journal_id = create_draft(legs, journal_date=journal_date, description=description, **tags)
        journal_service.submit_for_review(journal_id, CREATOR)
        journal_service.review_journal(journal_id, REVIEWER, "approve")
        journal_service.post_journal(journal_id, REVIEWER)
        return journal_id

    return _post


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
