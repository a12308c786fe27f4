"""SQLAlchemy models for the fundledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(15, 2)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Branch(Base):
    """Branch model."""

    __tablename__ = "branches"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Fund(Base):
    """Fund dimension (restricted or unrestricted money)."""

    __tablename__ = "funds"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Program(Base):
    """Program dimension (cost center / project)."""

    __tablename__ = "programs"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Donor(Base):
    """Donor dimension."""

    __tablename__ = "donors"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class FiscalYear(Base):
    """Fiscal year model."""

    __tablename__ = "fiscal_years"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_current = Column(Boolean, default=False, nullable=False)
    is_closed = Column(Boolean, default=False, nullable=False)
    closed_at = Column(DateTime, nullable=True)
    closed_by = Column(String(100), nullable=True)


class Account(Base):
    """Chart-of-accounts model with hierarchical structure."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)
    code = Column(String(20), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    name_en = Column(String(200), nullable=True)
    account_type = Column(String(10), nullable=False)
    category = Column(String(20), nullable=False, index=True)
    normal_balance = Column(String(10), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_detail = Column(Boolean, default=False, nullable=False)
    level = Column(Integer, default=0, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    parent = relationship("Account", remote_side=[id], backref="children")


class Journal(Base):
    """Journal (ledger entry) header."""

    __tablename__ = "journals"

    id = Column(Integer, primary_key=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    journal_number = Column(String(50), unique=True, nullable=False)
    journal_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=False)
    reference_no = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    total_debit = Column(MONEY, nullable=False, default=0)
    total_credit = Column(MONEY, nullable=False, default=0)
    is_posted = Column(Boolean, default=False, nullable=False, index=True)
    posted_at = Column(DateTime, nullable=True)
    posted_by = Column(String(100), nullable=True)
    created_by = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)
    reviewed_by = Column(String(100), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    approved_by = Column(String(100), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_by = Column(String(100), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    reject_reason = Column(Text, nullable=True)

    # Relationships
    branch = relationship("Branch")
    lines = relationship(
        "JournalLine",
        back_populates="journal",
        cascade="all, delete-orphan",
        order_by="JournalLine.id",
    )


class JournalLine(Base):
    """One debit or credit leg of a journal."""

    __tablename__ = "journal_lines"

    id = Column(Integer, primary_key=True)
    journal_id = Column(Integer, ForeignKey("journals.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    debit = Column(MONEY, nullable=False, default=0)
    credit = Column(MONEY, nullable=False, default=0)
    fund_id = Column(Integer, ForeignKey("funds.id"), nullable=True, index=True)
    program_id = Column(Integer, ForeignKey("programs.id"), nullable=True, index=True)
    donor_id = Column(Integer, ForeignKey("donors.id"), nullable=True, index=True)

    # Relationships
    journal = relationship("Journal", back_populates="lines")
    account = relationship("Account")


class JournalEvent(Base):
    """Append-only log of journal state changes.

    ``journal_id`` is deliberately not a foreign key: events outlive deleted
    draft journals.
    """

    __tablename__ = "journal_events"

    id = Column(Integer, primary_key=True)
    journal_id = Column(Integer, nullable=False, index=True)
    journal_number = Column(String(50), nullable=False)
    transition = Column(String(20), nullable=False)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=True)
    actor = Column(String(100), nullable=False)
    occurred_at = Column(DateTime, default=_utcnow, nullable=False)
    notes = Column(Text, nullable=True)
    snapshot = Column(JSON, nullable=False, default=dict)


class SequenceCounter(Base):
    """Per-key counter backing journal number allocation."""

    __tablename__ = "sequence_counters"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    current_value = Column(BigInteger, nullable=False, default=0)


class Budget(Base):
    """Budget allocation model."""

    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True)
    fiscal_year_id = Column(Integer, ForeignKey("fiscal_years.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    fund_id = Column(Integer, ForeignKey("funds.id"), nullable=True)
    program_id = Column(Integer, ForeignKey("programs.id"), nullable=True)
    period = Column(String(7), nullable=False)
    amount = Column(MONEY, nullable=False, default=0)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    fiscal_year = relationship("FiscalYear")
    account = relationship("Account")


DIMENSION_MODELS = {
    "fund": Fund,
    "program": Program,
    "donor": Donor,
}


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
