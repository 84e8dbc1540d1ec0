"""SQLAlchemy models for ledgerkit database."""

from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

AMOUNT = Numeric(14, 2)


class Account(Base):
    """Chart-of-accounts model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    owner = Column(String, nullable=False, default="default")
    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    current_balance = Column(AMOUNT, default=Decimal("0"), nullable=False)
    balance_stale = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("owner", "code", name="uq_account_owner_code"),)

    # Relationships
    ledger_lines = relationship("LedgerLine", back_populates="account")


class JournalEntry(Base):
    """Journal entry model."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    reference = Column(String, unique=True, nullable=False)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    status = Column(String, nullable=False)
    created_by = Column(String, nullable=False)
    reversal_of_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    lines = relationship(
        "LedgerLine",
        back_populates="journal",
        cascade="all, delete-orphan",
        order_by="LedgerLine.id",
    )


class LedgerLine(Base):
    """Ledger line model; one debit/credit row of a journal entry."""

    __tablename__ = "ledger_lines"

    id = Column(Integer, primary_key=True)
    journal_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=True)
    debit_amount = Column(AMOUNT, default=Decimal("0"), nullable=False)
    credit_amount = Column(AMOUNT, default=Decimal("0"), nullable=False)
    balance = Column(AMOUNT, default=Decimal("0"), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (Index("ix_ledger_lines_account_date", "account_id", "date", "id"),)

    # Relationships
    journal = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account", back_populates="ledger_lines")


class ReferenceCounter(Base):
    """Per-day counter backing JE-YYYYMMDD-NNNN journal references."""

    __tablename__ = "reference_counters"

    day = Column(String, primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


class PeriodLock(Base):
    """Locked reconciliation period for an account."""

    __tablename__ = "period_locks"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    period_end = Column(Date, nullable=False)
    locked_by = Column(String, nullable=False)
    locked_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class ReconciliationRun(Base):
    """Reconciliation run model."""

    __tablename__ = "reconciliation_runs"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    status = Column(String, nullable=False)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    completed_at = Column(DateTime, nullable=True)
    overridden = Column(Boolean, default=False, nullable=False)
    bank_balance = Column(AMOUNT, default=Decimal("0"), nullable=False)
    ledger_balance = Column(AMOUNT, default=Decimal("0"), nullable=False)

    # Relationships
    items = relationship(
        "ReconciliationRunItem",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="ReconciliationRunItem.position",
    )


class ReconciliationRunItem(Base):
    """Snapshot of one matcher item inside a reconciliation run."""

    __tablename__ = "reconciliation_run_items"

    id = Column(Integer, primary_key=True)
    run_id = Column(Integer, ForeignKey("reconciliation_runs.id"), nullable=False)
    position = Column(Integer, nullable=False)
    statement_date = Column(Date, nullable=False)
    statement_description = Column(String, nullable=False)
    statement_amount = Column(AMOUNT, nullable=False)
    statement_type = Column(String, nullable=False)
    statement_reference = Column(String, nullable=True)
    ledger_line_id = Column(Integer, ForeignKey("ledger_lines.id", ondelete="SET NULL"), nullable=True)
    match_type = Column(String, nullable=False)
    confidence = Column(String, nullable=False)
    needs_review = Column(Boolean, default=False, nullable=False)
    needs_creation = Column(Boolean, default=False, nullable=False)
    amount_delta = Column(AMOUNT, nullable=True)
    date_delta_days = Column(Integer, nullable=True)
    resolution = Column(String, nullable=False, default="pending")
    journal_id = Column(Integer, ForeignKey("journal_entries.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    run = relationship("ReconciliationRun", back_populates="items")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
