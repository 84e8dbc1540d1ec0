"""Shared pytest fixtures for ledgerkit tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.entities import JournalLineInput, JournalStatus
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.workflow import ReconciliationWorkflow
from ledgerkit.logging_config import reset_logging

CHART_OF_ACCOUNTS = [
    ("1000", "Cash", "asset"),
    ("1100", "Bank", "asset"),
    ("2000", "Accounts Payable", "liability"),
    ("3000", "Owner Equity", "equity"),
    ("4000", "Sales Revenue", "revenue"),
    ("6000", "Rent Expense", "expense"),
    ("6100", "Bank Fees", "expense"),
]


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


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers the CLI installs so tests don't leak them into each other."""
    yield
    reset_logging()


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def journal_service(temp_db):
    """Create a JournalService with a temporary database."""
    return JournalService(temp_db)


@pytest.fixture
def balance_service(temp_db):
    """Create a BalanceService with a temporary database."""
    return BalanceService(temp_db)


@pytest.fixture
def workflow(temp_db):
    """Create a ReconciliationWorkflow with a temporary database."""
    return ReconciliationWorkflow(temp_db)


@pytest.fixture
def chart(account_service):
    """Create a small chart of accounts and return account IDs by code."""
    return {
        code: account_service.create_account(code=code, name=name, account_type=account_type)
        for code, name, account_type in CHART_OF_ACCOUNTS
    }


@pytest.fixture
def post_entry(journal_service):
    """Return a helper posting a two-line entry debiting one account and crediting another."""

    def _post(
        debit_account_id,
        credit_account_id,
        amount,
        entry_date=date(2025, 1, 15),
        description="Test entry",
        status=JournalStatus.POSTED,
    ):
        amount = Decimal(str(amount))
        return journal_service.post(
            date=entry_date,
            description=description,
            lines=[
                JournalLineInput(account_id=debit_account_id, debit_amount=amount),
                JournalLineInput(account_id=credit_account_id, credit_amount=amount),
            ],
            actor="tester",
            status=status,
        )

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
