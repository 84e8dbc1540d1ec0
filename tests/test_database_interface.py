"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from ledgerkit.database.factories import create_database
from ledgerkit.domain import entities
from ledgerkit.domain.entities import AccountType, JournalStatus
from ledgerkit.domain.errors import NotFoundError


def _entry_with_lines(db, account_a, account_b, amount="100.00", entry_date=date(2025, 1, 15)):
    entry_id = db.create_journal_entry(
        reference=f"JE-{entry_date:%Y%m%d}-{db.next_reference_number(entry_date):04d}",
        date=entry_date,
        description="Entry",
        status=JournalStatus.POSTED,
        created_by="tester",
    )
    db.add_ledger_line(entry_id, account_a, entry_date, "Entry", Decimal(amount), Decimal("0"))
    db.add_ledger_line(entry_id, account_b, entry_date, "Entry", Decimal("0"), Decimal(amount))
    return entry_id


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_account_returns_domain_model(self, temp_db):
        """Test that get_account returns a domain Account entity."""
        account_id = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)

        account = temp_db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.id == account_id
        assert account.code == "1000"
        assert account.is_active is True
        assert account.current_balance == Decimal("0")
        assert isinstance(account.created_at, datetime)

    def test_account_codes_are_scoped_by_owner(self, temp_db):
        first = temp_db.create_account("acme", "1000", "Cash", AccountType.ASSET)
        second = temp_db.create_account("globex", "1000", "Cash", AccountType.ASSET)

        assert temp_db.get_account_by_code("1000", "acme").id == first
        assert temp_db.get_account_by_code("1000", "globex").id == second
        assert temp_db.get_account_by_code("1000", "initech") is None
        assert len(temp_db.list_accounts(owner="acme")) == 1

    def test_list_accounts_filters(self, temp_db):
        temp_db.create_account("default", "4000", "Revenue", AccountType.REVENUE)
        cash = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)
        temp_db.update_account(cash, is_active=False)

        assert [a.code for a in temp_db.list_accounts()] == ["1000", "4000"]
        assert [a.code for a in temp_db.list_accounts(active_only=True)] == ["4000"]
        assert [a.code for a in temp_db.list_accounts(account_type=AccountType.ASSET)] == ["1000"]

    def test_reference_counter_is_per_day(self, temp_db):
        assert temp_db.next_reference_number(date(2025, 1, 15)) == 1
        assert temp_db.next_reference_number(date(2025, 1, 15)) == 2
        assert temp_db.next_reference_number(date(2025, 1, 16)) == 1

    def test_journal_entry_round_trip(self, temp_db):
        cash = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)
        revenue = temp_db.create_account("default", "4000", "Revenue", AccountType.REVENUE)

        entry_id = _entry_with_lines(temp_db, cash, revenue)
        entry = temp_db.get_journal_entry(entry_id)

        assert isinstance(entry, entities.JournalEntry)
        assert entry.reference == "JE-20250115-0001"
        assert [line.account_id for line in entry.lines] == [cash, revenue]
        assert temp_db.get_account_line_count(cash) == 1

    def test_transaction_rolls_back_on_error(self, temp_db):
        cash = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)
        revenue = temp_db.create_account("default", "4000", "Revenue", AccountType.REVENUE)

        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                _entry_with_lines(temp_db, cash, revenue)
                raise RuntimeError("boom")

        assert temp_db.list_journal_entries() == []
        assert temp_db.list_ledger_lines() == []

    def test_nested_transaction_joins_outer(self, temp_db):
        cash = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)
        revenue = temp_db.create_account("default", "4000", "Revenue", AccountType.REVENUE)

        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                with temp_db.transaction():
                    _entry_with_lines(temp_db, cash, revenue)
                raise RuntimeError("outer fails after inner block")

        assert temp_db.list_journal_entries() == []

    def test_delete_ledger_lines(self, temp_db):
        cash = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)
        revenue = temp_db.create_account("default", "4000", "Revenue", AccountType.REVENUE)
        entry_id = _entry_with_lines(temp_db, cash, revenue)

        temp_db.delete_ledger_lines(entry_id)

        assert temp_db.get_journal_entry(entry_id).lines == ()
        assert temp_db.list_ledger_lines() == []

    def test_list_ledger_lines_orders_by_date_then_id(self, temp_db):
        cash = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)
        revenue = temp_db.create_account("default", "4000", "Revenue", AccountType.REVENUE)
        _entry_with_lines(temp_db, cash, revenue, "30", date(2025, 1, 20))
        _entry_with_lines(temp_db, cash, revenue, "10", date(2025, 1, 10))
        _entry_with_lines(temp_db, cash, revenue, "20", date(2025, 1, 10))

        lines = temp_db.list_ledger_lines(account_id=cash)

        assert [line.debit_amount for line in lines] == [Decimal("10"), Decimal("20"), Decimal("30")]

    def test_stale_flags(self, temp_db):
        cash = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)

        temp_db.mark_accounts_stale([cash])
        assert temp_db.list_stale_account_ids() == [cash]

        temp_db.set_account_balance(cash, Decimal("12.50"))
        assert temp_db.list_stale_account_ids() == []
        assert temp_db.get_account(cash).current_balance == Decimal("12.50")

    def test_latest_period_lock(self, temp_db):
        cash = temp_db.create_account("default", "1000", "Cash", AccountType.ASSET)
        assert temp_db.get_latest_period_lock(cash) is None

        temp_db.create_period_lock(cash, date(2025, 2, 28), "tester")
        temp_db.create_period_lock(cash, date(2025, 1, 31), "tester")

        lock = temp_db.get_latest_period_lock(cash)
        assert isinstance(lock, entities.PeriodLock)
        assert lock.period_end == date(2025, 2, 28)

    def test_update_missing_account_raises(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.update_account(999, name="Ghost")

    def test_create_database_accepts_url(self, tmp_path):
        db = create_database(f"sqlite:///{tmp_path / 'other.db'}")
        account_id = db.create_account("default", "1000", "Cash", AccountType.ASSET)
        assert db.get_account(account_id).name == "Cash"
        db.disconnect()
