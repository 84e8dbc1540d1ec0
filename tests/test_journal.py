"""Tests for JournalService posting, editing and reversal."""

import threading
import pytest
from datetime import date, timedelta
from decimal import Decimal

from ledgerkit.domain.entities import JournalLineInput, JournalStatus
from ledgerkit.domain.errors import (
    ConflictError,
    LockedPeriodError,
    NotFoundError,
    ValidationError,
)
from ledgerkit.domain.journal import format_reference


def _lines(debit_account, credit_account, debit="100", credit=None):
    return [
        JournalLineInput(account_id=debit_account, debit_amount=Decimal(debit)),
        JournalLineInput(account_id=credit_account, credit_amount=Decimal(credit or debit)),
    ]


def test_format_reference():
    assert format_reference(date(2025, 1, 15), 7) == "JE-20250115-0007"


def test_post_balanced_entry_updates_balances(journal_service, account_service, balance_service, chart):
    """Debit cash and credit revenue; both move by the amount and the ledger stays balanced."""
    entry = journal_service.post(
        date=date(2025, 1, 15),
        description="Cash sale",
        lines=_lines(chart["1000"], chart["4000"], "1000"),
        actor="tester",
    )

    assert entry.status == JournalStatus.POSTED
    assert entry.reference == "JE-20250115-0001"
    assert entry.created_by == "tester"
    assert len(entry.lines) == 2
    assert account_service.get_balance(chart["1000"]) == Decimal("1000")
    assert account_service.get_balance(chart["4000"]) == Decimal("1000")
    assert balance_service.trial_balance().difference == Decimal("0")


def test_references_increment_per_day(post_entry, chart):
    first = post_entry(chart["1000"], chart["4000"], "10")
    second = post_entry(chart["1000"], chart["4000"], "20")
    other_day = post_entry(chart["1000"], chart["4000"], "30", entry_date=date(2025, 1, 16))

    assert first.reference == "JE-20250115-0001"
    assert second.reference == "JE-20250115-0002"
    assert other_day.reference == "JE-20250116-0001"


def test_imbalanced_entry_is_rejected(journal_service, chart, temp_db):
    with pytest.raises(ValidationError, match="must equal total credits"):
        journal_service.post(
            date=date(2025, 1, 15),
            description="Broken",
            lines=_lines(chart["1000"], chart["4000"], debit="500", credit="400"),
            actor="tester",
        )

    assert journal_service.list_entries() == []
    assert temp_db.list_ledger_lines() == []


def test_rounding_within_a_cent_is_accepted(journal_service, chart):
    entry = journal_service.post(
        date=date(2025, 1, 15),
        description="Rounded split",
        lines=[
            JournalLineInput(account_id=chart["6000"], debit_amount=Decimal("33.33")),
            JournalLineInput(account_id=chart["6100"], debit_amount=Decimal("33.33")),
            JournalLineInput(account_id=chart["6000"], debit_amount=Decimal("33.33")),
            JournalLineInput(account_id=chart["1000"], credit_amount=Decimal("100.00")),
        ],
        actor="tester",
    )
    assert len(entry.lines) == 4


@pytest.mark.parametrize(
    "lines_factory,message",
    [
        (lambda c: [JournalLineInput(account_id=c["1000"], debit_amount=Decimal("5"))], "at least two lines"),
        (
            lambda c: [
                JournalLineInput(account_id=c["1000"], debit_amount=Decimal("-5")),
                JournalLineInput(account_id=c["4000"], credit_amount=Decimal("-5")),
            ],
            "cannot be negative",
        ),
        (
            lambda c: [
                JournalLineInput(account_id=c["1000"]),
                JournalLineInput(account_id=c["4000"]),
            ],
            "debit or credit amount is required",
        ),
        (
            lambda c: [
                JournalLineInput(account_id=999, debit_amount=Decimal("5")),
                JournalLineInput(account_id=c["4000"], credit_amount=Decimal("5")),
            ],
            "not found",
        ),
    ],
)
def test_invalid_lines_are_rejected(journal_service, chart, lines_factory, message):
    with pytest.raises(ValidationError, match=message):
        journal_service.post(
            date=date(2025, 1, 15),
            description="Invalid",
            lines=lines_factory(chart),
            actor="tester",
        )
    assert journal_service.list_entries() == []


def test_missing_description_is_rejected(journal_service, chart):
    with pytest.raises(ValidationError, match="description is required"):
        journal_service.post(
            date=date(2025, 1, 15),
            description="   ",
            lines=_lines(chart["1000"], chart["4000"]),
            actor="tester",
        )


def test_inactive_account_rejects_postings(journal_service, account_service, chart):
    account_service.set_active(chart["6100"], False)

    with pytest.raises(ValidationError, match="inactive"):
        journal_service.post(
            date=date(2025, 1, 15),
            description="Fee",
            lines=_lines(chart["6100"], chart["1000"], "5"),
            actor="tester",
        )


def test_delete_draft_reverses_balance(journal_service, account_service, post_entry, chart):
    """Deleting a draft that added 200 to cash brings cash back to its prior value."""
    post_entry(chart["1000"], chart["3000"], "1000")
    draft = post_entry(chart["1000"], chart["4000"], "200", status=JournalStatus.DRAFT)
    assert account_service.get_balance(chart["1000"]) == Decimal("1200")

    journal_service.delete_entry(draft.id)

    assert account_service.get_balance(chart["1000"]) == Decimal("1000")
    assert account_service.get_balance(chart["4000"]) == Decimal("0")
    assert journal_service.get_entry(draft.id) is None


def test_posted_entries_are_immutable(journal_service, post_entry, chart):
    entry = post_entry(chart["1000"], chart["4000"], "100")

    with pytest.raises(ConflictError, match="reverse it instead"):
        journal_service.delete_entry(entry.id)
    with pytest.raises(ConflictError, match="reverse it instead"):
        journal_service.update_entry(
            entry.id, entry.date, "Changed", _lines(chart["1000"], chart["4000"]), "tester"
        )


def test_update_draft_replaces_lines(journal_service, account_service, post_entry, chart):
    draft = post_entry(chart["6000"], chart["1000"], "1200", status=JournalStatus.DRAFT)

    updated = journal_service.update_entry(
        draft.id,
        date=date(2025, 1, 20),
        description="Rent (corrected)",
        lines=_lines(chart["6000"], chart["1100"], "1250"),
        actor="tester",
    )

    assert updated.reference == draft.reference
    assert updated.date == date(2025, 1, 20)
    assert updated.description == "Rent (corrected)"
    assert {line.account_id for line in updated.lines} == {chart["6000"], chart["1100"]}
    assert all(line.date == date(2025, 1, 20) for line in updated.lines)
    assert account_service.get_balance(chart["1000"]) == Decimal("0")
    assert account_service.get_balance(chart["1100"]) == Decimal("-1250")
    assert account_service.get_balance(chart["6000"]) == Decimal("1250")


def test_update_draft_validates_new_lines(journal_service, account_service, post_entry, chart):
    draft = post_entry(chart["6000"], chart["1000"], "50", status=JournalStatus.DRAFT)

    with pytest.raises(ValidationError):
        journal_service.update_entry(
            draft.id,
            date=draft.date,
            description=draft.description,
            lines=_lines(chart["6000"], chart["1000"], debit="60", credit="50"),
            actor="tester",
        )

    assert journal_service.get_entry(draft.id).debit_total == Decimal("50")
    assert account_service.get_balance(chart["6000"]) == Decimal("50")


def test_post_draft(journal_service, post_entry, chart):
    draft = post_entry(chart["1000"], chart["4000"], "75", status=JournalStatus.DRAFT)

    posted = journal_service.post_draft(draft.id)

    assert posted.status == JournalStatus.POSTED
    with pytest.raises(ConflictError, match="already posted"):
        journal_service.post_draft(draft.id)


def test_reverse_entry(journal_service, account_service, balance_service, post_entry, chart):
    original = post_entry(chart["1000"], chart["4000"], "400")

    reversal = journal_service.reverse_entry(original.id, actor="auditor", date=date(2025, 2, 1))

    assert reversal.reversal_of_id == original.id
    assert reversal.description == f"Reversal of {original.reference}"
    assert reversal.created_by == "auditor"
    assert reversal.debit_total == original.debit_total
    assert account_service.get_balance(chart["1000"]) == Decimal("0")
    assert account_service.get_balance(chart["4000"]) == Decimal("0")
    assert balance_service.trial_balance().difference == Decimal("0")


def test_reverse_entry_defaults_to_today(journal_service, post_entry, chart):
    original = post_entry(chart["1000"], chart["4000"], "10")
    reversal = journal_service.reverse_entry(original.id, actor="tester")
    assert reversal.date == date.today()


def test_entry_can_only_be_reversed_once(journal_service, post_entry, chart):
    original = post_entry(chart["1000"], chart["4000"], "10")
    journal_service.reverse_entry(original.id, actor="tester")

    with pytest.raises(ConflictError, match="already reversed"):
        journal_service.reverse_entry(original.id, actor="tester")


def test_drafts_cannot_be_reversed(journal_service, post_entry, chart):
    draft = post_entry(chart["1000"], chart["4000"], "10", status=JournalStatus.DRAFT)
    with pytest.raises(ConflictError, match="draft"):
        journal_service.reverse_entry(draft.id, actor="tester")


def test_missing_entry(journal_service):
    with pytest.raises(NotFoundError):
        journal_service.require_entry(999)
    with pytest.raises(NotFoundError):
        journal_service.reverse_entry(999, actor="tester")
    assert journal_service.get_entry(999) is None


def test_locked_period_rejects_postings(journal_service, workflow, chart):
    workflow.lock_reconciliation(chart["1100"], date(2025, 1, 31), actor="tester")

    with pytest.raises(LockedPeriodError, match="locked through 2025-01-31"):
        journal_service.post(
            date=date(2025, 1, 31),
            description="Late fee",
            lines=_lines(chart["6100"], chart["1100"], "5"),
            actor="tester",
        )

    entry = journal_service.post(
        date=date(2025, 2, 1),
        description="February fee",
        lines=_lines(chart["6100"], chart["1100"], "5"),
        actor="tester",
    )
    assert entry.date == date(2025, 2, 1)


def test_locked_period_blocks_draft_changes(journal_service, workflow, post_entry, chart):
    draft = post_entry(chart["1100"], chart["4000"], "80", status=JournalStatus.DRAFT)
    workflow.lock_reconciliation(chart["1100"], date(2025, 1, 31), actor="tester")

    with pytest.raises(LockedPeriodError):
        journal_service.delete_entry(draft.id)
    with pytest.raises(LockedPeriodError):
        journal_service.post_draft(draft.id)


def test_list_entries_filters(journal_service, post_entry, chart):
    post_entry(chart["1000"], chart["4000"], "10", entry_date=date(2025, 1, 5))
    rent = post_entry(chart["6000"], chart["1100"], "20", entry_date=date(2025, 1, 10))
    draft = post_entry(chart["1000"], chart["4000"], "30", entry_date=date(2025, 1, 20), status=JournalStatus.DRAFT)

    assert [e.id for e in journal_service.list_entries(account_id=chart["1100"])] == [rent.id]
    assert [e.id for e in journal_service.list_entries(status=JournalStatus.DRAFT)] == [draft.id]
    in_range = journal_service.list_entries(start_date=date(2025, 1, 6), end_date=date(2025, 1, 31))
    assert [e.id for e in in_range] == [draft.id, rent.id]


def test_concurrent_postings_keep_balance_consistent(journal_service, account_service, chart):
    """Postings from several threads to the same accounts all land in the balance."""
    errors = []

    def worker():
        try:
            for _ in range(5):
                journal_service.post(
                    date=date(2025, 1, 15),
                    description="Concurrent sale",
                    lines=_lines(chart["1000"], chart["4000"], "10"),
                    actor="tester",
                )
        except Exception as exc:  # surfaced via the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert account_service.get_balance(chart["1000"]) == Decimal("200")
    references = [entry.reference for entry in journal_service.list_entries()]
    assert len(set(references)) == 20
