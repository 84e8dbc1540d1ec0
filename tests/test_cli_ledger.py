"""Tests for ledger and trial balance commands."""

from datetime import date
from decimal import Decimal

from ledgerkit.cli.main import cli


def _invoke(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


def test_account_ledger_running_balance(cli_runner, temp_db, chart, post_entry):
    post_entry(chart["1000"], chart["4000"], "100", entry_date=date(2025, 1, 10), description="Sale")
    post_entry(chart["6000"], chart["1000"], "30", entry_date=date(2025, 1, 12), description="Rent")

    result = _invoke(cli_runner, temp_db, "ledger", "account", "1000")

    assert result.exit_code == 0
    assert "Ledger for 1000 Cash (asset)" in result.output
    assert "Sale" in result.output
    assert "70.00" in result.output
    assert "Current balance: 70.00" in result.output


def test_account_ledger_date_range(cli_runner, temp_db, chart, post_entry):
    post_entry(chart["1000"], chart["4000"], "10", entry_date=date(2025, 1, 5), description="January")
    post_entry(chart["1000"], chart["4000"], "20", entry_date=date(2025, 2, 5), description="February")

    result = _invoke(
        cli_runner, temp_db, "ledger", "account", "1000", "--start-date", "2025-02-01"
    )

    assert "February" in result.output
    assert "January" not in result.output


def test_account_ledger_empty(cli_runner, temp_db, chart):
    result = _invoke(cli_runner, temp_db, "ledger", "account", "2000")

    assert result.exit_code == 0
    assert "No ledger lines found" in result.output


def test_general_ledger(cli_runner, temp_db, chart, post_entry):
    post_entry(chart["1000"], chart["4000"], "10", description="Coffee sale")
    post_entry(chart["6000"], chart["1100"], "20", description="January rent")

    everything = _invoke(cli_runner, temp_db, "ledger", "general")
    assert everything.exit_code == 0
    assert "Coffee sale" in everything.output
    assert "January rent" in everything.output

    rent = _invoke(cli_runner, temp_db, "ledger", "general", "--description", "rent")
    assert "Coffee sale" not in rent.output
    assert "6000" in rent.output
    assert "1100" in rent.output


def test_trial_balance(cli_runner, temp_db, chart, post_entry):
    post_entry(chart["1000"], chart["3000"], "5000", entry_date=date(2025, 1, 1))
    post_entry(chart["6000"], chart["1000"], "1200", entry_date=date(2025, 1, 15))

    result = _invoke(cli_runner, temp_db, "ledger", "trial-balance")

    assert result.exit_code == 0
    assert "Owner Equity" in result.output
    assert "Accounts Payable" not in result.output
    total_line = next(line for line in result.output.splitlines() if line.startswith("Total"))
    assert total_line.split()[1:] == ["5,000.00", "5,000.00"]
    difference_line = next(line for line in result.output.splitlines() if line.startswith("Difference"))
    assert difference_line.split()[1] == "0.00"


def test_trial_balance_as_of_and_zero(cli_runner, temp_db, chart, post_entry):
    post_entry(chart["1000"], chart["4000"], "100", entry_date=date(2025, 1, 10))
    post_entry(chart["1000"], chart["4000"], "50", entry_date=date(2025, 2, 10))

    result = _invoke(
        cli_runner, temp_db, "ledger", "trial-balance", "--as-of", "2025-01-31", "--include-zero"
    )

    assert "Trial Balance as of 2025-01-31" in result.output
    assert "Accounts Payable" in result.output
    assert "150.00" not in result.output


def test_recompute_requires_a_target(cli_runner, temp_db, chart):
    result = _invoke(cli_runner, temp_db, "ledger", "recompute")

    assert result.exit_code == 1
    assert "Specify either ACCOUNT or --all" in result.output


def test_recompute_repairs_balance(cli_runner, temp_db, chart, post_entry):
    post_entry(chart["1000"], chart["4000"], "100")
    temp_db.set_account_balance(chart["1000"], Decimal("999"))

    single = _invoke(cli_runner, temp_db, "ledger", "recompute", "1000")
    assert single.exit_code == 0
    assert "Recomputed 1 account" in single.output

    everything = _invoke(cli_runner, temp_db, "ledger", "recompute", "--all")
    assert "Recomputed 7 accounts" in everything.output

    balance = _invoke(cli_runner, temp_db, "account", "balance", "1000")
    assert "1000 Cash: 100.00" in balance.output
