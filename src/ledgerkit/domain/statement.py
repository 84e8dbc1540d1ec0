"""Loading of normalized bank statements.

Statement parsing (PDF, bank-specific exports) happens upstream. What
arrives here is already normalized: one record per transaction with
``date``, ``description``, ``amount``, ``type`` and an optional
``reference``, as a JSON array or a CSV file with those column names.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from ledgerkit.domain.entities import StatementTransaction, StatementType
from ledgerkit.domain.errors import ValidationError
from ledgerkit.utils.amount_parser import parse_amount
from ledgerkit.utils.date_parser import parse_date

log = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"date", "amount"}


def statement_from_dicts(rows: Iterable[Mapping[str, Any]]) -> list[StatementTransaction]:
    """Convert decoded statement records into StatementTransactions.

    A record without ``type`` takes its direction from the amount's sign:
    negative amounts are debits (money out), everything else is a credit.

    Args:
        rows: Records with date, description, amount, type and optional reference

    Returns:
        Statement transactions in input order

    Raises:
        ValidationError: If a record is missing fields or has invalid values
    """
    transactions = []
    for row_num, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            raise ValidationError(f"Row {row_num}: expected an object, got {type(row).__name__}")
        transactions.append(_parse_row(row_num, row))
    return transactions


def load_statement(path: str | Path) -> list[StatementTransaction]:
    """Load a normalized statement from a JSON or CSV file.

    Args:
        path: Path to a .json or .csv file

    Returns:
        Statement transactions in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the file or any record is invalid
    """
    statement_path = Path(path)
    if not statement_path.exists():
        raise FileNotFoundError(f"Statement file not found: {path}")

    suffix = statement_path.suffix.lower()
    if suffix == ".json":
        rows = _read_json(statement_path)
    elif suffix == ".csv":
        rows = _read_csv(statement_path)
    else:
        raise ValidationError(
            f"Unsupported statement format '{suffix or statement_path.name}'; use .json or .csv"
        )

    transactions = statement_from_dicts(rows)
    log.info("Loaded %d statement transactions from %s", len(transactions), statement_path)
    return transactions


def _read_json(path: Path) -> list:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Statement file is not valid JSON: {e}")

    if isinstance(data, Mapping) and "statementTransactions" in data:
        data = data["statementTransactions"]
    if not isinstance(data, list):
        raise ValidationError("Statement JSON must be a list of transactions")
    return data


def _read_csv(path: Path) -> list[dict[str, str]]:
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValidationError("CSV file has no columns")

        columns = {name.strip().lower() for name in reader.fieldnames if name}
        missing = REQUIRED_COLUMNS - columns
        if missing:
            raise ValidationError(f"CSV file missing required columns: {', '.join(sorted(missing))}")

        return [
            {(key or "").strip().lower(): value for key, value in row.items()}
            for row in reader
        ]


def _parse_row(row_num: int, row: Mapping[str, Any]) -> StatementTransaction:
    raw_date = row.get("date")
    if raw_date is None or str(raw_date).strip() == "":
        raise ValidationError(f"Row {row_num}: Missing date")
    raw_amount = row.get("amount")
    if raw_amount is None or str(raw_amount).strip() == "":
        raise ValidationError(f"Row {row_num}: Missing amount")

    try:
        txn_date = parse_date(str(raw_date))
    except ValueError as e:
        raise ValidationError(f"Row {row_num}: {e}")
    try:
        amount = parse_amount(raw_amount)
    except ValueError as e:
        raise ValidationError(f"Row {row_num}: {e}")

    raw_type = row.get("type")
    if raw_type is None or str(raw_type).strip() == "":
        txn_type = StatementType.DEBIT if amount < 0 else StatementType.CREDIT
    else:
        try:
            txn_type = StatementType(str(raw_type).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Row {row_num}: type must be 'credit' or 'debit', got '{raw_type}'"
            )
        if amount < 0:
            raise ValidationError(
                f"Row {row_num}: amount cannot be negative when type is given"
            )

    reference = row.get("reference")
    return StatementTransaction(
        date=txn_date,
        description=str(row.get("description") or "").strip(),
        amount=abs(amount),
        type=txn_type,
        reference=str(reference).strip() if reference not in (None, "") else None,
    )
