# reconciler/core/parser.py

"""
Statement parsing pipeline.

Reader -> layout recognition -> field normalization -> transaction building.
``parse_statement_file`` never raises for a bad file; failures come back
as an unsuccessful ParseResult with a stable error code. Anything the
readers don't anticipate is reported as ``parse_failed``.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from reconciler.config import get_settings
from reconciler.core.errors import NoTransactionsError, StatementParseError
from reconciler.core.formats import detect_layout, validate_mapping
from reconciler.core.normalizers import is_blank, normalize_amount, normalize_date
from reconciler.core.reader import read_table
from reconciler.models import ColumnMapping, ParsedTransaction, ParseResult, Polarity

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class BuildResult:
    """Transactions built from a set of rows, plus bookkeeping."""

    transactions: list[ParsedTransaction] = field(default_factory=list)
    rows_read: int = 0
    rows_skipped: int = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def parse_statement_file(
    content: bytes,
    filename: str,
    column_mapping: Optional[ColumnMapping] = None,
) -> ParseResult:
    """
    Parse a bank statement file (CSV, TXT or Excel).

    A caller-supplied column mapping skips layout detection.
    """
    headers: Optional[list[str]] = None
    mapping: Optional[ColumnMapping] = column_mapping
    detected_format: Optional[str] = None

    try:
        table = read_table(content, filename)
        headers = table.headers

        if column_mapping is not None:
            mapping = validate_mapping(headers, column_mapping)
        else:
            detected = detect_layout(headers)
            mapping = detected.mapping
            detected_format = detected.name

        built = build_transactions(table.rows, mapping, day_first=get_settings().day_first)

        if not built.transactions:
            raise NoTransactionsError("No valid transactions found in file", headers=headers)

    except StatementParseError as e:
        logger.info(f"Could not parse statement {filename}: {e.code} ({e.message})")
        return ParseResult(
            success=False,
            headers=e.headers if e.headers is not None else headers,
            column_mapping=mapping,
            detected_format=detected_format,
            error=e.code,
            message=e.message,
        )
    except Exception as e:
        logger.exception(f"Unexpected error parsing statement {filename}")
        return ParseResult(
            success=False,
            headers=headers,
            column_mapping=mapping,
            detected_format=detected_format,
            error=StatementParseError.code,
            message=f"Could not parse file: {e}",
        )

    logger.info(
        f"Parsed {len(built.transactions)} transactions from {filename} "
        f"({built.rows_skipped} of {built.rows_read} rows skipped, format: {detected_format or 'manual'})"
    )

    return ParseResult(
        success=True,
        transactions=built.transactions,
        detected_format=detected_format,
        headers=headers,
        column_mapping=mapping,
        start_date=built.start_date,
        end_date=built.end_date,
        rows_read=built.rows_read,
        rows_skipped=built.rows_skipped,
    )


def build_transactions(
    rows: list[dict[str, Any]],
    mapping: ColumnMapping,
    day_first: bool = False,
) -> BuildResult:
    """
    Build date-sorted transactions from raw rows.

    Rows with no date/description, an unreadable date or amount, or (for
    debit/credit layouts) no non-zero value are skipped and counted.
    """
    result = BuildResult(rows_read=len(rows))

    for index, row in enumerate(rows):
        transaction = _build_row(row, mapping, day_first)
        if transaction is None:
            result.rows_skipped += 1
            logger.debug(f"Skipped row {index + 2}")
            continue

        result.transactions.append(transaction)

        if result.start_date is None or transaction.transaction_date < result.start_date:
            result.start_date = transaction.transaction_date
        if result.end_date is None or transaction.transaction_date > result.end_date:
            result.end_date = transaction.transaction_date

    # sort() is stable, so same-day rows keep file order
    result.transactions.sort(key=lambda t: t.transaction_date)
    return result


def _build_row(
    row: dict[str, Any],
    mapping: ColumnMapping,
    day_first: bool,
) -> Optional[ParsedTransaction]:
    date_value = row.get(mapping.date_column)
    description_value = row.get(mapping.description_column)

    if is_blank(date_value) or is_blank(description_value):
        return None

    transaction_date = normalize_date(date_value, day_first=day_first)
    if transaction_date is None:
        return None

    value = _signed_value(row, mapping)
    if value is None:
        return None
    amount, polarity = value

    return ParsedTransaction(
        transaction_date=transaction_date,
        description=str(description_value).strip(),
        amount=amount,
        polarity=polarity,
    )


def _signed_value(row: dict[str, Any], mapping: ColumnMapping) -> Optional[tuple[Decimal, Polarity]]:
    """Magnitude and polarity of a row, or None when it has no usable value."""
    if mapping.amount_column:
        amount = normalize_amount(row.get(mapping.amount_column))
        if amount is None:
            return None
        return abs(amount), ("debit" if amount < ZERO else "credit")

    debit = normalize_amount(row.get(mapping.debit_column))
    credit = normalize_amount(row.get(mapping.credit_column))

    if debit is not None and debit != ZERO:
        return abs(debit), "debit"
    if credit is not None and credit != ZERO:
        return abs(credit), "credit"
    return None
