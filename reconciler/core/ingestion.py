# reconciler/core/ingestion.py

"""
Statement ingestion: parse an upload and record it with its lifecycle.

pending -> processing -> completed | failed
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from reconciler.core.parser import parse_statement_file
from reconciler.models import ColumnMapping, ParseResult, Statement, Transaction
from reconciler.store import ReconciliationStore

logger = logging.getLogger(__name__)

# Error recorded when storing the parsed transactions fails
IMPORT_FAILED = "import_failed"


def ingest_statement(
    store: ReconciliationStore,
    content: bytes,
    filename: str,
    account_label: Optional[str] = None,
    column_mapping: Optional[ColumnMapping] = None,
) -> tuple[Statement, ParseResult]:
    """Parse a statement file and persist the statement and its transactions."""
    statement = store.create_statement(Statement(
        id=str(uuid.uuid4()),
        original_filename=filename,
        account_label=account_label or None,
        uploaded_at=datetime.now(timezone.utc),
        status="pending",
    ))
    statement = store.update_statement(statement.id, status="processing")

    try:
        result = parse_statement_file(content, filename, column_mapping)
        if result.success:
            saved = store.add_transactions(_to_transactions(statement.id, result))
    except Exception:
        # The statement must not stay "processing" when the import dies
        logger.exception(f"Statement {statement.id} ({filename}) could not be imported")
        store.update_statement(statement.id, status="failed", error=IMPORT_FAILED)
        raise

    if not result.success:
        statement = store.update_statement(
            statement.id,
            status="failed",
            error=result.error,
            column_mapping=result.column_mapping,
            detected_format=result.detected_format,
        )
        logger.info(f"Statement {statement.id} ({filename}) failed: {result.error}")
        return statement, result

    statement = store.update_statement(
        statement.id,
        status="completed",
        start_date=result.start_date,
        end_date=result.end_date,
        detected_format=result.detected_format,
        column_mapping=result.column_mapping,
        transaction_count=saved,
    )
    logger.info(f"Statement {statement.id} ({filename}) imported with {saved} transactions")
    return statement, result


def _to_transactions(statement_id: str, result: ParseResult) -> list[Transaction]:
    return [
        Transaction(
            id=str(uuid.uuid4()),
            statement_id=statement_id,
            transaction_date=t.transaction_date,
            description=t.description,
            amount=t.amount,
            polarity=t.polarity,
        )
        for t in result.transactions
    ]
