# reconciler/routers/statements.py

"""
Statement routes.

Upload, list, inspect and delete bank statements.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import ValidationError

from reconciler.config import get_settings
from reconciler.core.errors import StatementParseError
from reconciler.core.formats import TEMPLATE_HEADERS
from reconciler.core.ingestion import ingest_statement
from reconciler.core.reader import read_headers
from reconciler.core.reconciliation import summarize_statement
from reconciler.dependencies import get_store
from reconciler.models import ColumnMapping
from reconciler.store import ReconciliationStore

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter()

UPLOAD_CHUNK_BYTES = 1024 * 1024


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload, giving up as soon as it passes the size limit."""
    limit = settings.max_upload_mb * 1024 * 1024
    too_large = HTTPException(
        status_code=400,
        detail=f"File too large. Maximum size is {settings.max_upload_mb}MB.",
    )

    if file.size is not None and file.size > limit:
        raise too_large

    chunks = []
    received = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        received += len(chunk)
        if received > limit:
            raise too_large
        chunks.append(chunk)
    return b"".join(chunks)


def _manual_mapping(
    date_column: Optional[str],
    description_column: Optional[str],
    amount_column: Optional[str],
    debit_column: Optional[str],
    credit_column: Optional[str],
) -> Optional[ColumnMapping]:
    """Build a mapping from form fields; None when no mapping was sent."""
    if not any((date_column, description_column, amount_column, debit_column, credit_column)):
        return None

    try:
        return ColumnMapping(
            date_column=date_column or "",
            description_column=description_column or "",
            amount_column=amount_column or None,
            debit_column=debit_column or None,
            credit_column=credit_column or None,
        )
    except ValidationError:
        raise HTTPException(
            status_code=400,
            detail="Column mapping needs date, description, and amount or debit + credit columns",
        )


# ============================================
# Upload
# ============================================

@router.post("")
async def upload_statement(
    file: UploadFile = File(...),
    account_label: Optional[str] = Form(None),
    date_column: Optional[str] = Form(None),
    description_column: Optional[str] = Form(None),
    amount_column: Optional[str] = Form(None),
    debit_column: Optional[str] = Form(None),
    credit_column: Optional[str] = Form(None),
    store: ReconciliationStore = Depends(get_store),
):
    """
    Upload and parse a bank statement.

    Optional mapping fields skip column auto-detection.
    """
    content = await _read_upload(file)
    mapping = _manual_mapping(date_column, description_column, amount_column, debit_column, credit_column)

    statement, result = ingest_statement(
        store,
        content,
        file.filename or "",
        account_label=account_label,
        column_mapping=mapping,
    )

    if not result.success:
        raise HTTPException(
            status_code=400,
            detail={
                "error": result.error,
                "message": result.message,
                "headers": result.headers,
                "statement_id": statement.id,
            },
        )

    return {
        "success": True,
        "statement": statement.model_dump(mode="json"),
        "parse_info": result.to_dict(),
    }


# ============================================
# List / template / headers
# ============================================

@router.get("")
async def list_statements(
    status: Optional[str] = Query(None, description="Filter by status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: ReconciliationStore = Depends(get_store),
):
    """
    List statements, newest first.
    """
    statements, total = store.list_statements(status=status, limit=limit, offset=offset)

    return {
        "success": True,
        "statements": [s.model_dump(mode="json") for s in statements],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


@router.get("/template")
async def download_template():
    """
    Header-only CSV exporters can follow to skip auto-detection.
    """
    return Response(
        content=",".join(TEMPLATE_HEADERS) + "\r\n",
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="statement-template.csv"'},
    )


@router.post("/headers")
async def get_file_headers(file: UploadFile = File(...)):
    """
    Return the header row of a file so a column mapping can be chosen by hand.
    """
    content = await _read_upload(file)

    try:
        headers = read_headers(content, file.filename or "")
    except StatementParseError as e:
        raise HTTPException(status_code=400, detail={"error": e.code, "message": e.message})

    return {
        "success": True,
        "headers": headers,
    }


# ============================================
# Single statement
# ============================================

@router.get("/{statement_id}")
async def get_statement(
    statement_id: str,
    store: ReconciliationStore = Depends(get_store),
):
    """
    Get a statement with its reconciliation summary.
    """
    statement = store.get_statement(statement_id)
    if not statement:
        raise HTTPException(status_code=404, detail="Statement not found")

    transactions, _ = store.list_transactions(statement_id)

    return {
        "success": True,
        "statement": statement.model_dump(mode="json"),
        "summary": summarize_statement(transactions).model_dump(mode="json"),
    }


@router.delete("/{statement_id}")
async def delete_statement(
    statement_id: str,
    store: ReconciliationStore = Depends(get_store),
):
    """
    Delete a statement and all its transactions.
    """
    if not store.delete_statement(statement_id):
        raise HTTPException(status_code=404, detail="Statement not found")

    logger.info(f"Deleted statement {statement_id}")
    return {
        "success": True,
        "message": "Statement deleted successfully",
    }
