# tests/test_parser.py

"""
Tests for the statement parsing pipeline and ingestion.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from reconciler.core import parser
from reconciler.core.ingestion import IMPORT_FAILED, ingest_statement
from reconciler.core.parser import build_transactions, parse_statement_file
from reconciler.models import ColumnMapping
from reconciler.store import InMemoryStore

from tests.factories import make_xls, make_xlsx


GENERIC_CSV = (
    b"Date,Description,Amount\n"
    b"01/16/2025,Payroll Deposit,\"1,500.00\"\n"
    b"01/15/2025,Coffee Shop,-4.50\n"
    b"01/15/2025,Book Store,(12.00)\n"
)


# ============================================
# Parsing
# ============================================

class TestParseStatement:
    """End-to-end file parsing."""

    def test_generic_csv(self):
        result = parse_statement_file(GENERIC_CSV, "statement.csv")

        assert result.success
        assert result.detected_format == "Generic"
        assert result.rows_read == 3
        assert result.rows_skipped == 0
        assert [t.description for t in result.transactions] == ["Coffee Shop", "Book Store", "Payroll Deposit"]

    def test_two_row_round_trip(self):
        content = b"Date,Description,Amount\n2025-01-01,Coffee Shop,-4.50\n2025-01-02,Refund,10.00\n"

        result = parse_statement_file(content, "statement.csv")

        assert [(t.transaction_date, t.amount, t.polarity) for t in result.transactions] == [
            (date(2025, 1, 1), Decimal("4.50"), "debit"),
            (date(2025, 1, 2), Decimal("10.00"), "credit"),
        ]

    def test_sign_becomes_polarity(self):
        result = parse_statement_file(GENERIC_CSV, "statement.csv")
        by_description = {t.description: t for t in result.transactions}

        assert by_description["Coffee Shop"].amount == Decimal("4.50")
        assert by_description["Coffee Shop"].polarity == "debit"
        assert by_description["Book Store"].polarity == "debit"
        assert by_description["Payroll Deposit"].amount == Decimal("1500.00")
        assert by_description["Payroll Deposit"].polarity == "credit"

    def test_date_range_covers_transactions(self):
        result = parse_statement_file(GENERIC_CSV, "statement.csv")

        assert result.start_date == date(2025, 1, 15)
        assert result.end_date == date(2025, 1, 16)

    def test_debit_credit_columns(self):
        content = (
            b"Date,Description,Debit,Credit\n"
            b"2025-01-10,Rent,1200.00,\n"
            b"2025-01-11,Refund,,25.00\n"
            b"2025-01-12,Nothing,0.00,0.00\n"
        )

        result = parse_statement_file(content, "statement.csv")

        assert result.success
        assert result.rows_skipped == 1
        assert [(t.amount, t.polarity) for t in result.transactions] == [
            (Decimal("1200.00"), "debit"),
            (Decimal("25.00"), "credit"),
        ]

    def test_bad_rows_skipped(self):
        content = (
            b"Date,Description,Amount\n"
            b"2025-01-15,Coffee,-4.50\n"
            b"pending,Hold,-9.99\n"
            b"2025-01-16,,-3.00\n"
            b"2025-01-17,Mystery,n/a\n"
        )

        result = parse_statement_file(content, "statement.csv")

        assert result.success
        assert len(result.transactions) == 1
        assert result.rows_skipped == 3

    def test_oversized_amount_skipped(self):
        content = (
            b"Date,Description,Amount\n"
            b"2025-01-15,Coffee,-4.50\n"
            b"2025-01-16,Typo,1e30\n"
        )

        result = parse_statement_file(content, "statement.csv")

        assert result.success
        assert [t.description for t in result.transactions] == ["Coffee"]
        assert result.rows_skipped == 1

    def test_manual_mapping_skips_detection(self):
        content = b"When,What,How Much\n2025-01-15,Coffee,-4.50\n"
        mapping = ColumnMapping(date_column="When", description_column="What", amount_column="How Much")

        result = parse_statement_file(content, "statement.csv", column_mapping=mapping)

        assert result.success
        assert result.detected_format is None
        assert result.column_mapping == mapping

    def test_xlsx(self):
        content = make_xlsx([
            ["Date", "Description", "Amount"],
            [datetime(2025, 1, 15), "Cafe", -4.5],
            [45673, "Books", -12],
        ])

        result = parse_statement_file(content, "statement.xlsx")

        assert result.success
        assert [(t.transaction_date, t.amount) for t in result.transactions] == [
            (date(2025, 1, 15), Decimal("4.50")),
            (date(2025, 1, 16), Decimal("12.00")),
        ]

    def test_xls(self):
        content = make_xls([
            ["Date", "Description", "Amount"],
            [date(2025, 1, 16), "Books", -12],
            [date(2025, 1, 15), "Cafe", -4.5],
        ])

        result = parse_statement_file(content, "statement.xls")

        assert result.success
        assert [(t.transaction_date, t.description, t.amount) for t in result.transactions] == [
            (date(2025, 1, 15), "Cafe", Decimal("4.50")),
            (date(2025, 1, 16), "Books", Decimal("12.00")),
        ]


# ============================================
# Failures
# ============================================

class TestParseFailures:
    """Whole-file failures come back as error codes, never exceptions."""

    @pytest.mark.parametrize("content,filename,code", [
        (b"", "statement.csv", "empty_file"),
        (b"Date,Description,Amount\n", "statement.csv", "empty_file"),
        (b"%PDF-1.4", "statement.pdf", "unsupported_format"),
        (b"not a zip", "statement.xlsx", "unreadable_file"),
        (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\0" * 504, "statement.xls", "unreadable_file"),
        (b"Foo,Bar,Baz\n1,2,3\n", "statement.csv", "unrecognized_layout"),
        (b"Date,Description,Amount\npending,Hold,abc\n", "statement.csv", "no_transactions"),
    ])
    def test_error_codes(self, content, filename, code):
        result = parse_statement_file(content, filename)

        assert not result.success
        assert result.error == code
        assert result.transactions == []

    def test_unrecognized_layout_returns_headers(self):
        result = parse_statement_file(b"Foo,Bar,Baz\n1,2,3\n", "statement.csv")

        assert result.headers == ["Foo", "Bar", "Baz"]

    def test_mapping_to_missing_column(self):
        mapping = ColumnMapping(date_column="Date", description_column="Memo", amount_column="Amount")

        result = parse_statement_file(GENERIC_CSV, "statement.csv", column_mapping=mapping)

        assert result.error == "invalid_column_mapping"
        assert result.headers == ["Date", "Description", "Amount"]

    def test_unexpected_error_is_parse_failed(self, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(parser, "build_transactions", explode)

        result = parse_statement_file(GENERIC_CSV, "statement.csv")

        assert not result.success
        assert result.error == "parse_failed"
        assert result.headers == ["Date", "Description", "Amount"]
        assert result.detected_format == "Generic"


# ============================================
# Building
# ============================================

class TestBuildTransactions:

    def test_same_day_keeps_file_order(self):
        mapping = ColumnMapping(date_column="d", description_column="n", amount_column="a")
        rows = [
            {"d": "2025-01-02", "n": "second day", "a": "-1"},
            {"d": "2025-01-01", "n": "first", "a": "-1"},
            {"d": "2025-01-01", "n": "also first", "a": "-1"},
        ]

        built = build_transactions(rows, mapping)

        assert [t.description for t in built.transactions] == ["first", "also first", "second day"]


class BrokenInsertStore(InMemoryStore):
    """Accepts statements but fails to store transactions."""

    def add_transactions(self, transactions):
        raise RuntimeError("database unavailable")


# ============================================
# Ingestion
# ============================================

class TestIngestion:
    """Statement lifecycle around a parse."""

    def test_completed_statement(self, store):
        statement, result = ingest_statement(store, GENERIC_CSV, "jan.csv", account_label="Ops card")

        assert statement.status == "completed"
        assert statement.transaction_count == 3
        assert statement.detected_format == "Generic"
        assert statement.start_date == date(2025, 1, 15)
        transactions, total = store.list_transactions(statement.id)
        assert total == 3
        assert all(not t.state.is_resolved for t in transactions)

    def test_failed_statement_is_kept(self, store):
        statement, result = ingest_statement(store, b"Foo,Bar\n1,2\n", "odd.csv")

        assert statement.status == "failed"
        assert statement.error == "unrecognized_layout"
        assert store.get_statement(statement.id) is not None
        assert store.list_transactions(statement.id)[1] == 0

    def test_oversized_amount_row_skipped(self, store):
        content = b"Date,Description,Amount\n2025-01-15,Coffee,-4.50\n2025-01-16,Typo," + b"9" * 29 + b"\n"

        statement, result = ingest_statement(store, content, "jan.csv")

        assert statement.status == "completed"
        assert statement.transaction_count == 1
        assert result.rows_skipped == 1

    def test_storage_failure_marks_statement_failed(self):
        store = BrokenInsertStore()

        with pytest.raises(RuntimeError):
            ingest_statement(store, GENERIC_CSV, "jan.csv")

        statements, total = store.list_statements()
        assert total == 1
        assert statements[0].status == "failed"
        assert statements[0].error == IMPORT_FAILED
