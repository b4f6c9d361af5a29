# tests/test_routes.py

"""
Tests for the HTTP API.
"""

from datetime import date

from reconciler.routers import statements

from tests.factories import make_po, make_receipt

STATEMENT_CSV = (
    b"Date,Description,Amount\n"
    b"01/15/2025,STAPLES #123,-100.00\n"
    b"01/16/2025,ACME SUPPLY,-250.00\n"
    b"01/21/2025,PAYROLL,1500.00\n"
)


def upload(client, content: bytes = STATEMENT_CSV, filename: str = "jan.csv", **form):
    return client.post(
        "/statements",
        files={"file": (filename, content, "text/csv")},
        data=form,
    )


def seed_evidence(store):
    store.save_receipt(make_receipt("r1", "100.00", date(2025, 1, 15), "Staples"))
    store.save_purchase_order(make_po("p1", "250.00", date(2025, 1, 17), "Acme Supply"))


def first_transaction(client, statement_id: str, **params) -> dict:
    response = client.get(f"/statements/{statement_id}/transactions", params=params)
    return response.json()["transactions"][0]


# ============================================
# Health
# ============================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        assert client.get("/ready").json()["checks"]["storage"] == "memory"


# ============================================
# Statements
# ============================================

class TestStatementRoutes:

    def test_upload(self, client):
        response = upload(client, account_label="Ops card")

        assert response.status_code == 200
        body = response.json()
        assert body["statement"]["status"] == "completed"
        assert body["statement"]["account_label"] == "Ops card"
        assert body["statement"]["transaction_count"] == 3
        assert body["parse_info"]["detected_format"] == "Generic"
        assert body["parse_info"]["start_date"] == "2025-01-15"

    def test_upload_with_manual_mapping(self, client):
        content = b"When,What,How Much\n2025-01-15,Coffee,-4.50\n"

        response = upload(
            client,
            content,
            date_column="When",
            description_column="What",
            amount_column="How Much",
        )

        assert response.status_code == 200
        assert response.json()["parse_info"]["detected_format"] is None

    def test_incomplete_manual_mapping(self, client):
        response = upload(client, date_column="Date")

        assert response.status_code == 400

    def test_unrecognized_layout(self, client):
        response = upload(client, b"Foo,Bar,Baz\n1,2,3\n")

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "unrecognized_layout"
        assert detail["headers"] == ["Foo", "Bar", "Baz"]

        failed = client.get("/statements", params={"status": "failed"}).json()
        assert failed["pagination"]["total"] == 1
        assert failed["statements"][0]["id"] == detail["statement_id"]

    def test_unsupported_format(self, client):
        response = upload(client, b"%PDF-1.4", "statement.pdf")

        assert response.json()["detail"]["error"] == "unsupported_format"

    def test_upload_over_size_limit(self, client, monkeypatch):
        monkeypatch.setattr(statements.settings, "max_upload_mb", 1)
        content = STATEMENT_CSV + b"01/22/2025,FILLER,-1.00\n" * 50000

        response = upload(client, content)

        assert response.status_code == 400
        assert "too large" in response.json()["detail"]
        assert client.get("/statements").json()["pagination"]["total"] == 0

    def test_upload_at_size_limit(self, client, monkeypatch):
        monkeypatch.setattr(statements.settings, "max_upload_mb", 1)
        content = STATEMENT_CSV.ljust(1024 * 1024, b"\n")

        response = upload(client, content)

        assert response.status_code == 200

    def test_list(self, client):
        upload(client)
        upload(client, filename="feb.csv")

        body = client.get("/statements", params={"limit": 1}).json()

        assert len(body["statements"]) == 1
        assert body["pagination"]["total"] == 2
        assert body["pagination"]["has_more"]

    def test_template(self, client):
        response = client.get("/statements/template")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.text.splitlines()[0] == "Date,Description,Amount"

    def test_headers(self, client):
        response = client.post(
            "/statements/headers",
            files={"file": ("odd.csv", b"When,What,How Much\n2025-01-15,Coffee,-4.50\n", "text/csv")},
        )

        assert response.json()["headers"] == ["When", "What", "How Much"]

    def test_get_and_delete(self, client):
        statement_id = upload(client).json()["statement"]["id"]

        body = client.get(f"/statements/{statement_id}").json()
        assert body["summary"]["unmatched"] == 3

        assert client.delete(f"/statements/{statement_id}").status_code == 200
        assert client.get(f"/statements/{statement_id}").status_code == 404
        assert client.delete(f"/statements/{statement_id}").status_code == 404


# ============================================
# Transactions
# ============================================

class TestTransactionRoutes:

    def test_list_with_filters(self, client):
        statement_id = upload(client).json()["statement"]["id"]

        debits = client.get(f"/statements/{statement_id}/transactions", params={"polarity": "debit"}).json()
        search = client.get(f"/statements/{statement_id}/transactions", params={"search": "acme"}).json()

        assert debits["pagination"]["total"] == 2
        assert [t["description"] for t in search["transactions"]] == ["ACME SUPPLY"]

    def test_unknown_statement(self, client):
        assert client.get("/statements/nope/transactions").status_code == 404

    def test_detail_includes_suggestions(self, client, store):
        seed_evidence(store)
        statement_id = upload(client).json()["statement"]["id"]
        txn = first_transaction(client, statement_id)

        body = client.get(f"/statements/{statement_id}/transactions/{txn['id']}").json()

        assert body["transaction"]["amount"] == "100.00"
        assert body["suggestions"][0]["candidate_id"] == "r1"
        assert body["suggestions"][0]["score"] == 100

    def test_override(self, client, store):
        seed_evidence(store)
        statement_id = upload(client).json()["statement"]["id"]
        txn = first_transaction(client, statement_id)
        url = f"/statements/{statement_id}/transactions/{txn['id']}"

        response = client.patch(url, json={"action": "match-po", "target_id": "p1"})

        assert response.status_code == 200
        assert response.json()["transaction"]["matched_purchase_order_id"] == "p1"
        assert client.get(url).json()["suggestions"] is None

    def test_override_errors(self, client, store):
        seed_evidence(store)
        statement_id = upload(client).json()["statement"]["id"]
        txn = first_transaction(client, statement_id)
        url = f"/statements/{statement_id}/transactions/{txn['id']}"

        assert client.patch(url, json={"action": "match-receipt"}).status_code == 400
        assert client.patch(url, json={"action": "match-receipt", "target_id": "r404"}).status_code == 404
        assert client.patch(url, json={"action": "explode"}).status_code == 422
        assert client.patch(f"/statements/{statement_id}/transactions/nope", json={"action": "unmatch"}).status_code == 404


# ============================================
# Reconciliation
# ============================================

class TestReconcileRoutes:

    def test_auto_match_and_summary(self, client, store):
        seed_evidence(store)
        statement_id = upload(client).json()["statement"]["id"]

        body = client.post(f"/statements/{statement_id}/auto-match").json()

        assert body["matched"] == 2
        assert body["unmatched"] == 1
        assert body["min_confidence"] == 70

        summary = client.get(f"/statements/{statement_id}/summary").json()["summary"]
        assert summary["matched_to_receipt"] == 1
        assert summary["matched_to_purchase_order"] == 1
        assert summary["matched_amount"] == "350.00"

    def test_auto_match_threshold(self, client, store):
        seed_evidence(store)
        statement_id = upload(client).json()["statement"]["id"]

        body = client.post(f"/statements/{statement_id}/auto-match", json={"min_confidence": 95}).json()

        assert body["matched"] == 1
        assert body["min_confidence"] == 95

    def test_auto_match_unknown_statement(self, client):
        assert client.post("/statements/nope/auto-match").status_code == 404
        assert client.get("/statements/nope/summary").status_code == 404


# ============================================
# Evidence
# ============================================

class TestEvidenceRoutes:

    def test_register_and_list(self, client):
        receipt = {"id": "r9", "merchant_name": "Staples", "receipt_date": "2025-01-15", "total_amount": "12.00"}
        po = {"id": "p9", "po_number": "PO-9", "vendor_name": "Acme", "po_date": "2025-01-10", "total_amount": "99.00"}

        assert client.post("/evidence/receipts", json=receipt).status_code == 201
        assert client.post("/evidence/purchase-orders", json=po).status_code == 201

        assert client.get("/evidence/receipts").json()["count"] == 1
        assert client.get("/evidence/purchase-orders/p9").json()["purchase_order"]["status"] == "approved"
        assert client.get("/evidence/receipts/missing").status_code == 404
