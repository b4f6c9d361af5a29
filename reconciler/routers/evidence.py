# reconciler/routers/evidence.py

"""
Evidence routes.

Receipts and purchase orders are produced by other services; these
endpoints register them so they can be offered as match candidates.
"""

from fastapi import APIRouter, Depends, HTTPException

from reconciler.dependencies import get_store
from reconciler.models import PurchaseOrder, Receipt
from reconciler.store import ReconciliationStore

router = APIRouter()


# ============================================
# Receipts
# ============================================

@router.post("/receipts", status_code=201)
async def register_receipt(
    receipt: Receipt,
    store: ReconciliationStore = Depends(get_store),
):
    """Register or replace a receipt."""
    saved = store.save_receipt(receipt)
    return {"success": True, "receipt": saved.model_dump(mode="json")}


@router.get("/receipts")
async def list_receipts(store: ReconciliationStore = Depends(get_store)):
    receipts = store.list_receipts()
    return {
        "success": True,
        "receipts": [r.model_dump(mode="json") for r in receipts],
        "count": len(receipts),
    }


@router.get("/receipts/{receipt_id}")
async def get_receipt(receipt_id: str, store: ReconciliationStore = Depends(get_store)):
    receipt = store.get_receipt(receipt_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return {"success": True, "receipt": receipt.model_dump(mode="json")}


# ============================================
# Purchase orders
# ============================================

@router.post("/purchase-orders", status_code=201)
async def register_purchase_order(
    purchase_order: PurchaseOrder,
    store: ReconciliationStore = Depends(get_store),
):
    """Register or replace a purchase order."""
    saved = store.save_purchase_order(purchase_order)
    return {"success": True, "purchase_order": saved.model_dump(mode="json")}


@router.get("/purchase-orders")
async def list_purchase_orders(store: ReconciliationStore = Depends(get_store)):
    purchase_orders = store.list_purchase_orders()
    return {
        "success": True,
        "purchase_orders": [po.model_dump(mode="json") for po in purchase_orders],
        "count": len(purchase_orders),
    }


@router.get("/purchase-orders/{purchase_order_id}")
async def get_purchase_order(purchase_order_id: str, store: ReconciliationStore = Depends(get_store)):
    purchase_order = store.get_purchase_order(purchase_order_id)
    if not purchase_order:
        raise HTTPException(status_code=404, detail="Purchase Order not found")
    return {"success": True, "purchase_order": purchase_order.model_dump(mode="json")}
