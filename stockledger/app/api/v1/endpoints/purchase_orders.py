from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, get_current_user_id
from stockledger.app.schemas.procurement import POCreate, PORead, ReceiptRead
from stockledger.services import procurement

router = APIRouter(prefix="/purchase-orders")


@router.get("", response_model=list[PORead])
def list_pos(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return procurement.list_purchase_orders(db, user_id)


@router.get("/{po_id}", response_model=PORead)
def get_po(
    po_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return procurement.get_purchase_order(db, user_id, po_id)


@router.get("/{po_id}/receipts", response_model=list[ReceiptRead])
def list_po_receipts(
    po_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return procurement.list_po_receipts(db, user_id, po_id)


@router.post("")
def create_po(
    payload: POCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    po = procurement.create_purchase_order(db, user_id, payload)
    return {"id": po.id, "po_number": po.po_number}
