from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, get_current_user_id, get_event_recorder
from stockledger.app.schemas.procurement import ReceiptCreate, ReceiptResult
from stockledger.services.audit import EventRecorder
from stockledger.services.procurement import process_receipt

router = APIRouter(prefix="/receipts")


@router.post("", response_model=ReceiptResult)
def create_receipt(
    payload: ReceiptCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    recorder: EventRecorder = Depends(get_event_recorder),
):
    # Sur-réception -> 409, rien n'est écrit ; 503 -> retry complet possible
    return process_receipt(db, payload, user_id=user_id, recorder=recorder)
