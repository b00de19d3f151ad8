from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, get_current_user_id, get_event_recorder
from stockledger.app.schemas.delivery import (
    DeliveryConfirmationForm,
    DeliveryRead,
    DeliveryResult,
    DeliveryStatistics,
)
from stockledger.services import delivery
from stockledger.services.audit import EventRecorder

router = APIRouter(prefix="/deliveries")


@router.get("", response_model=list[DeliveryRead])
def list_deliveries(
    purchase_order_id: int | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return delivery.list_deliveries(db, user_id, purchase_order_id)


@router.get("/statistics", response_model=DeliveryStatistics)
def delivery_statistics(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return delivery.get_delivery_statistics(db, user_id)


@router.post("", response_model=DeliveryResult)
def confirm_delivery(
    payload: DeliveryConfirmationForm,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    recorder: EventRecorder = Depends(get_event_recorder),
):
    return delivery.process_delivery_confirmation(db, payload, user_id=user_id, recorder=recorder)
