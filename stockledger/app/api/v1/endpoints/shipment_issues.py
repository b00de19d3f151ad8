from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, get_current_user_id, get_event_recorder
from stockledger.app.db.models.core_types import IssueStatus
from stockledger.app.schemas.delivery import IssueResolve, ShipmentIssueRead
from stockledger.services import delivery
from stockledger.services.audit import EventRecorder

router = APIRouter(prefix="/shipment-issues")


@router.get("", response_model=list[ShipmentIssueRead])
def list_issues(
    status: IssueStatus | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return delivery.list_shipment_issues(db, user_id, status)


@router.post("/{issue_id}/resolve")
def resolve_issue(
    issue_id: int,
    payload: IssueResolve,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    recorder: EventRecorder = Depends(get_event_recorder),
):
    delivery.resolve_shipment_issue(
        db,
        issue_id,
        payload.resolution_notes,
        user_id,
        recorder=recorder,
    )
    return {"ok": True}
