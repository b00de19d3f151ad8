from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, get_current_user_id
from stockledger.app.db.models.core_types import MovementType
from stockledger.app.schemas.inventory import MovementCreate, MovementFilter, MovementRead
from stockledger.services.inventory import append_movement, query_movements
from stockledger.services.transaction import unit_of_work

router = APIRouter(prefix="/stock-movements")


@router.get("", response_model=list[MovementRead])
def list_movements(
    material_id: list[int] = Query(default=[]),
    location_id: list[int] = Query(default=[]),
    movement_type: list[MovementType] = Query(default=[]),
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return query_movements(
        db,
        user_id,
        MovementFilter(
            material_ids=material_id,
            location_ids=location_id,
            movement_types=movement_type,
            date_from=date_from,
            date_to=date_to,
            search_term=search,
        ),
    )


@router.post("")
def create_movement(
    payload: MovementCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    with unit_of_work(db):
        movement_id = append_movement(db, user_id, payload)
    return {"id": movement_id}
