from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, get_current_user_id
from stockledger.app.schemas.inventory import (
    LocationCreate,
    LocationRead,
    LocationUpdate,
    LotCreate,
    LotRead,
)
from stockledger.services import inventory

router = APIRouter()


@router.get("/locations", response_model=list[LocationRead])
def list_locations(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return inventory.list_locations(db, user_id)


@router.post("/locations", response_model=LocationRead)
def create_location(
    payload: LocationCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return inventory.create_location(db, user_id, payload)


@router.patch("/locations/{location_id}", response_model=LocationRead)
def update_location(
    location_id: int,
    payload: LocationUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return inventory.update_location(db, user_id, location_id, payload)


@router.delete("/locations/{location_id}")
def delete_location(
    location_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    inventory.deactivate_location(db, user_id, location_id)
    return {"ok": True}


@router.get("/lots", response_model=list[LotRead])
def list_lots(
    material_id: int | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return inventory.list_lots(db, user_id, material_id)


@router.post("/lots", response_model=LotRead)
def create_lot(
    payload: LotCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return inventory.create_lot(db, user_id, payload)
