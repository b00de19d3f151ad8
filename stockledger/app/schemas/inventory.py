from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from stockledger.app.db.models.core_types import LocationType, MovementType, ReferenceType


# ---------- Locations / lots ----------
class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: LocationType = LocationType.warehouse
    description: str | None = None


class LocationUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    type: LocationType | None = None
    description: str | None = None

    # omis = inchangé ; null explicite interdit (colonnes NOT NULL)
    @field_validator("name", "type")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class LocationRead(BaseModel):
    id: int
    name: str
    type: LocationType
    description: str | None = None
    is_active: bool

    class Config:
        from_attributes = True


class LotCreate(BaseModel):
    material_id: int
    location_id: int
    lot_number: str | None = Field(default=None, max_length=64)
    quantity: int = Field(default=0, ge=0)
    received_date: datetime
    expiration_date: datetime | None = None


class LotRead(BaseModel):
    id: int
    material_id: int
    location_id: int
    lot_number: str | None = None
    quantity: int
    received_date: datetime
    expiration_date: datetime | None = None

    class Config:
        from_attributes = True


# ---------- Movements ----------
class MovementCreate(BaseModel):
    # pas de gt=0 ici : la règle quantité > 0 est portée par le store (ValidationError)
    material_id: int | None = None
    material_name: str = Field(min_length=1, max_length=255)
    movement_type: MovementType
    quantity: int
    from_location_id: int | None = None
    to_location_id: int | None = None
    reference_type: ReferenceType | None = None
    reference_id: str | None = Field(default=None, max_length=64)
    notes: str | None = None


class MovementRead(BaseModel):
    id: int
    material_id: int | None = None
    material_name: str
    movement_type: MovementType
    quantity: int
    from_location_id: int | None = None
    to_location_id: int | None = None
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    notes: str | None = None
    previous_quantity: int | None = None
    new_quantity: int | None = None
    created_at: datetime
    user_id: str

    class Config:
        from_attributes = True


class MovementFilter(BaseModel):
    material_ids: list[int] = Field(default_factory=list)
    location_ids: list[int] = Field(default_factory=list)
    movement_types: list[MovementType] = Field(default_factory=list)
    date_from: datetime | None = None
    date_to: datetime | None = None
    search_term: str | None = None


# ---------- Balances (READ ONLY, jamais persistées) ----------
class InventoryFilter(BaseModel):
    location_ids: list[int] = Field(default_factory=list)
    material_ids: list[int] = Field(default_factory=list)
    search_term: str | None = None
    show_zero_quantity: bool = False


class MaterialBalance(BaseModel):
    material_id: int | None
    material_name: str
    location_id: int
    location_name: str
    quantity: int  # peut être négatif : signal qualité de données, pas clampé
    last_movement_date: datetime | None = None
