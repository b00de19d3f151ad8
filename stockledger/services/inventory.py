from __future__ import annotations

import logging
import os

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import (
    InventoryLot,
    InventoryMovement,
    Location,
    Material,
)
from stockledger.app.db.models.core_types import MovementType
from stockledger.app.schemas.inventory import (
    LocationCreate,
    LocationUpdate,
    LotCreate,
    MovementCreate,
    MovementFilter,
)
from stockledger.services.errors import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Plafond des lectures non paginées (coût de la projection)
MOVEMENT_QUERY_LIMIT = int(os.getenv("MOVEMENT_QUERY_LIMIT", "1000"))


# ---------- MOVEMENTS (append-only) ----------
def validate_movement(data: MovementCreate) -> None:
    """
    Règles d'un mouvement, AVANT toute écriture.

    - quantité strictement positive (le sens vient du type, pas du signe)
    - transfer : from ET to, et différents
    - adjustment : exactement un côté (soit from = sortie, soit to = entrée)
    """
    if data.quantity <= 0:
        raise ValidationError("Movement quantity must be positive")

    if data.movement_type == MovementType.transfer:
        if not data.from_location_id or not data.to_location_id:
            raise ValidationError("Transfer movements require both from and to locations")
        if data.from_location_id == data.to_location_id:
            raise ValidationError("Cannot transfer to the same location")

    if data.movement_type == MovementType.adjustment:
        if bool(data.from_location_id) == bool(data.to_location_id):
            raise ValidationError("Adjustment movements require exactly one of from or to location")


def ensure_location(db: Session, tenant_id: str, location_id: int) -> Location:
    loc = db.get(Location, location_id)
    if not loc or loc.user_id != tenant_id:
        raise NotFoundError(f"Location {location_id} not found")
    return loc


def append_movement(db: Session, tenant_id: str, data: MovementCreate) -> int:
    """
    Ajoute un mouvement au journal et retourne son id.

    Ne commit PAS : l'appelant possède la transaction (un mouvement peut
    faire partie d'une réception). Un mouvement n'est jamais modifié ni
    supprimé ; une correction = un nouveau mouvement.
    """
    validate_movement(data)

    if data.material_id is not None:
        material = db.get(Material, data.material_id)
        if not material or material.user_id != tenant_id:
            raise NotFoundError(f"Material {data.material_id} not found")

    for location_id in (data.from_location_id, data.to_location_id):
        if location_id is not None:
            ensure_location(db, tenant_id, location_id)

    mv = InventoryMovement(
        user_id=tenant_id,
        material_id=data.material_id,
        material_name=data.material_name,
        movement_type=data.movement_type,
        quantity=data.quantity,
        from_location_id=data.from_location_id,
        to_location_id=data.to_location_id,
        reference_type=data.reference_type,
        reference_id=data.reference_id,
        notes=data.notes,
    )
    db.add(mv)
    db.flush()  # get mv.id

    logger.debug(
        "Appended %s movement %s: material=%s qty=%s",
        mv.movement_type.value,
        mv.id,
        mv.material_id,
        mv.quantity,
    )
    return int(mv.id)


def query_movements(
    db: Session,
    tenant_id: str,
    movement_filter: MovementFilter | None = None,
    *,
    limit: int = MOVEMENT_QUERY_LIMIT,
) -> list[InventoryMovement]:
    """
    Mouvements du tenant, plus récents d'abord, plafonnés à ``limit``.
    Pour des totaux exacts sur un gros journal, l'appelant doit paginer.
    """
    f = movement_filter or MovementFilter()

    stmt = select(InventoryMovement).where(InventoryMovement.user_id == tenant_id)

    if f.material_ids:
        stmt = stmt.where(InventoryMovement.material_id.in_(f.material_ids))

    if f.location_ids:
        stmt = stmt.where(
            or_(
                InventoryMovement.from_location_id.in_(f.location_ids),
                InventoryMovement.to_location_id.in_(f.location_ids),
            )
        )

    if f.movement_types:
        stmt = stmt.where(InventoryMovement.movement_type.in_(f.movement_types))

    if f.date_from is not None:
        stmt = stmt.where(InventoryMovement.created_at >= f.date_from)

    if f.date_to is not None:
        stmt = stmt.where(InventoryMovement.created_at <= f.date_to)

    if f.search_term:
        pattern = f"%{f.search_term}%"
        stmt = stmt.where(
            or_(
                InventoryMovement.material_name.ilike(pattern),
                InventoryMovement.notes.ilike(pattern),
                InventoryMovement.reference_id.ilike(pattern),
            )
        )

    stmt = stmt.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


# ---------- LOCATIONS ----------
def create_location(db: Session, tenant_id: str, data: LocationCreate) -> Location:
    loc = Location(
        user_id=tenant_id,
        name=data.name,
        type=data.type,
        description=data.description,
        is_active=True,
    )
    db.add(loc)
    db.commit()
    db.refresh(loc)
    return loc


def list_locations(db: Session, tenant_id: str) -> list[Location]:
    return list(
        db.execute(
            select(Location)
            .where(Location.user_id == tenant_id)
            .where(Location.is_active.is_(True))
            .order_by(Location.name)
        )
        .scalars()
        .all()
    )


def location_names(db: Session, tenant_id: str) -> dict[int, str]:
    """id -> nom, locations inactives comprises (les mouvements historiques y pointent)."""
    rows = db.execute(select(Location.id, Location.name).where(Location.user_id == tenant_id)).all()
    return {int(loc_id): name for loc_id, name in rows}


def _owned_location(db: Session, tenant_id: str, location_id: int) -> Location:
    loc = db.get(Location, location_id)
    if not loc:
        raise NotFoundError(f"Location {location_id} not found")
    if loc.user_id != tenant_id:
        raise AuthorizationError("Location belongs to another user")
    return loc


def update_location(db: Session, tenant_id: str, location_id: int, data: LocationUpdate) -> Location:
    loc = _owned_location(db, tenant_id, location_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(loc, field, value)
    db.commit()
    db.refresh(loc)
    return loc


def deactivate_location(db: Session, tenant_id: str, location_id: int) -> None:
    # soft delete : les mouvements passés gardent leur libellé
    loc = _owned_location(db, tenant_id, location_id)
    loc.is_active = False
    db.commit()


# ---------- LOTS ----------
def create_lot(db: Session, tenant_id: str, data: LotCreate) -> InventoryLot:
    material = db.get(Material, data.material_id)
    if not material or material.user_id != tenant_id:
        raise NotFoundError(f"Material {data.material_id} not found")
    ensure_location(db, tenant_id, data.location_id)

    lot = InventoryLot(
        user_id=tenant_id,
        material_id=data.material_id,
        location_id=data.location_id,
        lot_number=data.lot_number,
        quantity=data.quantity,
        received_date=data.received_date,
        expiration_date=data.expiration_date,
        is_active=True,
    )
    db.add(lot)
    db.commit()
    db.refresh(lot)
    return lot


def list_lots(db: Session, tenant_id: str, material_id: int | None = None) -> list[InventoryLot]:
    stmt = (
        select(InventoryLot)
        .where(InventoryLot.user_id == tenant_id)
        .where(InventoryLot.is_active.is_(True))
    )
    if material_id is not None:
        stmt = stmt.where(InventoryLot.material_id == material_id)

    stmt = stmt.order_by(InventoryLot.received_date.desc())
    return list(db.execute(stmt).scalars().all())
