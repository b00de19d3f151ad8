"""
Projection des soldes matériel / location.

Les soldes ne sont JAMAIS stockés : ils sont recalculés en rejouant le
journal des mouvements. ``project_balances`` est une fonction pure
(testable avec des listes synthétiques) ; ``calculate_material_balances``
ne fait que charger le journal et les libellés de location.

Aucun clamp à zéro : un solde négatif signale un journal incohérent,
il doit rester visible.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, NamedTuple

from sqlalchemy.orm import Session

from stockledger.app.db.models.core_types import MovementType
from stockledger.app.db.models.models_v1 import InventoryMovement
from stockledger.app.schemas.inventory import InventoryFilter, MaterialBalance
from stockledger.services.inventory import location_names, query_movements

UNKNOWN_LOCATION = "Unknown Location"


class Direction(NamedTuple):
    from_sign: int
    to_sign: int


# Effet de chaque type sur (from, to). 0 = côté ignoré.
DIRECTIONS: dict[MovementType, Direction] = {
    MovementType.receipt: Direction(0, +1),
    MovementType.usage: Direction(-1, 0),
    MovementType.loss: Direction(-1, 0),
    MovementType.sale: Direction(-1, 0),
    MovementType.transfer: Direction(-1, +1),
    MovementType.adjustment: Direction(-1, +1),
    MovementType.return_: Direction(0, +1),
}


def movement_deltas(movement) -> list[tuple[int, int]]:
    """
    [(location_id, variation signée)] pour un mouvement.

    adjustment : un seul côté compte ; ``to`` prioritaire si les deux sont
    renseignés (lignes historiques, le store refuse désormais ce cas).
    """
    mtype = MovementType(movement.movement_type)
    direction = DIRECTIONS[mtype]
    qty = movement.quantity
    from_id = movement.from_location_id
    to_id = movement.to_location_id

    if mtype == MovementType.adjustment:
        if to_id:
            return [(to_id, direction.to_sign * qty)]
        if from_id:
            return [(from_id, direction.from_sign * qty)]
        return []

    deltas: list[tuple[int, int]] = []
    if direction.from_sign and from_id:
        deltas.append((from_id, direction.from_sign * qty))
    if direction.to_sign and to_id:
        deltas.append((to_id, direction.to_sign * qty))
    return deltas


def project_balances(
    movements: Iterable,
    location_map: Mapping[int, str],
    balance_filter: InventoryFilter | None = None,
) -> list[MaterialBalance]:
    f = balance_filter or InventoryFilter()

    quantities: dict[tuple, int] = {}
    last_dates: dict[tuple, datetime] = {}
    names: dict[tuple, str] = {}

    for mv in movements:
        for location_id, change in movement_deltas(mv):
            key = (mv.material_id, location_id)
            quantities[key] = quantities.get(key, 0) + change
            names.setdefault(key, mv.material_name)
            seen = last_dates.get(key)
            if seen is None or mv.created_at > seen:
                last_dates[key] = mv.created_at

    balances = [
        MaterialBalance(
            material_id=material_id,
            material_name=names[(material_id, location_id)],
            location_id=location_id,
            location_name=location_map.get(location_id, UNKNOWN_LOCATION),
            quantity=qty,
            last_movement_date=last_dates.get((material_id, location_id)),
        )
        for (material_id, location_id), qty in quantities.items()
    ]

    if f.location_ids:
        wanted = set(f.location_ids)
        balances = [b for b in balances if b.location_id in wanted]

    if f.material_ids:
        wanted = set(f.material_ids)
        balances = [b for b in balances if b.material_id in wanted]

    if f.search_term:
        needle = f.search_term.casefold()
        balances = [
            b
            for b in balances
            if needle in b.material_name.casefold() or needle in b.location_name.casefold()
        ]

    if not f.show_zero_quantity:
        balances = [b for b in balances if b.quantity > 0]

    balances.sort(key=lambda b: (b.material_name.casefold(), b.location_name.casefold()))
    return balances


def calculate_material_balances(
    db: Session,
    tenant_id: str,
    balance_filter: InventoryFilter | None = None,
) -> list[MaterialBalance]:
    movements: list[InventoryMovement] = query_movements(db, tenant_id)
    return project_balances(movements, location_names(db, tenant_id), balance_filter)
