from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db, get_current_user_id
from stockledger.app.schemas.inventory import InventoryFilter, MaterialBalance
from stockledger.services.balances import calculate_material_balances

router = APIRouter(prefix="/stock")


@router.get(
    "/balances",
    response_model=list[MaterialBalance],
)
def get_balances(
    location_id: list[int] = Query(default=[]),
    material_id: list[int] = Query(default=[]),
    search: str | None = None,
    show_zero_quantity: bool = False,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Soldes (READ ONLY)
    - recalculés à chaque appel depuis le journal des mouvements
    - un solde négatif n'est pas masqué (journal incohérent)
    """
    return calculate_material_balances(
        db,
        user_id,
        InventoryFilter(
            location_ids=location_id,
            material_ids=material_id,
            search_term=search,
            show_zero_quantity=show_zero_quantity,
        ),
    )
