"""
Procurement service.

Bons de commande (PO) et réception formelle contre un PO.

``process_receipt`` est LA transaction qui protège l'invariant :
    received_quantity <= ordered_quantity, pour chaque ligne, après chaque commit.
Tout se fait dans une seule transaction (PO + lignes verrouillés FOR UPDATE) :
deux réceptions concurrentes ne peuvent pas valider contre un received périmé.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import (
    InventoryMovement,
    Material,
    PurchaseOrder,
    PurchaseOrderLine,
    Receipt,
    ReceiptLine,
    utcnow,
)
from stockledger.app.db.models.core_types import (
    MovementType,
    POLineStatus,
    POStatus,
    QualityStatus,
    ReceiptStatus,
    ReferenceType,
)
from stockledger.app.schemas.inventory import MovementCreate
from stockledger.app.schemas.procurement import (
    POCreate,
    ReceiptCreate,
    ReceiptLineCreate,
    ReceiptResult,
)
from stockledger.services.audit import EventRecorder, emit_event
from stockledger.services.errors import (
    AuthorizationError,
    NotFoundError,
    OverReceiptError,
    ValidationError,
)
from stockledger.services.inventory import append_movement, ensure_location
from stockledger.services.transaction import unit_of_work

logger = logging.getLogger(__name__)


# ---------- Règles de statut (pures) ----------
def line_status(remaining_quantity: int) -> POLineStatus:
    if remaining_quantity == 0:
        return POLineStatus.fully_received
    return POLineStatus.partially_received


def derive_po_status(total_received: int, total_ordered: int) -> POStatus:
    if total_received == 0:
        return POStatus.approved
    if total_received >= total_ordered:
        return POStatus.fully_received
    return POStatus.partially_received


# ---------- PO store ----------
def _owned_po(db: Session, user_id: str, po_id: int, *, for_update: bool = False) -> PurchaseOrder:
    stmt = select(PurchaseOrder).where(PurchaseOrder.id == po_id)
    if for_update:
        stmt = stmt.with_for_update()

    po = db.execute(stmt).scalar_one_or_none()
    if not po:
        raise NotFoundError("PO not found")
    if po.user_id != user_id:
        raise AuthorizationError("PO not found or access denied")
    return po


def create_purchase_order(db: Session, user_id: str, payload: POCreate) -> PurchaseOrder:
    with unit_of_work(db):
        exists = db.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.user_id == user_id)
            .where(PurchaseOrder.po_number == payload.po_number)
        ).scalar_one_or_none()
        if exists:
            raise ValidationError("PO number already exists")

        for ln in payload.lines:
            if ln.material_id is None:
                continue
            material = db.get(Material, ln.material_id)
            if not material or material.user_id != user_id:
                raise NotFoundError(f"Material {ln.material_id} not found")

        now = utcnow()
        po = PurchaseOrder(
            user_id=user_id,
            po_number=payload.po_number,
            supplier_name=payload.supplier_name,
            status=POStatus.draft,
            order_date=payload.order_date or now,
            expected_delivery_date=payload.expected_delivery_date,
            notes=payload.notes,
            total_ordered_quantity=sum(ln.ordered_quantity for ln in payload.lines),
            total_received_quantity=0,
            is_fully_received=False,
        )
        for index, ln in enumerate(payload.lines, start=1):
            po.lines.append(
                PurchaseOrderLine(
                    line_number=index,
                    material_id=ln.material_id,
                    material_name=ln.material_name,
                    material_sku=ln.material_sku,
                    description=ln.description,
                    unit=ln.unit,
                    unit_price=ln.unit_price,
                    ordered_quantity=ln.ordered_quantity,
                    received_quantity=0,
                    remaining_quantity=ln.ordered_quantity,
                    status=POLineStatus.open,
                )
            )
        db.add(po)
        try:
            db.flush()
        except IntegrityError as exc:
            # création concurrente du même numéro (uq_purchase_orders_user_po_number)
            raise ValidationError("PO number already exists") from exc

    db.refresh(po)
    return po


def get_purchase_order(db: Session, user_id: str, po_id: int, *, for_update: bool = False) -> PurchaseOrder:
    return _owned_po(db, user_id, po_id, for_update=for_update)


def list_purchase_orders(db: Session, user_id: str) -> list[PurchaseOrder]:
    return list(
        db.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.user_id == user_id)
            .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        )
        .scalars()
        .all()
    )


def list_po_receipts(db: Session, user_id: str, po_id: int) -> list[Receipt]:
    _owned_po(db, user_id, po_id)
    return list(
        db.execute(
            select(Receipt)
            .where(Receipt.po_id == po_id)
            .where(Receipt.user_id == user_id)
            .order_by(Receipt.created_at.desc(), Receipt.id.desc())
        )
        .scalars()
        .all()
    )


# ---------- Réception ----------
def _receive_into_stock(
    db: Session,
    *,
    user_id: str,
    po: PurchaseOrder,
    receipt: Receipt,
    line: PurchaseOrderLine,
    item: ReceiptLineCreate,
    to_location_id: int | None,
) -> None:
    """Mouvement "receipt" + incrément du cache matériel (lignes acceptées seulement)."""
    material = None
    if line.material_id is not None:
        material = db.get(Material, line.material_id, with_for_update=True)
        if not material:
            raise NotFoundError(f"Material {line.material_id} not found")

    movement_id = append_movement(
        db,
        user_id,
        MovementCreate(
            material_id=line.material_id,
            material_name=line.material_name,
            movement_type=MovementType.receipt,
            quantity=item.received_quantity,
            to_location_id=to_location_id,
            reference_type=ReferenceType.receipt,
            reference_id=str(receipt.id),
            notes=f"Receipt from PO {po.po_number}",
        ),
    )

    if material is not None:
        mv = db.get(InventoryMovement, movement_id)
        mv.previous_quantity = material.quantity
        material.quantity = material.quantity + item.received_quantity
        mv.new_quantity = material.quantity


def process_receipt(
    db: Session,
    request: ReceiptCreate,
    *,
    user_id: str,
    recorder: EventRecorder | None = None,
) -> ReceiptResult:
    """
    Réception d'un PO, tout ou rien.

    1. PO + lignes chargés (verrouillés) ; tenant vérifié
    2. receipt créé (pending)
    3. par ligne : contrôle sur-réception -> receipt line -> MAJ ligne PO
       -> si accepted : mouvement "receipt" + cache matériel
    4. statut PO recalculé sur le cumul de toutes les lignes
    Une seule ligne en sur-réception = rien n'est écrit.
    """
    with unit_of_work(db):
        po = _owned_po(db, user_id, request.po_id, for_update=True)
        previous_status = po.status

        lines = (
            db.execute(
                select(PurchaseOrderLine)
                .where(PurchaseOrderLine.po_id == po.id)
                .order_by(PurchaseOrderLine.line_number)
                .with_for_update()
            )
            .scalars()
            .all()
        )
        po_lines = {ln.id: ln for ln in lines}

        if request.to_location_id is not None:
            ensure_location(db, user_id, request.to_location_id)

        now = utcnow()
        receipt = Receipt(
            user_id=user_id,
            receipt_number=f"RCP-{int(now.timestamp() * 1000)}",
            po_id=po.id,
            shipment_id=request.shipment_id,
            status=ReceiptStatus.pending,
            received_date=request.received_date or now,
            received_by=user_id,
            notes=request.notes,
        )
        db.add(receipt)
        db.flush()  # get receipt.id

        for item in request.line_items:
            line = po_lines.get(item.po_line_id)
            if not line:
                raise NotFoundError(f"PO line {item.po_line_id} not found")

            new_received = line.received_quantity + item.received_quantity
            if new_received > line.ordered_quantity:
                raise OverReceiptError(line.material_name, item.received_quantity)

            db.add(
                ReceiptLine(
                    receipt_id=receipt.id,
                    po_line_id=line.id,
                    material_id=line.material_id,
                    material_name=line.material_name,
                    material_sku=line.material_sku,
                    unit=line.unit,
                    received_quantity=item.received_quantity,
                    quality_status=item.quality_status,
                    notes=item.notes,
                )
            )

            line.received_quantity = new_received
            line.remaining_quantity = line.ordered_quantity - new_received
            line.status = line_status(line.remaining_quantity)

            if item.quality_status == QualityStatus.accepted:
                _receive_into_stock(
                    db,
                    user_id=user_id,
                    po=po,
                    receipt=receipt,
                    line=line,
                    item=item,
                    to_location_id=request.to_location_id,
                )

        # cumul déjà reçu + reçu maintenant, toutes lignes confondues
        total_ordered = sum(ln.ordered_quantity for ln in lines)
        total_received = sum(ln.received_quantity for ln in lines)

        po.status = derive_po_status(total_received, total_ordered)
        po.total_ordered_quantity = total_ordered
        po.total_received_quantity = total_received
        po.is_fully_received = total_received >= total_ordered
        receipt.status = ReceiptStatus.completed

        receipt_id = int(receipt.id)
        new_status = po.status
        po_number = po.po_number

    logger.info(
        "Receipt %s committed for PO %s (%s/%s received, status=%s)",
        receipt_id,
        po_number,
        total_received,
        total_ordered,
        new_status.value,
    )

    emit_event(
        recorder,
        "receipt.processed",
        user_id,
        {"id": receipt_id, "po_id": request.po_id, "lines": len(request.line_items)},
    )
    if new_status != previous_status:
        emit_event(
            recorder,
            "purchase_order.status_changed",
            user_id,
            {"id": request.po_id, "from": previous_status.value, "to": new_status.value},
        )

    return ReceiptResult(receipt_id=receipt_id)

