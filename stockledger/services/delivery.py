"""
Delivery service.

Confirmation physique d'une livraison au quai (différent de la réception
formelle) : attendu vs réel par ligne, création des ShipmentIssue, mise à
jour du cache quantité matériel, statut du PO.

Deux niveaux de garantie dans la MÊME transaction :
- delivery + issues + statut PO : obligatoires (tout ou rien)
- cache matériel : best effort, un SAVEPOINT par matériel ; un échec est
  loggé et ce matériel est sauté, la livraison est quand même commitée.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import (
    Delivery,
    DeliveryLineItem,
    Material,
    ShipmentIssue,
    utcnow,
)
from stockledger.app.db.models.core_types import (
    DeliveryStatus,
    IssueStatus,
    POStatus,
)
from stockledger.app.schemas.delivery import DeliveryConfirmationForm, DeliveryResult, DeliveryStatistics
from stockledger.services.audit import EventRecorder, emit_event
from stockledger.services.delivery_rules import (
    delivery_status,
    has_delivery_issue,
    issue_description,
    issue_type_for,
    new_inventory_quantity,
    quantity_difference,
    validate_line_item,
)
from stockledger.services.errors import AuthorizationError, NotFoundError, ValidationError
from stockledger.services.procurement import get_purchase_order
from stockledger.services.transaction import unit_of_work

logger = logging.getLogger(__name__)


def po_status_after_delivery(
    current: POStatus,
    po_line_ids: set[int],
    delivered_line_ids: set[int],
) -> POStatus:
    if po_line_ids and po_line_ids <= delivered_line_ids:
        return POStatus.delivered
    if po_line_ids & delivered_line_ids:
        return POStatus.partial
    return current


def _delivered_line_ids(db: Session, po_id: int) -> set[int]:
    # toutes livraisons du PO confondues (celle en cours est déjà flushée)
    rows = db.execute(
        select(DeliveryLineItem.po_line_item_id)
        .join(Delivery, Delivery.id == DeliveryLineItem.delivery_id)
        .where(Delivery.purchase_order_id == po_id)
        .where(DeliveryLineItem.status.is_not(None))
    ).scalars()
    return {int(x) for x in rows}


def _adjust_material_quantity(db: Session, user_id: str, material_id: int, delta: int) -> bool:
    material = db.get(Material, material_id, with_for_update=True)
    if not material or material.user_id != user_id:
        logger.warning("Material %s not found, inventory cache not updated", material_id)
        return False

    material.quantity = new_inventory_quantity(material.quantity, delta)
    db.flush()
    return True


def _fold_into_inventory(db: Session, user_id: str, items: list[DeliveryLineItem]) -> int:
    deltas: dict[int, int] = {}
    for item in items:
        if item.material_id is None or item.status is None:
            continue
        deltas[item.material_id] = deltas.get(item.material_id, 0) + item.actual_quantity

    updated = 0
    for material_id, delta in deltas.items():
        try:
            with db.begin_nested():
                if _adjust_material_quantity(db, user_id, material_id, delta):
                    updated += 1
        except SQLAlchemyError:
            logger.exception("Error updating material %s, inventory cache update skipped", material_id)
    return updated


def process_delivery_confirmation(
    db: Session,
    form: DeliveryConfirmationForm,
    *,
    user_id: str,
    recorder: EventRecorder | None = None,
) -> DeliveryResult:
    with unit_of_work(db):
        po = get_purchase_order(db, user_id, form.purchase_order_id, for_update=True)
        previous_status = po.status
        po_lines = {ln.id: ln for ln in po.lines}

        # ---------- 1. lignes + validation (AUCUNE écriture avant) ----------
        items: list[DeliveryLineItem] = []
        errors: list[str] = []
        for entry in form.line_items:
            line = po_lines.get(entry.po_line_item_id)
            if not line:
                raise NotFoundError(f"PO line item not found: {entry.po_line_item_id}")

            errors.extend(
                f"{line.material_name}: {msg}"
                for msg in validate_line_item(
                    entry.status,
                    line.expected_quantity,
                    entry.actual_quantity,
                    entry.damage_description,
                )
            )
            items.append(
                DeliveryLineItem(
                    po_line_item_id=line.id,
                    material_id=line.material_id,
                    material_name=line.material_name,
                    expected_quantity=line.expected_quantity,
                    actual_quantity=entry.actual_quantity,
                    status=entry.status,
                    notes=entry.notes,
                    damage_description=entry.damage_description,
                )
            )

        if errors:
            raise ValidationError("; ".join(errors))

        # ---------- 2. delivery ----------
        delivery = Delivery(
            user_id=user_id,
            purchase_order_id=po.id,
            po_number=po.po_number,
            delivery_date=form.delivery_date,
            received_by=form.received_by,
            status=delivery_status(item.status for item in items),
            notes=form.notes,
            line_items=items,
        )
        db.add(delivery)
        db.flush()  # get delivery.id

        # ---------- 3. issues ----------
        issues: list[ShipmentIssue] = []
        for item in items:
            if not has_delivery_issue(item.status):
                continue
            issues.append(
                ShipmentIssue(
                    user_id=user_id,
                    delivery_id=delivery.id,
                    purchase_order_id=po.id,
                    po_line_item_id=item.po_line_item_id,
                    material_id=item.material_id,
                    material_name=item.material_name,
                    issue_type=issue_type_for(item.status),
                    expected_quantity=item.expected_quantity,
                    actual_quantity=item.actual_quantity,
                    quantity_difference=quantity_difference(item.expected_quantity, item.actual_quantity),
                    description=issue_description(
                        item.status,
                        item.expected_quantity,
                        item.actual_quantity,
                        item.material_name,
                        item.damage_description,
                    ),
                    status=IssueStatus.open,
                )
            )
        db.add_all(issues)
        db.flush()

        # ---------- 4. cache matériel (best effort) ----------
        inventory_updated = _fold_into_inventory(db, user_id, items)

        # ---------- 5. statut PO ----------
        new_status = po_status_after_delivery(
            po.status,
            set(po_lines),
            _delivered_line_ids(db, po.id),
        )
        po.status = new_status

        delivery_id = int(delivery.id)
        issue_events = [
            {"id": int(i.id), "delivery_id": delivery_id, "issue_type": i.issue_type.value, "description": i.description}
            for i in issues
        ]

    logger.info(
        "Delivery %s committed for PO %s (%s issues, %s materials updated)",
        delivery_id,
        form.purchase_order_id,
        len(issue_events),
        inventory_updated,
    )

    for payload in issue_events:
        emit_event(recorder, "shipment_issue.created", user_id, payload)
    if new_status != previous_status:
        emit_event(
            recorder,
            "purchase_order.status_changed",
            user_id,
            {"id": form.purchase_order_id, "from": previous_status.value, "to": new_status.value},
        )

    return DeliveryResult(
        delivery_id=delivery_id,
        issues_created=len(issue_events),
        inventory_updated=inventory_updated,
    )


# ---------- Issues ----------
def resolve_shipment_issue(
    db: Session,
    issue_id: int,
    resolution_notes: str,
    resolved_by: str,
    *,
    recorder: EventRecorder | None = None,
) -> None:
    with unit_of_work(db):
        issue = db.get(ShipmentIssue, issue_id, with_for_update=True)
        if not issue:
            raise NotFoundError("Shipment issue not found")
        if issue.user_id != resolved_by:
            raise AuthorizationError("Shipment issue belongs to another user")
        if issue.status != IssueStatus.open:
            raise ValidationError(f"Shipment issue is already {issue.status.value}")

        issue.status = IssueStatus.resolved
        issue.resolved_at = utcnow()
        issue.resolved_by = resolved_by
        issue.resolution_notes = resolution_notes

    emit_event(recorder, "shipment_issue.resolved", resolved_by, {"id": issue_id, "notes": resolution_notes})


# ---------- Lecture ----------
def list_deliveries(db: Session, user_id: str, purchase_order_id: int | None = None) -> list[Delivery]:
    stmt = select(Delivery).where(Delivery.user_id == user_id)
    if purchase_order_id is not None:
        stmt = stmt.where(Delivery.purchase_order_id == purchase_order_id)
    stmt = stmt.order_by(Delivery.delivery_date.desc(), Delivery.id.desc())
    return list(db.execute(stmt).scalars().all())


def list_shipment_issues(db: Session, user_id: str, status: IssueStatus | None = None) -> list[ShipmentIssue]:
    stmt = select(ShipmentIssue).where(ShipmentIssue.user_id == user_id)
    if status is not None:
        stmt = stmt.where(ShipmentIssue.status == status)
    stmt = stmt.order_by(ShipmentIssue.created_at.desc(), ShipmentIssue.id.desc())
    return list(db.execute(stmt).scalars().all())


def get_delivery_statistics(db: Session, user_id: str) -> DeliveryStatistics:
    delivery_counts = dict(
        db.execute(
            select(Delivery.status, func.count(Delivery.id))
            .where(Delivery.user_id == user_id)
            .group_by(Delivery.status)
        ).all()
    )
    issue_counts = dict(
        db.execute(
            select(ShipmentIssue.status, func.count(ShipmentIssue.id))
            .where(ShipmentIssue.user_id == user_id)
            .group_by(ShipmentIssue.status)
        ).all()
    )
    return DeliveryStatistics(
        total_deliveries=sum(delivery_counts.values()),
        deliveries_with_issues=delivery_counts.get(DeliveryStatus.issues, 0),
        open_issues=issue_counts.get(IssueStatus.open, 0),
        resolved_issues=issue_counts.get(IssueStatus.resolved, 0),
    )
