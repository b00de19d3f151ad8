import pytest
from psycopg import errors as pg_errors
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from stockledger.app.db.models.core_types import (
    MovementType,
    POLineStatus,
    POStatus,
    QualityStatus,
    ReceiptStatus,
    ReferenceType,
)
from stockledger.app.db.models.models_v1 import (
    InventoryMovement,
    Material,
    PurchaseOrder,
    PurchaseOrderLine,
    Receipt,
    ReceiptLine,
)
from stockledger.app.schemas.procurement import POCreate, POLineCreate, ReceiptCreate, ReceiptLineCreate
from stockledger.services.errors import (
    AuthorizationError,
    NotFoundError,
    OverReceiptError,
    TransactionAbortError,
    ValidationError,
)
from stockledger.services.procurement import (
    create_purchase_order,
    derive_po_status,
    line_status,
    list_po_receipts,
    process_receipt,
)

from stockledger.tests.conftest import (
    OTHER_USER,
    USER,
    FailingRecorder,
    make_location,
    make_material,
    make_po,
)


def _receipt(po, *items, to_location_id=None) -> ReceiptCreate:
    return ReceiptCreate(
        po_id=po.id,
        to_location_id=to_location_id,
        line_items=[
            ReceiptLineCreate(po_line_id=line_id, received_quantity=qty, quality_status=quality)
            for line_id, qty, quality in items
        ],
    )


def _count(db, model) -> int:
    return len(db.execute(select(model)).scalars().all())


def test_status_rules():
    assert line_status(0) == POLineStatus.fully_received
    assert line_status(3) == POLineStatus.partially_received

    assert derive_po_status(0, 100) == POStatus.approved
    assert derive_po_status(40, 100) == POStatus.partially_received
    assert derive_po_status(100, 100) == POStatus.fully_received


def test_create_po_rejects_duplicate_number(db_session):
    cement = make_material(db_session)
    po = make_po(db_session, [(cement, 10)])

    assert po.status == POStatus.draft
    assert [ln.remaining_quantity for ln in po.lines] == [10]

    with pytest.raises(ValidationError, match="PO number already exists"):
        create_purchase_order(
            db_session,
            USER,
            POCreate(
                po_number=po.po_number,
                supplier_name="Other",
                lines=[POLineCreate(material_id=cement.id, material_name="Cement", ordered_quantity=1)],
            ),
        )


def _po_payload(po_number: str, material) -> POCreate:
    return POCreate(
        po_number=po_number,
        supplier_name="ACME Supply",
        lines=[POLineCreate(material_id=material.id, material_name=material.name, ordered_quantity=3)],
    )


def test_po_number_is_unique_per_tenant_only(db_session):
    mine = make_material(db_session)
    theirs = make_material(db_session, user_id=OTHER_USER)

    a = create_purchase_order(db_session, USER, _po_payload("PO-2026-001", mine))
    b = create_purchase_order(db_session, OTHER_USER, _po_payload("PO-2026-001", theirs))

    assert a.id != b.id
    assert (a.user_id, b.user_id) == (USER, OTHER_USER)


def test_concurrent_duplicate_po_number_is_a_validation_error(db_session):
    """
    GIVEN un PO du même numéro inséré par une autre transaction entre le
          contrôle d'unicité et le flush (simulé : objet en attente, autoflush off)
    THEN ValidationError, pas d'IntegrityError brute, rien n'est écrit
    """
    cement = make_material(db_session)
    db_session.add(PurchaseOrder(user_id=USER, po_number="PO-RACE", supplier_name="Concurrent"))

    with pytest.raises(ValidationError, match="PO number already exists"):
        create_purchase_order(db_session, USER, _po_payload("PO-RACE", cement))

    assert _count(db_session, PurchaseOrder) == 0


def test_partial_then_full_then_over_receipt(db_session, recorder):
    """
    GIVEN une ligne PO de 100
    - réception de 60 -> partially_received
    - réception de 40 -> fully_received
    - réception de 1  -> OverReceiptError, rien d'écrit
    """
    cement = make_material(db_session, quantity=5)
    wh = make_location(db_session)
    po = make_po(db_session, [(cement, 100)])
    line_id = po.lines[0].id

    process_receipt(
        db_session,
        _receipt(po, (line_id, 60, QualityStatus.accepted), to_location_id=wh.id),
        user_id=USER,
        recorder=recorder,
    )

    line = db_session.get(PurchaseOrderLine, line_id)
    assert (line.received_quantity, line.remaining_quantity) == (60, 40)
    assert line.status == POLineStatus.partially_received
    assert db_session.get(PurchaseOrder, po.id).status == POStatus.partially_received
    assert db_session.get(Material, cement.id).quantity == 65

    process_receipt(
        db_session,
        _receipt(po, (line_id, 40, QualityStatus.accepted), to_location_id=wh.id),
        user_id=USER,
        recorder=recorder,
    )

    po_row = db_session.get(PurchaseOrder, po.id)
    assert po_row.status == POStatus.fully_received
    assert po_row.is_fully_received is True
    assert po_row.total_received_quantity == 100
    assert db_session.get(PurchaseOrderLine, line_id).status == POLineStatus.fully_received

    receipts_before = _count(db_session, Receipt)
    movements_before = _count(db_session, InventoryMovement)

    with pytest.raises(OverReceiptError) as exc:
        process_receipt(
            db_session,
            _receipt(po, (line_id, 1, QualityStatus.accepted), to_location_id=wh.id),
            user_id=USER,
            recorder=recorder,
        )

    assert "Cannot receive 1 - would exceed ordered quantity for Cement" in str(exc.value)
    assert _count(db_session, Receipt) == receipts_before
    assert _count(db_session, InventoryMovement) == movements_before
    assert db_session.get(PurchaseOrderLine, line_id).received_quantity == 100
    assert db_session.get(Material, cement.id).quantity == 105

    assert recorder.kinds().count("receipt.processed") == 2
    assert recorder.kinds().count("purchase_order.status_changed") == 2


def test_one_bad_line_rejects_whole_receipt(db_session):
    cement = make_material(db_session, "Cement")
    rebar = make_material(db_session, "Rebar")
    po = make_po(db_session, [(cement, 10), (rebar, 5)])
    cement_line, rebar_line = (ln.id for ln in po.lines)

    with pytest.raises(OverReceiptError, match="Rebar"):
        process_receipt(
            db_session,
            _receipt(
                po,
                (cement_line, 10, QualityStatus.accepted),
                (rebar_line, 6, QualityStatus.accepted),
            ),
            user_id=USER,
        )

    assert db_session.get(PurchaseOrderLine, cement_line).received_quantity == 0
    assert db_session.get(Material, cement.id).quantity == 0
    assert _count(db_session, ReceiptLine) == 0
    assert db_session.get(PurchaseOrder, po.id).status == POStatus.draft


def test_receipt_movement_and_snapshot(db_session):
    cement = make_material(db_session, quantity=7)
    wh = make_location(db_session)
    po = make_po(db_session, [(cement, 20)])

    result = process_receipt(
        db_session,
        _receipt(po, (po.lines[0].id, 8, QualityStatus.accepted), to_location_id=wh.id),
        user_id=USER,
    )

    receipt = db_session.get(Receipt, result.receipt_id)
    assert receipt.status == ReceiptStatus.completed
    assert receipt.receipt_number.startswith("RCP-")

    mv = db_session.execute(select(InventoryMovement)).scalar_one()
    assert mv.movement_type == MovementType.receipt
    assert mv.to_location_id == wh.id
    assert mv.reference_type == ReferenceType.receipt
    assert mv.reference_id == str(result.receipt_id)
    assert mv.notes == f"Receipt from PO {po.po_number}"
    assert (mv.previous_quantity, mv.new_quantity) == (7, 15)

    assert [r.id for r in list_po_receipts(db_session, USER, po.id)] == [result.receipt_id]


def test_rejected_quality_counts_against_po_but_not_stock(db_session):
    """
    GIVEN une ligne reçue mais rejetée au contrôle qualité
    THEN la ligne PO avance, aucun mouvement, cache matériel inchangé
    """
    cement = make_material(db_session, quantity=3)
    po = make_po(db_session, [(cement, 10)])

    process_receipt(
        db_session,
        _receipt(po, (po.lines[0].id, 4, QualityStatus.rejected)),
        user_id=USER,
    )

    assert db_session.get(PurchaseOrderLine, po.lines[0].id).received_quantity == 4
    assert _count(db_session, InventoryMovement) == 0
    assert db_session.get(Material, cement.id).quantity == 3


def test_receipt_on_foreign_po_is_denied(db_session):
    cement = make_material(db_session)
    po = make_po(db_session, [(cement, 10)])

    with pytest.raises(AuthorizationError):
        process_receipt(
            db_session,
            _receipt(po, (po.lines[0].id, 1, QualityStatus.accepted)),
            user_id=OTHER_USER,
        )


def test_unknown_po_and_line(db_session):
    cement = make_material(db_session)
    po = make_po(db_session, [(cement, 10)])

    with pytest.raises(NotFoundError, match="PO not found"):
        process_receipt(
            db_session,
            ReceiptCreate(po_id=9999, line_items=[ReceiptLineCreate(po_line_id=1, received_quantity=1)]),
            user_id=USER,
        )

    with pytest.raises(NotFoundError, match="PO line 424242 not found"):
        process_receipt(
            db_session,
            _receipt(po, (424242, 1, QualityStatus.accepted)),
            user_id=USER,
        )

    assert _count(db_session, Receipt) == 0


def test_audit_failure_does_not_fail_committed_receipt(db_session):
    cement = make_material(db_session)
    po = make_po(db_session, [(cement, 10)])

    result = process_receipt(
        db_session,
        _receipt(po, (po.lines[0].id, 10, QualityStatus.accepted)),
        user_id=USER,
        recorder=FailingRecorder(),
    )

    assert db_session.get(Receipt, result.receipt_id) is not None
    assert db_session.get(PurchaseOrder, po.id).status == POStatus.fully_received


def _failing_commit(orig):
    def commit():
        raise OperationalError("COMMIT", {}, orig)

    return commit


def test_serialization_conflict_aborts_with_nothing_written(db_session, monkeypatch, recorder):
    """
    GIVEN le commit échoue sur un conflit de sérialisation
    THEN TransactionAbortError (rejouable), rollback complet, aucun événement
    """
    cement = make_material(db_session, quantity=2)
    wh = make_location(db_session)
    po = make_po(db_session, [(cement, 10)])
    line_id = po.lines[0].id

    monkeypatch.setattr(
        db_session,
        "commit",
        _failing_commit(pg_errors.SerializationFailure("could not serialize access")),
    )

    with pytest.raises(TransactionAbortError):
        process_receipt(
            db_session,
            _receipt(po, (line_id, 6, QualityStatus.accepted), to_location_id=wh.id),
            user_id=USER,
            recorder=recorder,
        )

    assert _count(db_session, Receipt) == 0
    assert _count(db_session, ReceiptLine) == 0
    assert _count(db_session, InventoryMovement) == 0
    line = db_session.get(PurchaseOrderLine, line_id)
    assert (line.received_quantity, line.remaining_quantity) == (0, 10)
    assert db_session.get(PurchaseOrder, po.id).status == POStatus.draft
    assert db_session.get(Material, cement.id).quantity == 2
    assert recorder.events == []


def test_connection_failure_is_not_retryable(db_session, monkeypatch):
    cement = make_material(db_session)
    po = make_po(db_session, [(cement, 10)])
    line_id = po.lines[0].id

    monkeypatch.setattr(
        db_session,
        "commit",
        _failing_commit(Exception("server closed the connection unexpectedly")),
    )

    with pytest.raises(OperationalError):
        process_receipt(
            db_session,
            _receipt(po, (line_id, 3, QualityStatus.accepted)),
            user_id=USER,
        )

    assert _count(db_session, Receipt) == 0
    assert db_session.get(PurchaseOrderLine, line_id).received_quantity == 0
