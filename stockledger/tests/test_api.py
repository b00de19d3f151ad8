from sqlalchemy import select

from stockledger.app.db.models.models_v1 import AuditLog

from stockledger.tests.conftest import USER, make_material

H = {"X-User-Id": USER}


def test_health(client):
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_identity_header_required(client):
    r = client.get("/v1/locations")
    assert r.status_code == 401


def test_locations_crud(client):
    r = client.post("/v1/locations", json={"name": "Yard", "type": "jobsite"}, headers=H)
    assert r.status_code == 200, r.text
    loc_id = r.json()["id"]

    r = client.patch(f"/v1/locations/{loc_id}", json={"description": "north gate"}, headers=H)
    assert r.json()["description"] == "north gate"
    assert r.json()["name"] == "Yard"

    r = client.patch(f"/v1/locations/{loc_id}", json={"name": "x"}, headers={"X-User-Id": "intruder"})
    assert r.status_code == 403

    assert client.delete(f"/v1/locations/{loc_id}", headers=H).status_code == 200
    assert client.get("/v1/locations", headers=H).json() == []


def test_location_update_rejects_null_required_fields(client):
    """
    GIVEN une location existante
    THEN name / type à null explicite -> 422, la location est inchangée
    """
    loc_id = client.post("/v1/locations", json={"name": "Depot", "type": "warehouse"}, headers=H).json()["id"]

    assert client.patch(f"/v1/locations/{loc_id}", json={"name": None}, headers=H).status_code == 422
    assert client.patch(f"/v1/locations/{loc_id}", json={"type": None}, headers=H).status_code == 422

    # description est nullable : null efface
    r = client.patch(f"/v1/locations/{loc_id}", json={"description": None}, headers=H)
    assert r.status_code == 200, r.text

    [loc] = client.get("/v1/locations", headers=H).json()
    assert (loc["name"], loc["type"], loc["description"]) == ("Depot", "warehouse", None)


def test_movement_then_balances(client, db_session):
    cement = make_material(db_session)
    wh = client.post("/v1/locations", json={"name": "Warehouse"}, headers=H).json()
    truck = client.post("/v1/locations", json={"name": "Truck", "type": "truck"}, headers=H).json()

    r = client.post(
        "/v1/stock-movements",
        json={
            "material_id": cement.id,
            "material_name": "Cement",
            "movement_type": "receipt",
            "quantity": 30,
            "to_location_id": wh["id"],
        },
        headers=H,
    )
    assert r.status_code == 200, r.text

    r = client.post(
        "/v1/stock-movements",
        json={
            "material_id": cement.id,
            "material_name": "Cement",
            "movement_type": "transfer",
            "quantity": 12,
            "from_location_id": wh["id"],
            "to_location_id": truck["id"],
        },
        headers=H,
    )
    assert r.status_code == 200, r.text

    r = client.get("/v1/stock-movements", params={"movement_type": "transfer"}, headers=H)
    assert [m["quantity"] for m in r.json()] == [12]

    r = client.get("/v1/stock/balances", headers=H)
    assert [(b["location_name"], b["quantity"]) for b in r.json()] == [("Truck", 12), ("Warehouse", 18)]

    r = client.get("/v1/stock/balances", params={"location_id": truck["id"]}, headers=H)
    assert [b["quantity"] for b in r.json()] == [12]


def test_invalid_movement_maps_to_400(client, db_session):
    cement = make_material(db_session)
    wh = client.post("/v1/locations", json={"name": "Warehouse"}, headers=H).json()

    r = client.post(
        "/v1/stock-movements",
        json={
            "material_id": cement.id,
            "material_name": "Cement",
            "movement_type": "transfer",
            "quantity": 5,
            "from_location_id": wh["id"],
            "to_location_id": wh["id"],
        },
        headers=H,
    )
    assert r.status_code == 400
    assert r.json() == {"detail": "Cannot transfer to the same location"}


def test_receive_po_over_receipt_is_409(client, db_session):
    cement = make_material(db_session)

    r = client.post(
        "/v1/purchase-orders",
        json={
            "po_number": "PO-API-1",
            "supplier_name": "ACME",
            "lines": [{"material_id": cement.id, "material_name": "Cement", "ordered_quantity": 10}],
        },
        headers=H,
    )
    assert r.status_code == 200, r.text
    po_id = r.json()["id"]

    po = client.get(f"/v1/purchase-orders/{po_id}", headers=H).json()
    line_id = po["lines"][0]["id"]

    r = client.post(
        "/v1/receipts",
        json={"po_id": po_id, "line_items": [{"po_line_id": line_id, "received_quantity": 10}]},
        headers=H,
    )
    assert r.status_code == 200, r.text

    r = client.post(
        "/v1/receipts",
        json={"po_id": po_id, "line_items": [{"po_line_id": line_id, "received_quantity": 1}]},
        headers=H,
    )
    assert r.status_code == 409
    assert "would exceed ordered quantity for Cement" in r.json()["detail"]

    assert client.get(f"/v1/purchase-orders/{po_id}", headers=H).json()["status"] == "fully_received"
    assert len(client.get(f"/v1/purchase-orders/{po_id}/receipts", headers=H).json()) == 1
    assert client.get(f"/v1/purchase-orders/{po_id}", headers={"X-User-Id": "intruder"}).status_code == 403
    assert client.get("/v1/purchase-orders/4040", headers=H).status_code == 404

    # audit écrit après commit
    actions = db_session.execute(select(AuditLog.action)).scalars().all()
    assert "receipt.processed" in actions


def test_delivery_and_issue_resolution(client, db_session):
    cement = make_material(db_session)
    po = client.post(
        "/v1/purchase-orders",
        json={
            "po_number": "PO-API-2",
            "supplier_name": "ACME",
            "lines": [{"material_id": cement.id, "material_name": "Cement", "ordered_quantity": 20}],
        },
        headers=H,
    ).json()
    line_id = client.get(f"/v1/purchase-orders/{po['id']}", headers=H).json()["lines"][0]["id"]

    r = client.post(
        "/v1/deliveries",
        json={
            "purchase_order_id": po["id"],
            "delivery_date": "2026-05-04T10:00:00Z",
            "received_by": "Dock",
            "line_items": [{"po_line_item_id": line_id, "actual_quantity": 15, "status": "short"}],
        },
        headers=H,
    )
    assert r.status_code == 200, r.text
    assert r.json()["issues_created"] == 1

    stats = client.get("/v1/deliveries/statistics", headers=H).json()
    assert stats["total_deliveries"] == 1
    assert stats["open_issues"] == 1

    issues = client.get("/v1/shipment-issues", params={"status": "open"}, headers=H).json()
    assert issues[0]["quantity_difference"] == -5

    r = client.post(
        f"/v1/shipment-issues/{issues[0]['id']}/resolve",
        json={"resolution_notes": "credit note received"},
        headers=H,
    )
    assert r.status_code == 200
    assert client.get("/v1/shipment-issues", params={"status": "open"}, headers=H).json() == []
    assert len(client.get("/v1/deliveries", headers=H).json()) == 1


def test_lots_for_material(client, db_session):
    cement = make_material(db_session)
    wh = client.post("/v1/locations", json={"name": "Warehouse"}, headers=H).json()

    r = client.post(
        "/v1/lots",
        json={
            "material_id": cement.id,
            "location_id": wh["id"],
            "lot_number": "LOT-2026-01",
            "quantity": 40,
            "received_date": "2026-01-15T08:00:00Z",
        },
        headers=H,
    )
    assert r.status_code == 200, r.text

    lots = client.get("/v1/lots", params={"material_id": cement.id}, headers=H).json()
    assert [lot["lot_number"] for lot in lots] == ["LOT-2026-01"]

    r = client.post(
        "/v1/lots",
        json={"material_id": cement.id, "location_id": 9999, "received_date": "2026-01-15T08:00:00Z"},
        headers=H,
    )
    assert r.status_code == 404
