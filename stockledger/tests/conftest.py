from __future__ import annotations

import itertools
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from stockledger.app.api.deps import get_db, get_event_recorder
from stockledger.app.db.base import Base
from stockledger.app.db.models.core_types import LocationType
from stockledger.app.db.models.models_v1 import Location, Material
from stockledger.app.db.session import make_engine
from stockledger.app.main import app
from stockledger.app.schemas.procurement import POCreate, POLineCreate
from stockledger.services.audit import AuditLogRecorder
from stockledger.services.procurement import create_purchase_order

USER = "user-a"
OTHER_USER = "user-b"

_po_seq = itertools.count(1)


@pytest.fixture(scope="function")
def session_factory():
    """
    Base SQLite en mémoire, neuve pour chaque test.

    expire_on_commit=True : après commit les objets sont relus depuis la DB
    (dates homogènes, pas de valeurs périmées dans les assertions).
    """
    engine = make_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class RecordingRecorder:
    """Recorder de test : garde les événements en mémoire."""

    def __init__(self):
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def record_event(self, kind: str, actor_id: str, payload: dict[str, Any]) -> None:
        self.events.append((kind, actor_id, payload))

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.events]


class FailingRecorder:
    def record_event(self, kind: str, actor_id: str, payload: dict[str, Any]) -> None:
        raise RuntimeError("audit sink down")


@pytest.fixture
def recorder() -> RecordingRecorder:
    return RecordingRecorder()


@pytest.fixture
def client(db_session, session_factory):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_event_recorder] = lambda: AuditLogRecorder(session_factory)
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


# ---------- Fabriques ----------
def make_material(db: Session, name: str = "Cement", *, user_id: str = USER, quantity: int = 0) -> Material:
    material = Material(user_id=user_id, name=name, unit="bag", quantity=quantity)
    db.add(material)
    db.commit()
    return material


def make_location(
    db: Session,
    name: str = "Main Warehouse",
    *,
    user_id: str = USER,
    type: LocationType = LocationType.warehouse,
) -> Location:
    loc = Location(user_id=user_id, name=name, type=type)
    db.add(loc)
    db.commit()
    return loc


def make_po(db: Session, lines: list[tuple[Material, int]], *, user_id: str = USER):
    """PO avec une ligne par (matériel, quantité commandée)."""
    payload = POCreate(
        po_number=f"PO-TEST-{next(_po_seq):04d}",
        supplier_name="ACME Supply",
        lines=[
            POLineCreate(material_id=m.id, material_name=m.name, ordered_quantity=qty)
            for m, qty in lines
        ],
    )
    return create_purchase_order(db, user_id, payload)
