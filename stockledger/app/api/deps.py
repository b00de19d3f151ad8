from __future__ import annotations

from typing import Generator

from fastapi import Header, HTTPException

from stockledger.app.db.session import SessionLocal
from stockledger.services.audit import AuditLogRecorder, EventRecorder


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    # identité fournie par la passerelle d'auth en amont
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def get_event_recorder() -> EventRecorder:
    return AuditLogRecorder(SessionLocal)
