"""
Emission d'événements vers l'audit / les notifications.

Le moteur ne fait qu'appeler ``record_event(kind, actor_id, payload)``.
Appelé APRÈS commit : un échec ici est loggé, jamais propagé.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Protocol

from sqlalchemy.orm import Session

from stockledger.app.db.models.models_v1 import AuditLog

logger = logging.getLogger(__name__)


class EventRecorder(Protocol):
    def record_event(self, kind: str, actor_id: str, payload: dict[str, Any]) -> None:
        ...


class AuditLogRecorder:
    """Recorder par défaut : une ligne audit_log, dans sa propre session."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record_event(self, kind: str, actor_id: str, payload: dict[str, Any]) -> None:
        entity_type, _, _ = kind.partition(".")
        db = self.session_factory()
        try:
            db.add(
                AuditLog(
                    actor_id=actor_id,
                    action=kind,
                    entity_type=entity_type,
                    entity_id=str(payload.get("id", "")),
                    meta=json.dumps(payload, default=str),
                )
            )
            db.commit()
        finally:
            db.close()


def emit_event(
    recorder: EventRecorder | None,
    kind: str,
    actor_id: str,
    payload: dict[str, Any],
) -> None:
    if recorder is None:
        return
    try:
        recorder.record_event(kind, actor_id, payload)
    except Exception:
        # la transaction métier est déjà commitée
        logger.exception("Failed to record event %s for %s", kind, actor_id)
