from flask import g, has_app_context
from slotlayout.extensions import db
from slotlayout.models.audit_log import AuditLog
from slotlayout.utils.transaction import transactional
from typing import Any, Dict, Optional

SYSTEM_ACTOR = "system"


def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    store_id: str,
    payload: dict | None = None
):
    log = AuditLog()

    log.actor_id = g.get("actor_id") or SYSTEM_ACTOR
    log.store_id = store_id
    log.action = action
    log.entity_type = entity_type
    log.entity_id = entity_id
    log.payload = payload or {}

    db.session.add(log)
    return log


def audit_listener(event: str, record: Dict[str, Any], payload: Dict[str, Any]) -> None:
    """
    Version store listener writing one audit row per lifecycle event
    (``slot_configuration.publish`` and friends).
    """
    if not has_app_context():
        return  # Core used outside Flask, nothing to write to

    with transactional():
        log_action(
            action=f"slot_configuration.{event}",
            entity_type="slot_configuration",
            entity_id=record["id"],
            store_id=record["store_id"],
            payload={"page_type": record["page_type"], **payload},
        )
