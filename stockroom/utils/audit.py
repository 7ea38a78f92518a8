"""
Audit Trail.

Configuration changes and destructive resets are recorded as structured
audit events: always as an ``AUDIT:`` JSON log line, and in the local
``audit_log`` table when a connection is supplied.  A failure to write the
table is logged and swallowed; the operation being audited has already
happened.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional, Union

from pydantic import BaseModel, Field

from stockroom.logger import StructuredLogger

__all__ = ["AuditAction", "AuditEvent", "DetailValue", "log_audit_event", "persist_audit_event"]

# Scalars only; anything richer belongs in its own table.
DetailValue = Union[str, int, float, bool, None]


class AuditAction(StrEnum):
    """Everything the settings core audits."""

    UPDATE_SETTINGS = "UPDATE_SETTINGS"
    UPDATE_ALERT_RULES = "UPDATE_ALERT_RULES"
    ADD_CATEGORY = "ADD_CATEGORY"
    CREATE_PIN = "CREATE_PIN"
    ROTATE_PIN = "ROTATE_PIN"
    RESET_SALES_HISTORY = "RESET_SALES_HISTORY"
    RESET_ALL_DATA = "RESET_ALL_DATA"


class AuditEvent(BaseModel):
    """One audit trail entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    action: AuditAction
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def log_audit_event(
    logger: StructuredLogger,
    action: AuditAction,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> AuditEvent:
    """Record an audit event and return it.

    Args:
        logger: Destination of the ``AUDIT:`` log line.
        action: What happened.
        entity_type: Kind of record affected (``"Settings"``, ``"Category"``).
        entity_id: Its key, or ``"*"`` for bulk operations.
        user_id: The signed-in operator.
        details: Flat extra context.  Never include PIN values.
        conn: When given, the event is also inserted into ``audit_log``.
    """
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info("AUDIT: %s", event.model_dump_json())

    if conn is not None:
        try:
            persist_audit_event(conn, event)
        except sqlite3.Error as exc:
            logger.warning("Audit event %s not persisted: %s", event.action, exc)
    return event


def persist_audit_event(conn: sqlite3.Connection, event: AuditEvent) -> None:
    conn.execute(
        "INSERT INTO audit_log (timestamp, action, entity_type, entity_id, user_id, details) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (
            event.timestamp,
            event.action.value,
            event.entity_type,
            event.entity_id,
            event.user_id,
            json.dumps(event.details),
        ),
    )
    conn.commit()
