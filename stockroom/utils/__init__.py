"""Shared utility functions and models for the Stockroom settings core."""

from stockroom.utils.audit import AuditAction, AuditEvent, log_audit_event
from stockroom.utils.string_helpers import JsonValue, is_ascii_digits

__all__ = [
    "AuditAction",
    "AuditEvent",
    "JsonValue",
    "is_ascii_digits",
    "log_audit_event",
]
