"""
Shared Enumerations for Stockroom Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents, so rows read
back from Supabase or SQLite validate without explicit conversion.
"""

from __future__ import annotations

from enum import StrEnum


class Currency(StrEnum):
    """Display currencies supported by the store front."""

    USD = "USD"
    IQD = "IQD"


class DateFormat(StrEnum):
    """Date patterns offered on the settings form."""

    US = "MM/dd/yyyy"
    EUROPEAN = "dd/MM/yyyy"
    ISO = "yyyy-MM-dd"


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"


class Language(StrEnum):
    EN = "en"
    AR = "ar"


class BackupFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class UserRole(StrEnum):
    """Roles carried by the signed-in user."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    SELLER = "SELLER"


class AlertRuleType(StrEnum):
    """Fixed set of alert rule kinds.

    Only ``LOW_STOCK`` and ``HIGH_VALUE_SALE`` carry a threshold.
    """

    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    HIGH_VALUE_SALE = "high_value_sale"

    @property
    def has_threshold(self) -> bool:
        return self in (AlertRuleType.LOW_STOCK, AlertRuleType.HIGH_VALUE_SALE)


class StockLevel(StrEnum):
    """Stock classification used by the alert rules."""

    OUT = "out"
    LOW = "low"
    GOOD = "good"


class PinRotationState(StrEnum):
    """States of the PIN change form."""

    IDLE = "IDLE"
    EDITING = "EDITING"


class ResetSalesState(StrEnum):
    """States of the sales-history reset gate.

    There is deliberately no transition from
    ``CHOOSE_INVENTORY_DISPOSITION`` back to ``IDLE`` other than choosing a
    disposition: the deletion itself has already been affirmed.
    """

    IDLE = "IDLE"
    CONFIRM_INTENT = "CONFIRM_INTENT"
    CHOOSE_INVENTORY_DISPOSITION = "CHOOSE_INVENTORY_DISPOSITION"
    EXECUTING = "EXECUTING"


class ResetAllState(StrEnum):
    """States of the full-dataset reset gate."""

    IDLE = "IDLE"
    CONFIRM_INTENT = "CONFIRM_INTENT"
    TYPED_CONFIRMATION = "TYPED_CONFIRMATION"
    EXECUTING = "EXECUTING"


class SettingsErrorCode(StrEnum):
    """Exhaustive enumeration of settings-core error categories.

    The presentation layer uses these to pick the message to show and to
    decide whether the form stays editable.
    """

    # Validation (400)
    EMPTY_NAME = "empty_name"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    NOT_NUMERIC = "not_numeric"
    MISMATCH = "mismatch"
    CONFIRMATION_MISMATCH = "confirmation_mismatch"
    INVALID_VALUE = "invalid_value"
    # Session (401)
    UNAUTHENTICATED = "unauthenticated"
    # Not found (404)
    NOT_FOUND = "not_found"
    # Conflict (409)
    DUPLICATE = "duplicate"
    INVALID_STATE = "invalid_state"
    BUSY = "busy"
    ALREADY_CONFIGURED = "already_configured"
    # Partial success (207)
    PARTIAL_FAILURE = "partial_failure"
    # Transport (503)
    STORE_UNAVAILABLE = "store_unavailable"
