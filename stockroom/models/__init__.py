"""
Data Models Package.

Re-exports all Pydantic models for convenient imports:
    from stockroom.models import Settings, AlertRule, Category, PinCredential
    from stockroom.models import Currency, AlertRuleType, SettingsErrorCode
"""

from stockroom.models.alert_rule import DEFAULT_ALERT_RULES, AlertRule
from stockroom.models.category import Category
from stockroom.models.enums import (
    AlertRuleType,
    Currency,
    DateFormat,
    PinRotationState,
    ResetAllState,
    ResetSalesState,
    SettingsErrorCode,
    StockLevel,
    UserRole,
)
from stockroom.models.pin import PinCredential
from stockroom.models.service_models import ServiceResult, SubmitReport
from stockroom.models.settings import Settings
from stockroom.models.user import User

__all__ = [
    "AlertRule",
    "AlertRuleType",
    "Category",
    "Currency",
    "DEFAULT_ALERT_RULES",
    "DateFormat",
    "PinCredential",
    "PinRotationState",
    "ResetAllState",
    "ResetSalesState",
    "ServiceResult",
    "Settings",
    "SettingsErrorCode",
    "StockLevel",
    "SubmitReport",
    "User",
    "UserRole",
]
