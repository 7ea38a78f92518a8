"""
Repository Layer Package.

Provides data-access abstractions over Supabase (authoritative store) and
SQLite (local cache / offline store).  Services never access
``db.supabase`` or ``db.sqlite`` directly.

Usage:
    from stockroom.repositories import ConfigStore, SettingsRepository
"""

from stockroom.repositories.alert_rule_repository import AlertRuleRepository
from stockroom.repositories.base_repository import BaseRepository
from stockroom.repositories.category_repository import CategoryRepository
from stockroom.repositories.config_store import ConfigStore
from stockroom.repositories.data_reset_repository import DataResetRepository
from stockroom.repositories.pin_repository import PinRepository
from stockroom.repositories.settings_repository import SettingsRepository

__all__ = [
    "AlertRuleRepository",
    "BaseRepository",
    "CategoryRepository",
    "ConfigStore",
    "DataResetRepository",
    "PinRepository",
    "SettingsRepository",
]
