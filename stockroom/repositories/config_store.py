"""
Configuration Store.

The persistence contract the settings services depend on, assembled from
the per-table repositories.  Services receive a ``ConfigStore`` rather
than four repositories so the contract can be replaced wholesale.

Every method either returns the stored value or raises one of
:class:`DuplicateNameError`, :class:`RecordNotFoundError` (domain) or
:class:`StoreUnavailableError` (transport).
"""

from __future__ import annotations

from typing import Optional

from stockroom.models.alert_rule import AlertRule
from stockroom.models.category import Category
from stockroom.models.pin import PinCredential
from stockroom.models.settings import Settings
from stockroom.repositories.alert_rule_repository import AlertRuleRepository
from stockroom.repositories.category_repository import CategoryRepository
from stockroom.repositories.pin_repository import PinRepository
from stockroom.repositories.settings_repository import SettingsRepository


class ConfigStore:
    """Facade over the configuration repositories."""

    def __init__(
        self,
        settings_repo: SettingsRepository,
        alert_rule_repo: AlertRuleRepository,
        category_repo: CategoryRepository,
        pin_repo: PinRepository,
    ) -> None:
        self._settings_repo = settings_repo
        self._alert_rule_repo = alert_rule_repo
        self._category_repo = category_repo
        self._pin_repo = pin_repo

    # --- Settings -------------------------------------------------------

    def load_settings(self) -> Settings:
        return self._settings_repo.load()

    def save_settings(self, settings: Settings) -> Settings:
        return self._settings_repo.save(settings)

    # --- Alert rules ----------------------------------------------------

    def load_alert_rules(self) -> list[AlertRule]:
        return self._alert_rule_repo.get_all()

    def save_alert_rules(self, rules: list[AlertRule]) -> list[AlertRule]:
        return self._alert_rule_repo.save_all(rules)

    # --- Categories -----------------------------------------------------

    def load_categories(self) -> list[Category]:
        return self._category_repo.get_all()

    def add_category(self, name: str, description: str = "") -> Category:
        return self._category_repo.create(name, description)

    # --- PIN --------------------------------------------------------------

    def load_pin(self) -> Optional[PinCredential]:
        """Cached read, for the PIN access screen."""
        return self._pin_repo.get()

    def find_current_pin(self) -> Optional[PinCredential]:
        """Authoritative read, for the lookup half of a rotation."""
        return self._pin_repo.get_current()

    def rotate_pin(self, current: PinCredential, new_pin: str) -> PinCredential:
        return self._pin_repo.replace(current, new_pin)

    def create_pin(self, pin: str) -> PinCredential:
        return self._pin_repo.create(pin)
