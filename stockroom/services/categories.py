"""
Category Registry.

Adds product categories and keeps the list shown on the settings screen.
After a successful add the whole list is re-read from the store, so the
screen always shows what the store holds, including the generated id and
any rows added by another session.
"""

from __future__ import annotations

import time
from typing import Optional

from stockroom.config import AppConfig
from stockroom.logger import StructuredLogger
from stockroom.models.category import Category
from stockroom.models.enums import SettingsErrorCode
from stockroom.models.errors import DuplicateNameError, StoreError
from stockroom.models.service_models import ServiceResult
from stockroom.repositories.config_store import ConfigStore
from stockroom.services.base_service import BaseService


class CategoryRegistry(BaseService):
    """Service layer for product categories."""

    def __init__(
        self,
        store: ConfigStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._store = store
        self._added_display_s = config.CATEGORY_ADDED_DISPLAY_S
        self._categories: list[Category] = []
        self._last_added_at: Optional[float] = None

    @property
    def categories(self) -> tuple[Category, ...]:
        return tuple(self._categories)

    def reload(self) -> ServiceResult:
        try:
            self._categories = self._store.load_categories()
        except StoreError as exc:
            return self._store_failure(exc, "Loading categories")
        return ServiceResult.ok(list(self._categories))

    def add(self, name: str, description: str = "") -> ServiceResult:
        """Create a category.

        Returns:
            ServiceResult with the created :class:`Category`.  On
            ``DUPLICATE`` the caller keeps the form open for editing.
        """
        name = (name or "").strip()
        description = (description or "").strip()
        if not name:
            return ServiceResult.fail(
                SettingsErrorCode.EMPTY_NAME, "Category name is required.", 400,
            )

        try:
            created = self._store.add_category(name, description)
        except DuplicateNameError:
            self._logger.info("Category '%s' already exists.", name)
            return ServiceResult.fail(
                SettingsErrorCode.DUPLICATE,
                f"A category named '{name}' already exists.",
                409,
            )
        except StoreError as exc:
            return self._store_failure(exc, "Adding the category")

        self._last_added_at = time.monotonic()
        reloaded = self.reload()
        if not reloaded.success:
            self._logger.warning(
                "Category '%s' was added but the list could not be refreshed.", name,
            )
        return ServiceResult.ok(created)

    def just_added(self, now: Optional[float] = None) -> bool:
        """``True`` while the "category added" confirmation should show.

        *now* is a ``time.monotonic()`` reading; tests pass it explicitly.
        """
        if self._last_added_at is None:
            return False
        current = time.monotonic() if now is None else now
        return current - self._last_added_at < self._added_display_s

    def clear_added(self) -> None:
        self._last_added_at = None
