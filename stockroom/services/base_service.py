"""
Base Service Class.

Standardizes the logger pattern for all services and the translation of
store-layer exceptions into ``ServiceResult`` envelopes.  Services extend
this and add their own dependencies via __init__.
"""

from __future__ import annotations

from stockroom.logger import StructuredLogger
from stockroom.models.enums import SettingsErrorCode
from stockroom.models.errors import (
    DuplicateNameError,
    RecordNotFoundError,
    StoreError,
)
from stockroom.models.service_models import ServiceResult


class BaseService:
    """Base class for all service classes. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    def _store_failure(self, exc: StoreError, action: str) -> ServiceResult:
        """Map a store exception raised during *action* to a failed result."""
        if isinstance(exc, DuplicateNameError):
            return ServiceResult.fail(
                SettingsErrorCode.DUPLICATE, f"{action} failed: {exc}", 409,
            )
        if isinstance(exc, RecordNotFoundError):
            return ServiceResult.fail(
                SettingsErrorCode.NOT_FOUND, f"{action} failed: {exc}", 404,
            )
        self._logger.error("%s failed: %s", action, exc, exc_info=True)
        return ServiceResult.fail(
            SettingsErrorCode.STORE_UNAVAILABLE,
            f"{action} failed: the data store is unavailable. Please try again.",
            503,
        )
