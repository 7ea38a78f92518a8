"""
Service Layer Data Transfer Objects.

Pydantic models for validated output at service boundaries.
"""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from stockroom.models.enums import SettingsErrorCode

T = TypeVar("T")

__all__ = [
    "ServiceResult",
    "SubmitReport",
]


class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    All facade and service methods return this, providing a consistent
    contract for the presentation layer.  ``error_code`` lets the caller
    branch on the failure category without parsing ``error``.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[SettingsErrorCode] = None
    status_code: int = 200

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ServiceResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error_code: SettingsErrorCode,
        error: str,
        status_code: int,
        data: Optional[T] = None,
    ) -> "ServiceResult[T]":
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            status_code=status_code,
            data=data,
        )


class SubmitReport(BaseModel):
    """Outcome of persisting the settings form.

    The settings record and the alert-rule list are written separately
    with no transaction spanning both, so each half reports on its own.
    ``None`` means the half had nothing staged and was not written.
    """

    settings_saved: Optional[bool] = None
    alert_rules_saved: Optional[bool] = None
    settings_error: Optional[str] = None
    alert_rules_error: Optional[str] = None

    @property
    def is_partial(self) -> bool:
        outcomes = [o for o in (self.settings_saved, self.alert_rules_saved) if o is not None]
        return True in outcomes and False in outcomes
