"""
Settings Model.

The single application settings record.  Monetary and rate fields are
``Decimal`` so values such as a 7.5 % tax rate survive a save / reload
cycle without floating-point drift.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from stockroom.models.enums import BackupFrequency, Currency, DateFormat, Language, Theme

_HUNDRED = Decimal("100")


class Settings(BaseModel):
    """Mutable application configuration.

    Invariants (enforced on construction and on ``model_copy(update=...)``
    via :meth:`Settings.with_changes`):

    - ``usd_to_iqd_rate`` is strictly positive.
    - ``tax_rate`` is a fraction in ``[0, 1]``.
    - ``low_stock_threshold`` is non-negative.
    """

    id: Optional[str] = None
    company_name: str = ""
    company_address: str = ""
    company_phone: str = ""
    company_email: str = ""
    currency: Currency = Currency.USD
    usd_to_iqd_rate: Decimal = Field(default=Decimal("1320"), gt=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    low_stock_threshold: int = Field(default=10, ge=0)
    date_format: DateFormat = DateFormat.US
    theme: Theme = Theme.LIGHT
    language: Language = Language.EN
    auto_backup: bool = False
    backup_frequency: BackupFrequency = BackupFrequency.DAILY
    email_notifications: bool = True
    sms_notifications: bool = False
    last_seller: Optional[str] = None

    model_config = {"from_attributes": True, "validate_assignment": True}

    @field_validator("company_name", "company_address", "company_phone", "company_email", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: object) -> object:
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("usd_to_iqd_rate", "tax_rate", mode="before")
    @classmethod
    def _float_via_str(cls, v: object) -> object:
        # Floats go through str() so 0.075 becomes Decimal("0.075"),
        # not its binary expansion.
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @staticmethod
    def tax_rate_from_percent(percent: Union[str, int, float, Decimal]) -> Decimal:
        """Convert a percentage typed on the form into a stored fraction.

        Raises:
            ValueError: If *percent* is not a number or lies outside
                ``[0, 100]``.
        """
        try:
            value = Decimal(str(percent))
        except InvalidOperation as exc:
            raise ValueError(f"Tax rate '{percent}' is not a number.") from exc
        if not value.is_finite() or value < 0 or value > _HUNDRED:
            raise ValueError(
                f"Tax rate must be between 0 and 100 percent, got {percent}."
            )
        return value / _HUNDRED

    @property
    def tax_rate_percent(self) -> Decimal:
        return self.tax_rate * _HUNDRED

    def with_changes(self, **changes: object) -> "Settings":
        """Return a validated copy with *changes* applied.

        ``model_copy(update=...)`` skips validation; this goes through
        ``model_validate`` so a bad value raises instead of slipping in.
        """
        data = self.model_dump()
        data.update(changes)
        return Settings.model_validate(data)

    def convert_usd_to_iqd(self, amount_usd: Union[str, int, float, Decimal]) -> Decimal:
        """Convert a USD amount with the configured exchange rate."""
        return Decimal(str(amount_usd)) * self.usd_to_iqd_rate
