"""
AlertRule Model.

One entry of the fixed alert-rule set.  Rules are never created or
deleted by the settings core; only ``enabled`` and ``threshold`` change.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from stockroom.models.enums import AlertRuleType


class AlertRule(BaseModel):
    """A single alert rule.

    ``threshold`` is required for threshold-bearing types
    (``low_stock``, ``high_value_sale``) and must be absent for
    ``out_of_stock``.
    """

    id: str = Field(min_length=1)
    type: AlertRuleType
    enabled: bool = True
    message: str = ""
    threshold: Optional[Decimal] = Field(default=None, ge=0)

    model_config = {"from_attributes": True}

    @field_validator("threshold", mode="before")
    @classmethod
    def _float_via_str(cls, v: object) -> object:
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @model_validator(mode="after")
    def _threshold_matches_type(self) -> "AlertRule":
        if self.type.has_threshold and self.threshold is None:
            raise ValueError(f"Alert rule '{self.id}' ({self.type}) requires a threshold.")
        if not self.type.has_threshold and self.threshold is not None:
            raise ValueError(f"Alert rule '{self.id}' ({self.type}) does not take a threshold.")
        return self


DEFAULT_ALERT_RULES: tuple[AlertRule, ...] = (
    AlertRule(
        id="1",
        type=AlertRuleType.LOW_STOCK,
        enabled=True,
        threshold=Decimal("10"),
        message="Product is running low on stock",
    ),
    AlertRule(
        id="2",
        type=AlertRuleType.OUT_OF_STOCK,
        enabled=True,
        message="Product is out of stock",
    ),
    AlertRule(
        id="3",
        type=AlertRuleType.HIGH_VALUE_SALE,
        enabled=True,
        threshold=Decimal("1000"),
        message="High value sale completed",
    ),
)
