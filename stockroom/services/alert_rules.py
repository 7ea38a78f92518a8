"""
Alert Rule Engine.

Holds the working copy of the fixed alert-rule set while the settings form
is open, and evaluates the rules against stock levels and sale totals.

Edits (:meth:`AlertRuleEngine.set_enabled`,
:meth:`AlertRuleEngine.set_threshold`) touch only the working copy.
Nothing reaches the store until :meth:`AlertRuleEngine.commit`, after
which the working copy is replaced by what the store returned.

Stock classification:

- ``out``: stock is zero.
- ``good``: the product's minimum stock is ``0`` (the owner opted out of
  low-stock warnings for it).
- ``low``: stock at or below the product's minimum stock, or the global
  threshold when the product has none.
- ``good`` otherwise.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from stockroom.logger import StructuredLogger
from stockroom.models.alert_rule import AlertRule
from stockroom.models.enums import AlertRuleType, SettingsErrorCode, StockLevel
from stockroom.models.errors import StoreError
from stockroom.models.service_models import ServiceResult
from stockroom.repositories.config_store import ConfigStore
from stockroom.services.base_service import BaseService

Number = Union[int, float, str, Decimal]

# Used when neither the product nor the settings supply a threshold.
_FALLBACK_LOW_STOCK_THRESHOLD: int = 10


def stock_level(
    stock: Number,
    min_stock: Optional[Number] = None,
    global_threshold: Optional[Number] = None,
) -> StockLevel:
    """Classify a product's stock."""
    stock_value = Decimal(str(stock))
    if stock_value == 0:
        return StockLevel.OUT
    if min_stock is not None and Decimal(str(min_stock)) == 0:
        return StockLevel.GOOD

    if min_stock is not None and Decimal(str(min_stock)) > 0:
        threshold = Decimal(str(min_stock))
    elif global_threshold:
        threshold = Decimal(str(global_threshold))
    else:
        threshold = Decimal(_FALLBACK_LOW_STOCK_THRESHOLD)

    return StockLevel.LOW if stock_value <= threshold else StockLevel.GOOD


class AlertRuleEngine(BaseService):
    """Working copy and evaluation of the alert rules."""

    def __init__(self, store: ConfigStore, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._store = store
        self._rules: list[AlertRule] = []

    @property
    def rules(self) -> tuple[AlertRule, ...]:
        return tuple(self._rules)

    def load(self, rules: Iterable[AlertRule]) -> None:
        """Replace the working copy with *rules*."""
        self._rules = [rule.model_copy() for rule in rules]

    def replace(self, rules: Iterable[AlertRule]) -> ServiceResult:
        """Replace the working copy with edited versions of the same rules.

        The rule set is fixed: *rules* must carry exactly the ids already
        loaded, each once and with its type unchanged.  Every rule is
        re-validated.  Anything else is rejected with ``INVALID_VALUE``
        and the working copy is left alone.
        """
        try:
            incoming = [AlertRule.model_validate(rule.model_dump()) for rule in rules]
        except ValidationError as exc:
            return ServiceResult.fail(SettingsErrorCode.INVALID_VALUE, str(exc), 400)

        known = {rule.id: rule.type for rule in self._rules}
        given = {rule.id: rule.type for rule in incoming}
        if len(given) != len(incoming) or given != known:
            return ServiceResult.fail(
                SettingsErrorCode.INVALID_VALUE,
                "Alert rules must keep the ids and types already loaded.",
                400,
            )
        self.load(incoming)
        return ServiceResult.ok(list(self._rules))

    def reload(self) -> ServiceResult:
        """Replace the working copy with the stored rules."""
        try:
            self.load(self._store.load_alert_rules())
        except StoreError as exc:
            return self._store_failure(exc, "Loading alert rules")
        return ServiceResult.ok(list(self._rules))

    # ------------------------------------------------------------------
    # Working-copy edits
    # ------------------------------------------------------------------

    def _index_of(self, rule_id: str) -> Optional[int]:
        for index, rule in enumerate(self._rules):
            if rule.id == rule_id:
                return index
        return None

    def _not_found(self, rule_id: str) -> ServiceResult:
        return ServiceResult.fail(
            SettingsErrorCode.NOT_FOUND, f"Alert rule '{rule_id}' does not exist.", 404,
        )

    def set_enabled(self, rule_id: str, enabled: bool) -> ServiceResult:
        index = self._index_of(rule_id)
        if index is None:
            return self._not_found(rule_id)
        self._rules[index] = self._rules[index].model_copy(update={"enabled": bool(enabled)})
        return ServiceResult.ok(self._rules[index])

    def set_threshold(self, rule_id: str, threshold: Number) -> ServiceResult:
        """Change a rule's threshold.

        ``out_of_stock`` has no threshold; the call succeeds and changes
        nothing.
        """
        index = self._index_of(rule_id)
        if index is None:
            return self._not_found(rule_id)
        rule = self._rules[index]
        if not rule.type.has_threshold:
            return ServiceResult.ok(rule)

        try:
            value = Decimal(str(threshold))
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite() or value < 0:
            return ServiceResult.fail(
                SettingsErrorCode.INVALID_VALUE,
                f"Threshold must be a non-negative number, got {threshold!r}.",
                400,
            )
        self._rules[index] = AlertRule.model_validate(
            {**rule.model_dump(), "threshold": value}
        )
        return ServiceResult.ok(self._rules[index])

    def commit(self) -> ServiceResult:
        """Persist the working copy and adopt what the store returned."""
        try:
            saved = self._store.save_alert_rules(list(self._rules))
        except StoreError as exc:
            return self._store_failure(exc, "Saving alert rules")
        self._rules = list(saved)
        self._logger.info("Alert rules saved (%d rules).", len(saved))
        return ServiceResult.ok(list(saved))

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _rule_of_type(self, rule_type: AlertRuleType) -> Optional[AlertRule]:
        for rule in self._rules:
            if rule.type == rule_type:
                return rule
        return None

    def stock_level(
        self,
        stock: Number,
        min_stock: Optional[Number] = None,
        global_threshold: Optional[Number] = None,
    ) -> StockLevel:
        """Classify *stock*, defaulting the global threshold to the
        low-stock rule's threshold."""
        if global_threshold is None:
            low_rule = self._rule_of_type(AlertRuleType.LOW_STOCK)
            if low_rule is not None:
                global_threshold = low_rule.threshold
        return stock_level(stock, min_stock, global_threshold)

    def triggered_for_stock(
        self,
        stock: Number,
        min_stock: Optional[Number] = None,
        global_threshold: Optional[Number] = None,
    ) -> list[AlertRule]:
        """Enabled rules that fire for a product with this stock."""
        level = self.stock_level(stock, min_stock, global_threshold)
        rule_type = {
            StockLevel.OUT: AlertRuleType.OUT_OF_STOCK,
            StockLevel.LOW: AlertRuleType.LOW_STOCK,
        }.get(level)
        if rule_type is None:
            return []
        rule = self._rule_of_type(rule_type)
        return [rule] if rule is not None and rule.enabled else []

    def triggered_for_sale(self, total: Number) -> list[AlertRule]:
        """Enabled rules that fire for a completed sale of *total*."""
        rule = self._rule_of_type(AlertRuleType.HIGH_VALUE_SALE)
        if rule is None or not rule.enabled or rule.threshold is None:
            return []
        return [rule] if Decimal(str(total)) >= rule.threshold else []

    @staticmethod
    def stock_summary(levels: Iterable[StockLevel]) -> dict[str, int]:
        """Count products per level, as shown on the dashboard."""
        summary = {"out_of_stock": 0, "low": 0, "good": 0, "total_needing_attention": 0}
        for level in levels:
            if level == StockLevel.OUT:
                summary["out_of_stock"] += 1
                summary["total_needing_attention"] += 1
            elif level == StockLevel.LOW:
                summary["low"] += 1
                summary["total_needing_attention"] += 1
            else:
                summary["good"] += 1
        return summary
