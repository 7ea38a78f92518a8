"""
Settings Facade.

The single entry point the settings screen talks to.  It stages form
edits, persists them on submit, and routes PIN, category and reset actions
to the services that own them.

Rules applied here rather than in the leaf services:

- Every mutation requires a signed-in user (``UNAUTHENTICATED`` otherwise)
  and is recorded as an audit event.
- Terminal actions (sales reset, full reset, PIN change, category add) are
  guarded by a non-blocking lock per kind.  A second trigger while the
  first is still running is rejected with ``BUSY`` rather than queued.
- Submit writes settings first and alert rules second.  The two writes are
  independent: if only one succeeds the result is ``PARTIAL_FAILURE`` (207)
  and the :class:`SubmitReport` says which half failed.  The failed half
  stays staged so the operator can submit again.
"""

from __future__ import annotations

import sqlite3
import threading
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional, Union

from pydantic import ValidationError

from stockroom.auth import SessionManager
from stockroom.logger import StructuredLogger
from stockroom.models.alert_rule import AlertRule
from stockroom.models.enums import (
    ResetAllState,
    ResetSalesState,
    SettingsErrorCode,
    StockLevel,
)
from stockroom.models.errors import StoreError
from stockroom.models.service_models import ServiceResult, SubmitReport
from stockroom.models.settings import Settings
from stockroom.models.user import User
from stockroom.repositories.config_store import ConfigStore
from stockroom.services.alert_rules import AlertRuleEngine
from stockroom.services.base_service import BaseService
from stockroom.services.categories import CategoryRegistry
from stockroom.services.destructive_gate import ResetAllGate, ResetSalesGate
from stockroom.services.pin_credential import PinCredentialService
from stockroom.utils.audit import AuditAction, DetailValue, log_audit_event

_LOCK_RESET_SALES: str = "reset_sales"
_LOCK_RESET_ALL: str = "reset_all"
_LOCK_PIN: str = "pin"
_LOCK_CATEGORY: str = "category"


class SettingsFacade(BaseService):
    """Aggregates the settings-core services behind one interface."""

    def __init__(
        self,
        store: ConfigStore,
        pin_service: PinCredentialService,
        alert_engine: AlertRuleEngine,
        category_registry: CategoryRegistry,
        reset_sales_gate: ResetSalesGate,
        reset_all_gate: ResetAllGate,
        session: SessionManager,
        logger: StructuredLogger,
        audit_conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        super().__init__(logger)
        self._store = store
        self._pin = pin_service
        self._alerts = alert_engine
        self._categories = category_registry
        self._reset_sales = reset_sales_gate
        self._reset_all = reset_all_gate
        self._session = session
        self._audit_conn = audit_conn

        self._settings: Settings = Settings()
        self._pending_settings: Optional[Settings] = None
        self._alert_rules_staged: bool = False

        self._locks: dict[str, threading.Lock] = {
            name: threading.Lock()
            for name in (_LOCK_RESET_SALES, _LOCK_RESET_ALL, _LOCK_PIN, _LOCK_CATEGORY)
        }

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        """The last persisted settings record."""
        return self._settings

    @property
    def pending_settings(self) -> Optional[Settings]:
        return self._pending_settings

    @property
    def alert_rules(self) -> tuple[AlertRule, ...]:
        return self._alerts.rules

    @property
    def alert_engine(self) -> AlertRuleEngine:
        return self._alerts

    @property
    def categories(self) -> CategoryRegistry:
        return self._categories

    @property
    def has_pin(self) -> bool:
        return self._pin.has_pin

    @property
    def reset_sales_state(self) -> ResetSalesState:
        return self._reset_sales.state

    @property
    def reset_all_state(self) -> ResetAllState:
        return self._reset_all.state

    @property
    def can_submit_reset_all(self) -> bool:
        return self._reset_all.can_submit

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current_user(self) -> Optional[User]:
        return self._session.operator

    @staticmethod
    def _unauthenticated() -> ServiceResult:
        return ServiceResult.fail(
            SettingsErrorCode.UNAUTHENTICATED, "Sign in to change settings.", 401,
        )

    def _guarded(self, lock_name: str, action: Callable[[], ServiceResult]) -> ServiceResult:
        lock = self._locks[lock_name]
        if not lock.acquire(blocking=False):
            return ServiceResult.fail(
                SettingsErrorCode.BUSY,
                "The previous request is still being processed.",
                409,
            )
        try:
            return action()
        finally:
            lock.release()

    def _audit(
        self,
        user: User,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        details: Optional[dict[str, DetailValue]] = None,
    ) -> None:
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user.id,
            details=details,
            conn=self._audit_conn,
        )

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def load(self) -> ServiceResult:
        """Load settings, alert rules, categories and the PIN.

        Every part is attempted; the first failure is reported.
        """
        failures: list[ServiceResult] = []
        try:
            self._settings = self._store.load_settings()
        except StoreError as exc:
            failures.append(self._store_failure(exc, "Loading settings"))
        for result in (self._alerts.reload(), self._categories.reload(), self._pin.load()):
            if not result.success:
                failures.append(result)

        self._pending_settings = None
        self._alert_rules_staged = False
        if failures:
            return failures[0]
        self._logger.info(
            "Settings loaded: %d alert rules, %d categories, PIN configured=%s.",
            len(self._alerts.rules),
            len(self._categories.categories),
            self._pin.has_pin,
        )
        return ServiceResult.ok(self._settings)

    # ------------------------------------------------------------------
    # Settings form
    # ------------------------------------------------------------------

    def update_settings(self, settings: Settings) -> ServiceResult:
        """Stage a complete settings record for the next submit.

        The record is re-validated first: a ``model_copy(update=...)`` can
        carry values the model would reject, such as a tax rate above 1.
        """
        if self._current_user() is None:
            return self._unauthenticated()
        try:
            staged = Settings.model_validate(settings.model_dump())
        except ValidationError as exc:
            return ServiceResult.fail(SettingsErrorCode.INVALID_VALUE, str(exc), 400)
        self._pending_settings = staged
        return ServiceResult.ok(staged)

    def set_tax_rate_percent(self, percent: Union[str, int, float, Decimal]) -> ServiceResult:
        """Stage a tax rate typed as a percentage (``7.5`` means 7.5 %)."""
        if self._current_user() is None:
            return self._unauthenticated()
        base = self._pending_settings or self._settings
        try:
            staged = base.with_changes(tax_rate=Settings.tax_rate_from_percent(percent))
        except ValueError as exc:
            return ServiceResult.fail(SettingsErrorCode.INVALID_VALUE, str(exc), 400)
        self._pending_settings = staged
        return ServiceResult.ok(staged)

    def update_alert_rules(self, rules: Iterable[AlertRule]) -> ServiceResult:
        """Stage a full alert-rule list for the next submit."""
        if self._current_user() is None:
            return self._unauthenticated()
        result = self._alerts.replace(rules)
        if result.success:
            self._alert_rules_staged = True
        return result

    def set_alert_rule_enabled(self, rule_id: str, enabled: bool) -> ServiceResult:
        if self._current_user() is None:
            return self._unauthenticated()
        result = self._alerts.set_enabled(rule_id, enabled)
        if result.success:
            self._alert_rules_staged = True
        return result

    def set_alert_rule_threshold(
        self, rule_id: str, threshold: Union[str, int, float, Decimal],
    ) -> ServiceResult:
        if self._current_user() is None:
            return self._unauthenticated()
        result = self._alerts.set_threshold(rule_id, threshold)
        if result.success:
            self._alert_rules_staged = True
        return result

    def submit(self) -> ServiceResult:
        """Persist staged settings, then staged alert rules.

        Returns:
            ServiceResult whose ``data`` is always a :class:`SubmitReport`.
        """
        user = self._current_user()
        if user is None:
            return self._unauthenticated()

        report = SubmitReport()
        failure: Optional[ServiceResult] = None

        if self._pending_settings is not None:
            try:
                saved = self._store.save_settings(self._pending_settings)
            except StoreError as exc:
                failure = self._store_failure(exc, "Saving settings")
                report.settings_saved = False
                report.settings_error = failure.error
            else:
                self._settings = saved
                self._pending_settings = None
                report.settings_saved = True
                self._audit(
                    user, AuditAction.UPDATE_SETTINGS, "Settings", saved.id or "",
                    {
                        "currency": saved.currency.value,
                        "usd_to_iqd_rate": str(saved.usd_to_iqd_rate),
                        "tax_rate": str(saved.tax_rate),
                        "low_stock_threshold": saved.low_stock_threshold,
                    },
                )

        if self._alert_rules_staged:
            committed = self._alerts.commit()
            if committed.success:
                self._alert_rules_staged = False
                report.alert_rules_saved = True
                self._audit(
                    user, AuditAction.UPDATE_ALERT_RULES, "AlertRule", "*",
                    {"count": len(self._alerts.rules)},
                )
            else:
                failure = failure or committed
                report.alert_rules_saved = False
                report.alert_rules_error = committed.error

        if failure is None:
            return ServiceResult.ok(report)
        if report.is_partial:
            return ServiceResult.fail(
                SettingsErrorCode.PARTIAL_FAILURE,
                "Some changes were saved; the rest could not be.",
                207,
                data=report,
            )
        return ServiceResult.fail(
            failure.error_code or SettingsErrorCode.STORE_UNAVAILABLE,
            failure.error or "Saving failed.",
            failure.status_code,
            data=report,
        )

    def convert_usd_to_iqd(self, amount: Union[str, int, float, Decimal]) -> ServiceResult:
        """Currency converter panel, using the persisted exchange rate."""
        try:
            converted = self._settings.convert_usd_to_iqd(amount)
        except InvalidOperation:
            return ServiceResult.fail(
                SettingsErrorCode.INVALID_VALUE, f"'{amount}' is not a valid amount.", 400,
            )
        return ServiceResult.ok(converted)

    def stock_level(
        self,
        stock: Union[str, int, float, Decimal],
        min_stock: Optional[Union[str, int, float, Decimal]] = None,
    ) -> StockLevel:
        """Classify stock against the persisted low-stock threshold."""
        return self._alerts.stock_level(stock, min_stock, self._settings.low_stock_threshold)

    def triggered_for_stock(
        self,
        stock: Union[str, int, float, Decimal],
        min_stock: Optional[Union[str, int, float, Decimal]] = None,
    ) -> list[AlertRule]:
        return self._alerts.triggered_for_stock(
            stock, min_stock, self._settings.low_stock_threshold,
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def add_category(self, name: str, description: str = "") -> ServiceResult:
        user = self._current_user()
        if user is None:
            return self._unauthenticated()

        def _add() -> ServiceResult:
            result = self._categories.add(name, description)
            if result.success:
                created = result.data
                self._audit(
                    user, AuditAction.ADD_CATEGORY, "Category", created.id or "",
                    {"name": created.name},
                )
            return result

        return self._guarded(_LOCK_CATEGORY, _add)

    # ------------------------------------------------------------------
    # PIN
    # ------------------------------------------------------------------

    def verify_pin(self, pin: str) -> ServiceResult:
        """PIN access screen check.  Needs no signed-in user."""
        return ServiceResult.ok(self._pin.verify(pin))

    def begin_pin_rotation(self) -> ServiceResult:
        if self._current_user() is None:
            return self._unauthenticated()
        return self._pin.begin_rotation()

    def cancel_pin_rotation(self) -> ServiceResult:
        return self._pin.cancel_rotation()

    def rotate_pin(self, new_pin: str, confirm_pin: str) -> ServiceResult:
        user = self._current_user()
        if user is None:
            return self._unauthenticated()

        def _rotate() -> ServiceResult:
            result = self._pin.rotate(new_pin, confirm_pin)
            if result.success:
                self._audit(user, AuditAction.ROTATE_PIN, "PinCredential", result.data.id or "")
            return result

        return self._guarded(_LOCK_PIN, _rotate)

    def bootstrap_pin(self, pin: str, confirm_pin: str) -> ServiceResult:
        user = self._current_user()
        if user is None:
            return self._unauthenticated()

        def _bootstrap() -> ServiceResult:
            result = self._pin.bootstrap(pin, confirm_pin)
            if result.success:
                self._audit(user, AuditAction.CREATE_PIN, "PinCredential", result.data.id or "")
            return result

        return self._guarded(_LOCK_PIN, _bootstrap)

    # ------------------------------------------------------------------
    # Reset sales history
    # ------------------------------------------------------------------

    def request_reset_sales(self) -> ServiceResult:
        if self._current_user() is None:
            return self._unauthenticated()
        return self._reset_sales.request_reset()

    def confirm_reset_sales_intent(self) -> ServiceResult:
        if self._current_user() is None:
            return self._unauthenticated()
        return self._reset_sales.confirm()

    def cancel_reset_sales(self) -> ServiceResult:
        return self._reset_sales.cancel()

    def choose_inventory_disposition(self, restore_inventory: bool) -> ServiceResult:
        user = self._current_user()
        if user is None:
            return self._unauthenticated()

        def _choose() -> ServiceResult:
            will_run = (
                self._reset_sales.state == ResetSalesState.CHOOSE_INVENTORY_DISPOSITION
            )
            result = self._reset_sales.choose(restore_inventory)
            if not will_run:
                return result
            self._audit(
                user, AuditAction.RESET_SALES_HISTORY, "Sales", "*",
                {"restore_inventory": bool(restore_inventory), "success": result.success},
            )
            return result

        return self._guarded(_LOCK_RESET_SALES, _choose)

    # ------------------------------------------------------------------
    # Reset all data
    # ------------------------------------------------------------------

    def request_reset_all(self) -> ServiceResult:
        if self._current_user() is None:
            return self._unauthenticated()
        return self._reset_all.request_reset()

    def confirm_reset_all_intent(self) -> ServiceResult:
        if self._current_user() is None:
            return self._unauthenticated()
        return self._reset_all.confirm()

    def set_confirmation_text(self, text: str) -> ServiceResult:
        return self._reset_all.set_confirmation_text(text)

    def submit_reset_all(self) -> ServiceResult:
        user = self._current_user()
        if user is None:
            return self._unauthenticated()

        def _submit() -> ServiceResult:
            will_run = self._reset_all.can_submit
            result = self._reset_all.submit()
            if will_run:
                self._audit(
                    user, AuditAction.RESET_ALL_DATA, "All", "*", {"success": result.success},
                )
            return result

        return self._guarded(_LOCK_RESET_ALL, _submit)

    def cancel_reset_all(self) -> ServiceResult:
        return self._reset_all.cancel()

    def abandon_pending_resets(self) -> None:
        """Reset both gates when the operator leaves the settings screen."""
        self._reset_sales.abandon()
        self._reset_all.abandon()
