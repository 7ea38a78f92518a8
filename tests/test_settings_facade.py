# tests/test_settings_facade.py
from __future__ import annotations

from decimal import Decimal

import pytest

from stockroom.models import (
    DEFAULT_ALERT_RULES,
    AlertRule,
    AlertRuleType,
    Currency,
    ResetAllState,
    ResetSalesState,
    Settings,
    SettingsErrorCode,
    StockLevel,
    SubmitReport,
)
from tests.conftest import RecordingReset, make_facade


@pytest.fixture
def online_facade(online_store, config, resetter, session, test_logger):
    built = make_facade(online_store, config, resetter, session, test_logger)
    assert built.load().success
    return built


def _audit_actions(db) -> list[str]:
    return [row["action"] for row in db.sqlite.execute("SELECT action FROM audit_log ORDER BY id")]


# ---------------------------------------------------------------------------
# Settings form
# ---------------------------------------------------------------------------


def test_tax_rate_round_trips_exactly(facade, store, config, resetter, session, test_logger):
    assert facade.set_tax_rate_percent("7.5").success
    assert facade.submit().success

    reopened = make_facade(store, config, resetter, session, test_logger)
    reopened.load()

    assert reopened.settings.tax_rate == Decimal("0.075")
    assert reopened.settings.tax_rate_percent == Decimal("7.5")


@pytest.mark.parametrize("percent", [-1, 100.01, "ten"])
def test_out_of_range_tax_rate_is_rejected(facade, percent):
    result = facade.set_tax_rate_percent(percent)

    assert result.error_code == SettingsErrorCode.INVALID_VALUE
    assert result.status_code == 400
    assert facade.pending_settings is None


def test_submit_with_nothing_staged_is_empty_success(facade):
    result = facade.submit()

    assert result.success is True
    assert result.data == SubmitReport()


def test_submit_saves_both_halves_and_audits(facade, db):
    facade.update_settings(facade.settings.with_changes(currency="IQD"))
    facade.set_alert_rule_enabled("2", False)

    result = facade.submit()

    assert result.success is True
    assert result.data.settings_saved is True
    assert result.data.alert_rules_saved is True
    assert facade.settings.currency == Currency.IQD
    assert facade.pending_settings is None
    assert _audit_actions(db) == ["UPDATE_SETTINGS", "UPDATE_ALERT_RULES"]


def test_partial_failure_reports_failed_half(online_facade, fake_supabase):
    online_facade.update_settings(Settings(company_name="Corner Shop"))
    online_facade.update_alert_rules(DEFAULT_ALERT_RULES)
    fake_supabase.failing_tables.add("alert_rules")

    result = online_facade.submit()

    assert result.success is False
    assert result.error_code == SettingsErrorCode.PARTIAL_FAILURE
    assert result.status_code == 207
    assert result.data.settings_saved is True
    assert result.data.alert_rules_saved is False
    assert result.data.alert_rules_error
    assert fake_supabase.tables["settings"][0]["company_name"] == "Corner Shop"

    fake_supabase.failing_tables.clear()
    retry = online_facade.submit()

    assert retry.success is True
    assert retry.data.settings_saved is None
    assert retry.data.alert_rules_saved is True


def test_settings_failure_still_attempts_alert_rules(online_facade, fake_supabase):
    online_facade.update_settings(Settings(company_name="Corner Shop"))
    online_facade.set_alert_rule_threshold("3", 2500)
    fake_supabase.failing_tables.add("settings")

    result = online_facade.submit()

    assert result.error_code == SettingsErrorCode.PARTIAL_FAILURE
    assert result.data.settings_saved is False
    assert result.data.alert_rules_saved is True
    assert online_facade.pending_settings is not None


def test_total_failure_is_transport_error(online_facade, fake_supabase):
    online_facade.update_settings(Settings())
    online_facade.update_alert_rules(DEFAULT_ALERT_RULES)
    fake_supabase.failing_tables.update({"settings", "alert_rules"})

    result = online_facade.submit()

    assert result.error_code == SettingsErrorCode.STORE_UNAVAILABLE
    assert result.status_code == 503
    assert result.data.settings_saved is False
    assert result.data.alert_rules_saved is False


def test_unchecked_settings_copy_is_rejected_before_staging(facade, store):
    bad = facade.settings.model_copy(update={"tax_rate": Decimal("1.5")})

    result = facade.update_settings(bad)

    assert result.error_code == SettingsErrorCode.INVALID_VALUE
    assert result.status_code == 400
    assert facade.pending_settings is None
    assert facade.submit().data == SubmitReport()
    assert store.load_settings().tax_rate == Decimal("0")


def test_staged_settings_are_a_validated_copy(facade):
    submitted = Settings(company_name="Corner Shop")

    result = facade.update_settings(submitted)

    assert result.success is True
    assert facade.pending_settings == submitted
    assert facade.pending_settings is not submitted


def test_alert_rules_cannot_grow_through_update(facade, store):
    extra = AlertRule(id="99", type=AlertRuleType.LOW_STOCK, threshold=Decimal("5"))

    result = facade.update_alert_rules([*facade.alert_rules, extra])

    assert result.error_code == SettingsErrorCode.INVALID_VALUE
    assert facade.submit().data.alert_rules_saved is None
    assert [rule.id for rule in store.load_alert_rules()] == ["1", "2", "3"]


def test_stock_level_uses_persisted_low_stock_threshold(facade):
    assert facade.stock_level(15) == StockLevel.GOOD

    facade.update_settings(facade.settings.with_changes(low_stock_threshold=20))
    assert facade.submit().success

    assert facade.stock_level(15) == StockLevel.LOW
    assert facade.stock_level(15, min_stock=5) == StockLevel.GOOD
    assert [rule.id for rule in facade.triggered_for_stock(15)] == ["1"]
    assert [rule.id for rule in facade.triggered_for_stock(0)] == ["2"]


def test_mutations_require_sign_in(facade, session, resetter):
    session.sign_out()

    for result in (
        facade.update_settings(Settings()),
        facade.set_tax_rate_percent(5),
        facade.submit(),
        facade.add_category("Snacks"),
        facade.rotate_pin("1234", "1234"),
        facade.request_reset_sales(),
        facade.request_reset_all(),
        facade.submit_reset_all(),
    ):
        assert result.error_code == SettingsErrorCode.UNAUTHENTICATED
        assert result.status_code == 401
    assert resetter.all_calls == 0


def test_convert_usd_to_iqd(facade):
    assert facade.convert_usd_to_iqd("10").data == Decimal("13200")
    assert facade.convert_usd_to_iqd("ten").error_code == SettingsErrorCode.INVALID_VALUE


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def test_adding_beverages_twice_adds_one(facade, db):
    before = len(facade.categories.categories)

    assert facade.add_category("Beverages").success
    duplicate = facade.add_category("Beverages")

    assert duplicate.error_code == SettingsErrorCode.DUPLICATE
    assert len(facade.categories.categories) == before + 1
    assert _audit_actions(db) == ["ADD_CATEGORY"]


# ---------------------------------------------------------------------------
# PIN
# ---------------------------------------------------------------------------


def test_rotate_pin_validation(facade):
    assert facade.rotate_pin("123", "123").error_code == SettingsErrorCode.TOO_SHORT
    assert facade.rotate_pin("1234", "1235").error_code == SettingsErrorCode.MISMATCH


def test_bootstrap_then_rotate_and_verify(facade, db):
    assert facade.has_pin is False
    assert facade.rotate_pin("2468", "2468").error_code == SettingsErrorCode.NOT_FOUND
    facade.cancel_pin_rotation()

    assert facade.bootstrap_pin("2468", "2468").success
    assert facade.rotate_pin("1357", "1357").success

    assert facade.verify_pin("1357").data is True
    assert facade.verify_pin("2468").data is False
    assert _audit_actions(db) == ["CREATE_PIN", "ROTATE_PIN"]


def test_verify_pin_needs_no_session(facade, session):
    facade.bootstrap_pin("2468", "2468")
    session.sign_out()

    assert facade.verify_pin("2468").data is True


# ---------------------------------------------------------------------------
# Destructive resets
# ---------------------------------------------------------------------------


def test_reset_sales_flow(facade, resetter, db):
    facade.request_reset_sales()
    facade.confirm_reset_sales_intent()

    assert facade.cancel_reset_sales().error_code == SettingsErrorCode.INVALID_STATE

    result = facade.choose_inventory_disposition(True)

    assert result.success is True
    assert resetter.sales_calls == [True]
    assert facade.reset_sales_state == ResetSalesState.IDLE
    assert _audit_actions(db) == ["RESET_SALES_HISTORY"]


def test_reset_all_flow(facade, resetter, db):
    facade.request_reset_all()
    facade.confirm_reset_all_intent()
    facade.set_confirmation_text("yes")

    assert facade.can_submit_reset_all is False
    assert facade.submit_reset_all().error_code == SettingsErrorCode.CONFIRMATION_MISMATCH
    assert _audit_actions(db) == []

    facade.set_confirmation_text("YES")
    result = facade.submit_reset_all()

    assert result.success is True
    assert resetter.all_calls == 1
    assert facade.reset_all_state == ResetAllState.IDLE
    assert _audit_actions(db) == ["RESET_ALL_DATA"]


def test_reentrant_trigger_is_busy(store, config, session, test_logger):
    nested: list = []

    class ReentrantReset(RecordingReset):
        def reset_sales_history(self, restore_inventory: bool) -> list[str]:
            nested.append(built.choose_inventory_disposition(not restore_inventory))
            return super().reset_sales_history(restore_inventory)

    resetter = ReentrantReset()
    built = make_facade(store, config, resetter, session, test_logger)
    built.request_reset_sales()
    built.confirm_reset_sales_intent()

    result = built.choose_inventory_disposition(False)

    assert result.success is True
    assert nested[0].error_code == SettingsErrorCode.BUSY
    assert resetter.sales_calls == [False]


def test_abandon_pending_resets(facade, resetter):
    facade.request_reset_sales()
    facade.confirm_reset_sales_intent()
    facade.request_reset_all()
    facade.confirm_reset_all_intent()
    facade.set_confirmation_text("YES")

    facade.abandon_pending_resets()

    assert facade.reset_sales_state == ResetSalesState.IDLE
    assert facade.reset_all_state == ResetAllState.IDLE
    assert facade.can_submit_reset_all is False
    assert resetter.sales_calls == []
    assert resetter.all_calls == 0
