# tests/test_alert_rules.py
from __future__ import annotations

from decimal import Decimal

import pytest

from stockroom.models import (
    DEFAULT_ALERT_RULES,
    AlertRule,
    AlertRuleType,
    SettingsErrorCode,
    StockLevel,
)
from stockroom.services.alert_rules import AlertRuleEngine, stock_level


@pytest.fixture
def engine(store, test_logger) -> AlertRuleEngine:
    engine = AlertRuleEngine(store=store, logger=test_logger)
    engine.load(DEFAULT_ALERT_RULES)
    return engine


def test_edits_stay_in_working_copy_until_commit(engine, store):
    engine.set_enabled("2", False)
    engine.set_threshold("1", 3)

    stored = {r.id: r for r in store.load_alert_rules()}
    assert stored["2"].enabled is True
    assert stored["1"].threshold == Decimal("10")

    result = engine.commit()

    assert result.success is True
    stored = {r.id: r for r in store.load_alert_rules()}
    assert stored["2"].enabled is False
    assert stored["1"].threshold == Decimal("3")


def test_threshold_on_out_of_stock_is_a_no_op(engine):
    result = engine.set_threshold("2", 5)

    assert result.success is True
    assert engine.rules[1].threshold is None


def test_unknown_rule_is_not_found(engine):
    assert engine.set_enabled("99", True).error_code == SettingsErrorCode.NOT_FOUND
    assert engine.set_threshold("99", 1).status_code == 404


@pytest.mark.parametrize("value", [-1, "-0.5", "abc"])
def test_invalid_threshold_is_rejected(engine, value):
    result = engine.set_threshold("3", value)

    assert result.error_code == SettingsErrorCode.INVALID_VALUE
    assert engine.rules[2].threshold == Decimal("1000")


@pytest.mark.parametrize(
    ("stock", "min_stock", "global_threshold", "expected"),
    [
        (0, 5, None, StockLevel.OUT),
        (0, 0, None, StockLevel.OUT),
        (3, 0, None, StockLevel.GOOD),
        (5, 5, None, StockLevel.LOW),
        (6, 5, None, StockLevel.GOOD),
        (8, None, 8, StockLevel.LOW),
        (10, None, None, StockLevel.LOW),
        (11, None, None, StockLevel.GOOD),
    ],
)
def test_stock_level(stock, min_stock, global_threshold, expected):
    assert stock_level(stock, min_stock, global_threshold) == expected


def test_triggered_for_stock_respects_enable_flag(engine):
    assert [r.id for r in engine.triggered_for_stock(0, 5)] == ["2"]
    assert [r.id for r in engine.triggered_for_stock(2, 5)] == ["1"]
    assert engine.triggered_for_stock(50, 5) == []

    engine.set_enabled("2", False)

    assert engine.triggered_for_stock(0, 5) == []


def test_low_stock_rule_threshold_is_global_default(engine):
    engine.set_threshold("1", 20)

    assert engine.stock_level(15) == StockLevel.LOW
    assert engine.stock_level(15, global_threshold=12) == StockLevel.GOOD


def test_triggered_for_sale(engine):
    assert [r.id for r in engine.triggered_for_sale("1000")] == ["3"]
    assert engine.triggered_for_sale(999.99) == []

    engine.set_enabled("3", False)

    assert engine.triggered_for_sale(5000) == []


def test_stock_summary():
    summary = AlertRuleEngine.stock_summary(
        [StockLevel.OUT, StockLevel.LOW, StockLevel.LOW, StockLevel.GOOD]
    )

    assert summary == {"out_of_stock": 1, "low": 2, "good": 1, "total_needing_attention": 3}


def test_commit_failure_keeps_working_copy(online_store, fake_supabase, test_logger):
    engine = AlertRuleEngine(store=online_store, logger=test_logger)
    engine.load(DEFAULT_ALERT_RULES)
    engine.set_enabled("1", False)
    fake_supabase.failing_tables.add("alert_rules")

    result = engine.commit()

    assert result.error_code == SettingsErrorCode.STORE_UNAVAILABLE
    assert engine.rules[0].enabled is False


def test_replace_accepts_edited_copies_of_the_same_rules(engine):
    edited = [rule.model_copy(update={"enabled": False}) for rule in DEFAULT_ALERT_RULES]

    result = engine.replace(reversed(edited))

    assert result.success is True
    assert all(rule.enabled is False for rule in engine.rules)


@pytest.mark.parametrize(
    "rules",
    [
        list(DEFAULT_ALERT_RULES) + [
            AlertRule(id="99", type=AlertRuleType.LOW_STOCK, threshold=Decimal("5")),
        ],
        list(DEFAULT_ALERT_RULES[:2]),
        list(DEFAULT_ALERT_RULES) + [DEFAULT_ALERT_RULES[0]],
        [
            DEFAULT_ALERT_RULES[0].model_copy(
                update={"type": AlertRuleType.HIGH_VALUE_SALE},
            ),
            *DEFAULT_ALERT_RULES[1:],
        ],
    ],
    ids=["added", "removed", "repeated", "retyped"],
)
def test_replace_rejects_a_different_rule_set(engine, rules):
    before = engine.rules

    result = engine.replace(rules)

    assert result.error_code == SettingsErrorCode.INVALID_VALUE
    assert result.status_code == 400
    assert engine.rules == before


def test_replace_revalidates_unchecked_copies(engine):
    broken = DEFAULT_ALERT_RULES[0].model_copy(update={"threshold": Decimal("-1")})

    result = engine.replace([broken, *DEFAULT_ALERT_RULES[1:]])

    assert result.error_code == SettingsErrorCode.INVALID_VALUE
    assert engine.rules[0].threshold == Decimal("10")
