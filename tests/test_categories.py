# tests/test_categories.py
from __future__ import annotations

import time

import pytest

from stockroom.models import SettingsErrorCode
from stockroom.services.categories import CategoryRegistry


@pytest.fixture
def registry(store, config, test_logger) -> CategoryRegistry:
    registry = CategoryRegistry(store=store, config=config, logger=test_logger)
    registry.reload()
    return registry


def test_add_trims_and_reloads(registry):
    result = registry.add("  Beverages  ", "  Cold drinks ")

    assert result.success is True
    assert result.data.name == "Beverages"
    assert result.data.description == "Cold drinks"
    assert [c.name for c in registry.categories] == ["Beverages"]


@pytest.mark.parametrize("name", ["", "   ", None])
def test_empty_name_is_rejected(registry, name):
    result = registry.add(name)

    assert result.error_code == SettingsErrorCode.EMPTY_NAME
    assert result.status_code == 400
    assert registry.categories == ()


def test_duplicate_adds_exactly_one(registry):
    before = len(registry.categories)

    first = registry.add("Beverages")
    second = registry.add("Beverages")

    assert first.success is True
    assert second.error_code == SettingsErrorCode.DUPLICATE
    assert second.status_code == 409
    assert len(registry.categories) == before + 1


def test_reload_picks_up_rows_from_other_sessions(registry, store):
    store.add_category("Dairy")

    registry.add("Bakery")

    assert [c.name for c in registry.categories] == ["Bakery", "Dairy"]


def test_just_added_window(registry):
    assert registry.just_added() is False

    registry.add("Snacks")
    now = time.monotonic()

    assert registry.just_added(now) is True
    assert registry.just_added(now + 3.5) is False

    registry.clear_added()

    assert registry.just_added(now) is False


def test_transport_failure_is_503(online_store, fake_supabase, config, test_logger):
    registry = CategoryRegistry(store=online_store, config=config, logger=test_logger)
    fake_supabase.failing_tables.add("categories")

    result = registry.add("Snacks")

    assert result.error_code == SettingsErrorCode.STORE_UNAVAILABLE
    assert result.status_code == 503
    assert registry.just_added() is False
