# tests/test_pin_credential.py
from __future__ import annotations

import pytest

from stockroom.models import PinRotationState, SettingsErrorCode
from stockroom.services.pin_credential import PinCredentialService


@pytest.fixture
def service(store, config, test_logger) -> PinCredentialService:
    return PinCredentialService(store=store, config=config, logger=test_logger)


@pytest.fixture
def configured(service, store) -> PinCredentialService:
    store.create_pin("2468")
    assert service.load().data is True
    return service


@pytest.mark.parametrize(
    ("new_pin", "confirm_pin", "code"),
    [
        ("123", "123", SettingsErrorCode.TOO_SHORT),
        ("123", "999", SettingsErrorCode.TOO_SHORT),
        ("12345678", "12345678", SettingsErrorCode.TOO_LONG),
        ("12ab", "12ab", SettingsErrorCode.NOT_NUMERIC),
        ("1234", "1235", SettingsErrorCode.MISMATCH),
    ],
)
def test_validation_order(service, new_pin, confirm_pin, code):
    result = service.validate_rotation(new_pin, confirm_pin)

    assert result.success is False
    assert result.error_code == code
    assert result.status_code == 400


def test_begin_rotation_does_not_touch_stored_pin(configured, store):
    configured.begin_rotation()

    assert configured.state == PinRotationState.EDITING
    assert store.find_current_pin().pin == "2468"


def test_rotate_commits_and_returns_to_idle(configured, store):
    result = configured.rotate("13579", "13579")

    assert result.success is True
    assert result.data.pin == "13579"
    assert configured.state == PinRotationState.IDLE
    assert store.find_current_pin().pin == "13579"
    assert configured.verify("13579") is True
    assert configured.verify("2468") is False


def test_failed_validation_stays_editing_and_keeps_pin(configured, store):
    result = configured.rotate("1234", "1235")

    assert result.error_code == SettingsErrorCode.MISMATCH
    assert configured.state == PinRotationState.EDITING
    assert store.find_current_pin().pin == "2468"


def test_cancel_returns_to_idle(configured):
    configured.begin_rotation()

    configured.cancel_rotation()

    assert configured.state == PinRotationState.IDLE


def test_commit_outside_form_is_invalid_state(configured):
    result = configured.commit_rotation("1357")

    assert result.error_code == SettingsErrorCode.INVALID_STATE


def test_commit_without_record_is_not_found(service):
    result = service.rotate("1357", "1357")

    assert result.error_code == SettingsErrorCode.NOT_FOUND
    assert result.status_code == 404
    assert service.state == PinRotationState.EDITING


def test_bootstrap_creates_first_pin_only_once(service):
    assert service.has_pin is False

    created = service.bootstrap("2468", "2468")
    again = service.bootstrap("1357", "1357")

    assert created.success is True
    assert service.has_pin is True
    assert again.error_code == SettingsErrorCode.ALREADY_CONFIGURED
    assert service.verify("2468") is True


def test_verify_without_pin_is_false(service):
    assert service.verify("2468") is False
    assert service.verify("") is False


def test_rotation_store_outage_is_transport_failure(online_store, fake_supabase, config, test_logger):
    service = PinCredentialService(store=online_store, config=config, logger=test_logger)
    online_store.create_pin("2468")
    fake_supabase.failing_tables.add("pin_settings")

    result = service.rotate("1357", "1357")

    assert result.error_code == SettingsErrorCode.STORE_UNAVAILABLE
    assert result.status_code == 503
    assert service.state == PinRotationState.EDITING
