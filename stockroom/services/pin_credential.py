"""
PIN Credential Service.

Owns the administrative PIN: the startup load, the access-screen check,
the first-time bootstrap and the rotation form.

Rotation is a two-state form (``IDLE`` / ``EDITING``).  Validation runs in
a fixed order so the operator always sees the most basic problem first:

1. ``TOO_SHORT``, checked before anything else, even when the two entries
   also differ.
2. ``TOO_LONG``
3. ``NOT_NUMERIC``
4. ``MISMATCH``

A failed commit leaves the form in ``EDITING`` with the entered values
intact; only a successful commit or an explicit cancel returns to ``IDLE``.
"""

from __future__ import annotations

import hmac
from typing import Optional

from stockroom.config import AppConfig
from stockroom.logger import StructuredLogger
from stockroom.models.enums import PinRotationState, SettingsErrorCode
from stockroom.models.errors import StoreError
from stockroom.models.pin import PinCredential
from stockroom.models.service_models import ServiceResult
from stockroom.repositories.config_store import ConfigStore
from stockroom.services.base_service import BaseService
from stockroom.utils.string_helpers import is_ascii_digits


class PinCredentialService(BaseService):
    """Service layer for the singleton administrative PIN."""

    def __init__(
        self,
        store: ConfigStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._store = store
        self._min_length = config.PIN_MIN_LENGTH
        self._max_length = config.PIN_MAX_LENGTH
        self._state: PinRotationState = PinRotationState.IDLE
        self._credential: Optional[PinCredential] = None

    @property
    def state(self) -> PinRotationState:
        return self._state

    @property
    def has_pin(self) -> bool:
        """``True`` once a PIN has been loaded or created."""
        return self._credential is not None

    # ------------------------------------------------------------------
    # Load / verify
    # ------------------------------------------------------------------

    def load(self) -> ServiceResult:
        """Cache the stored PIN.  ``data`` is ``True`` when one exists."""
        try:
            self._credential = self._store.load_pin()
        except StoreError as exc:
            return self._store_failure(exc, "Loading the PIN")
        if self._credential is None:
            self._logger.warning("No PIN record found; PIN access is not configured.")
        return ServiceResult.ok(self._credential is not None)

    def verify(self, pin: str) -> bool:
        """Check *pin* against the cached credential in constant time."""
        if self._credential is None or not pin:
            return False
        return hmac.compare_digest(
            pin.encode("utf-8"), self._credential.pin.encode("utf-8"),
        )

    # ------------------------------------------------------------------
    # Rotation form
    # ------------------------------------------------------------------

    def begin_rotation(self) -> ServiceResult:
        """Open the change-PIN form.  The stored credential is untouched."""
        self._state = PinRotationState.EDITING
        return ServiceResult.ok(self._state)

    def cancel_rotation(self) -> ServiceResult:
        """Discard the form and return to ``IDLE``."""
        self._state = PinRotationState.IDLE
        return ServiceResult.ok(self._state)

    def validate_rotation(self, new_pin: str, confirm_pin: str) -> ServiceResult:
        if len(new_pin) < self._min_length:
            return ServiceResult.fail(
                SettingsErrorCode.TOO_SHORT,
                f"PIN must be at least {self._min_length} digits.",
                400,
            )
        if len(new_pin) > self._max_length:
            return ServiceResult.fail(
                SettingsErrorCode.TOO_LONG,
                f"PIN must be at most {self._max_length} digits.",
                400,
            )
        if not is_ascii_digits(new_pin):
            return ServiceResult.fail(
                SettingsErrorCode.NOT_NUMERIC, "PIN must contain digits only.", 400,
            )
        if new_pin != confirm_pin:
            return ServiceResult.fail(
                SettingsErrorCode.MISMATCH, "PINs do not match.", 400,
            )
        return ServiceResult.ok()

    def commit_rotation(self, new_pin: str) -> ServiceResult:
        """Replace the stored PIN with *new_pin*.

        Returns:
            ServiceResult with the new :class:`PinCredential` on success;
            ``NOT_FOUND`` when no PIN record exists yet (use
            :meth:`bootstrap`), ``INVALID_STATE`` outside the form.
        """
        if self._state != PinRotationState.EDITING:
            return ServiceResult.fail(
                SettingsErrorCode.INVALID_STATE,
                "Open the change-PIN form before saving a new PIN.",
                409,
            )
        try:
            current = self._store.find_current_pin()
            if current is None:
                return ServiceResult.fail(
                    SettingsErrorCode.NOT_FOUND,
                    "No PIN has been configured yet.",
                    404,
                )
            updated = self._store.rotate_pin(current, new_pin)
        except StoreError as exc:
            return self._store_failure(exc, "Changing the PIN")

        self._credential = updated
        self._state = PinRotationState.IDLE
        self._logger.info("PIN rotated (id=%s).", updated.id)
        return ServiceResult.ok(updated)

    def rotate(self, new_pin: str, confirm_pin: str) -> ServiceResult:
        """Validate and commit in one call, opening the form if needed."""
        if self._state == PinRotationState.IDLE:
            self.begin_rotation()
        validation = self.validate_rotation(new_pin, confirm_pin)
        if not validation.success:
            return validation
        return self.commit_rotation(new_pin)

    # ------------------------------------------------------------------
    # First-time setup
    # ------------------------------------------------------------------

    def bootstrap(self, pin: str, confirm_pin: str) -> ServiceResult:
        """Create the first PIN record.  Refused once one exists."""
        validation = self.validate_rotation(pin, confirm_pin)
        if not validation.success:
            return validation
        try:
            if self._store.find_current_pin() is not None:
                return ServiceResult.fail(
                    SettingsErrorCode.ALREADY_CONFIGURED,
                    "A PIN is already configured; change it instead.",
                    409,
                )
            created = self._store.create_pin(pin)
        except StoreError as exc:
            return self._store_failure(exc, "Creating the PIN")

        self._credential = created
        self._logger.info("Initial PIN configured (id=%s).", created.id)
        return ServiceResult.ok(created)
