"""
Destructive Action Gates.

Multi-step confirmation protocols that must be walked, in order, before an
irreversible bulk deletion is invoked.

Sales history::

    IDLE -> CONFIRM_INTENT -> CHOOSE_INVENTORY_DISPOSITION -> (delete) -> IDLE

The disposition step has no cancel: the operator has already affirmed the
deletion and only chooses whether sold stock goes back on the shelves.

Entire dataset::

    IDLE -> CONFIRM_INTENT -> TYPED_CONFIRMATION -> (delete) -> IDLE

Submission requires the typed text to equal the confirmation token
exactly (no case folding, no trimming).

Both gates pass through ``EXECUTING`` while the collaborator runs.  A call
made in the wrong state fails with ``INVALID_STATE`` and changes nothing.
Whatever the collaborator does, the gate ends in ``IDLE``; a failed
deletion is reported and never retried, so trying again means walking the
whole protocol again.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from stockroom.logger import StructuredLogger
from stockroom.models.enums import ResetAllState, ResetSalesState, SettingsErrorCode
from stockroom.models.errors import StoreError
from stockroom.models.service_models import ServiceResult
from stockroom.services.base_service import BaseService

S = TypeVar("S", ResetSalesState, ResetAllState)


class _Gate(BaseService, Generic[S]):
    """State holder shared by both gates."""

    def __init__(self, idle: S, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._idle = idle
        self._state: S = idle

    @property
    def state(self) -> S:
        return self._state

    def _transition(self, expected: S, target: S, action: str) -> ServiceResult:
        if self._state != expected:
            return self._invalid(action)
        self._logger.debug("%s: %s -> %s", type(self).__name__, self._state, target)
        self._state = target
        return ServiceResult.ok(self._state)

    def _invalid(self, action: str) -> ServiceResult:
        return ServiceResult.fail(
            SettingsErrorCode.INVALID_STATE,
            f"Cannot {action} while the reset is in state {self._state}.",
            409,
        )

    def _execute(self, executing: S, action: Callable[[], object], description: str) -> ServiceResult:
        self._state = executing
        try:
            outcome = action()
        except StoreError as exc:
            return self._store_failure(exc, description)
        finally:
            self._state = self._idle
        return ServiceResult.ok(outcome)


class ResetSalesGate(_Gate[ResetSalesState]):
    """Confirmation protocol for deleting the sales history.

    *reset_action* receives ``restore_inventory`` and is invoked exactly
    once per completed traversal.
    """

    def __init__(
        self,
        reset_action: Callable[[bool], object],
        logger: StructuredLogger,
    ) -> None:
        super().__init__(ResetSalesState.IDLE, logger)
        self._reset_action = reset_action

    def request_reset(self) -> ServiceResult:
        return self._transition(
            ResetSalesState.IDLE, ResetSalesState.CONFIRM_INTENT, "request a sales reset",
        )

    def confirm(self) -> ServiceResult:
        return self._transition(
            ResetSalesState.CONFIRM_INTENT,
            ResetSalesState.CHOOSE_INVENTORY_DISPOSITION,
            "confirm the sales reset",
        )

    def cancel(self) -> ServiceResult:
        return self._transition(
            ResetSalesState.CONFIRM_INTENT, ResetSalesState.IDLE, "cancel the sales reset",
        )

    def choose(self, restore_inventory: bool) -> ServiceResult:
        if self._state != ResetSalesState.CHOOSE_INVENTORY_DISPOSITION:
            return self._invalid("choose an inventory disposition")
        restore = bool(restore_inventory)
        self._logger.warning("Resetting sales history (restore_inventory=%s).", restore)
        return self._execute(
            ResetSalesState.EXECUTING,
            lambda: self._reset_action(restore),
            "Resetting sales history",
        )

    def abandon(self) -> None:
        """Drop a half-walked protocol, e.g. when the screen is left."""
        if self._state != ResetSalesState.EXECUTING:
            self._state = ResetSalesState.IDLE


class ResetAllGate(_Gate[ResetAllState]):
    """Confirmation protocol for deleting the entire dataset."""

    def __init__(
        self,
        reset_action: Callable[[], object],
        confirmation_token: str,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(ResetAllState.IDLE, logger)
        self._reset_action = reset_action
        self._token = confirmation_token
        self._typed: str = ""

    @property
    def confirmation_text(self) -> str:
        return self._typed

    @property
    def can_submit(self) -> bool:
        return self._state == ResetAllState.TYPED_CONFIRMATION and self._typed == self._token

    def request_reset(self) -> ServiceResult:
        return self._transition(
            ResetAllState.IDLE, ResetAllState.CONFIRM_INTENT, "request a full reset",
        )

    def confirm(self) -> ServiceResult:
        result = self._transition(
            ResetAllState.CONFIRM_INTENT,
            ResetAllState.TYPED_CONFIRMATION,
            "confirm the full reset",
        )
        if result.success:
            self._typed = ""
        return result

    def set_confirmation_text(self, text: str) -> ServiceResult:
        if self._state != ResetAllState.TYPED_CONFIRMATION:
            return self._invalid("type the confirmation")
        self._typed = text
        return ServiceResult.ok(self.can_submit)

    def submit(self) -> ServiceResult:
        if self._state != ResetAllState.TYPED_CONFIRMATION:
            return self._invalid("submit the full reset")
        if not self.can_submit:
            return ServiceResult.fail(
                SettingsErrorCode.CONFIRMATION_MISMATCH,
                f"Type {self._token} exactly to confirm.",
                400,
            )
        self._typed = ""
        self._logger.warning("Resetting ALL business data.")
        return self._execute(
            ResetAllState.EXECUTING, self._reset_action, "Resetting all data",
        )

    def cancel(self) -> ServiceResult:
        if self._state not in (ResetAllState.CONFIRM_INTENT, ResetAllState.TYPED_CONFIRMATION):
            return self._invalid("cancel the full reset")
        self._state = ResetAllState.IDLE
        self._typed = ""
        return ServiceResult.ok(self._state)

    def abandon(self) -> None:
        """Drop a half-walked protocol, e.g. when the screen is left."""
        if self._state != ResetAllState.EXECUTING:
            self._state = ResetAllState.IDLE
            self._typed = ""
