"""
Store-layer exceptions.

Repositories raise these so services can tell a domain failure (duplicate
name, missing record) from a transport failure (store unreachable).
Services translate them into ``ServiceResult`` envelopes; they never reach
the presentation layer.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for persistence failures."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class DuplicateNameError(StoreError):
    """The store rejected a write because of a uniqueness constraint."""


class RecordNotFoundError(StoreError):
    """The record an update targeted does not exist."""


class StoreUnavailableError(StoreError):
    """The store could not be reached or failed for a non-domain reason.

    Safe to retry for every configuration operation.  Never retried
    automatically for the destructive bulk deletes.
    """
