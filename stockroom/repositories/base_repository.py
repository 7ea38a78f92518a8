"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (Supabase + SQLite)
- Logger reference
- Convenience properties for accessing clients
- Read / write helpers that encode the online and offline storage rules
- Translation of raw client failures into store-layer exceptions
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Optional, TypeVar

from supabase import Client as SupabaseClient

from stockroom.database import DatabaseManager
from stockroom.logger import StructuredLogger
from stockroom.models.errors import (
    DuplicateNameError,
    StoreError,
    StoreUnavailableError,
)

T = TypeVar("T")

# PostgreSQL SQLSTATE for unique_violation, surfaced by PostgREST as ``code``.
_PG_UNIQUE_VIOLATION: str = "23505"


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client for cloud operations."""
        return self._db.supabase

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Returns the SQLite connection for the local cache / offline store."""
        return self._db.sqlite

    @property
    def is_online(self) -> bool:
        return self._db.is_online

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _execute_with_fallback(
        self,
        supabase_op: Callable[[], Optional[T]],
        sqlite_op: Callable[[], Optional[T]],
        default_factory: Callable[[], T],
        *,
        operation_name: str,
        on_supabase_success: Optional[Callable[[T], None]] = None,
    ) -> T:
        """Execute a read with Supabase-first, SQLite-fallback semantics.

        Used for display reads where a cached value is better than none.
        NOT intended for write paths or for the read half of a
        read-modify-write; use :meth:`_read_authoritative` there.

        Execution order:
        1. Call ``supabase_op()``.  If it returns a non-``None`` value,
           optionally invoke ``on_supabase_success``, then return.
        2. Call ``sqlite_op()``.  If it returns a non-``None`` value, return.
        3. Return ``default_factory()``.

        ``on_supabase_success`` is meant for cache warming; its failures
        are logged and never mask the result.
        """
        if self.is_online:
            try:
                result = supabase_op()
                if result is not None:
                    if on_supabase_success is not None:
                        try:
                            on_supabase_success(result)
                        except Exception as cache_exc:
                            self._logger.warning(
                                "Post-Supabase callback failed for %s: %s",
                                operation_name,
                                cache_exc,
                            )
                    return result
            except Exception as exc:
                self._logger.warning(
                    "Supabase unavailable for %s: %s", operation_name, exc
                )

        try:
            result = sqlite_op()
            if result is not None:
                return result
        except sqlite3.Error as sqlite_exc:
            self._logger.error(
                "SQLite fallback also failed for %s: %s",
                operation_name,
                sqlite_exc,
            )

        return default_factory()

    def _read_authoritative(
        self,
        supabase_op: Callable[[], T],
        sqlite_op: Callable[[], T],
        *,
        operation_name: str,
    ) -> T:
        """Read from whichever store is authoritative, without fallback.

        Online, a stale cached value must not feed a write decision, so a
        Supabase failure raises instead of falling back.
        """
        if self.is_online:
            try:
                return supabase_op()
            except Exception as exc:
                raise self._translate_error(exc, operation_name) from exc
        try:
            return sqlite_op()
        except sqlite3.Error as exc:
            raise self._translate_error(exc, operation_name) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _write(
        self,
        supabase_op: Callable[[], T],
        sqlite_op: Callable[[], T],
        *,
        operation_name: str,
        on_supabase_success: Optional[Callable[[T], None]] = None,
    ) -> T:
        """Perform a write against the authoritative store.

        Online, the write goes to Supabase only and the result is mirrored
        into the SQLite cache (cache failures are non-fatal).  Offline, the
        SQLite database is the store and the write runs under the
        database write lock.

        Raises:
            DuplicateNameError: On a uniqueness violation.
            StoreError: Subclasses raised by the ops pass through.
            StoreUnavailableError: For every other failure.
        """
        if self.is_online:
            try:
                result = supabase_op()
            except StoreError:
                raise
            except Exception as exc:
                raise self._translate_error(exc, operation_name) from exc
            if on_supabase_success is not None:
                try:
                    on_supabase_success(result)
                except Exception as cache_exc:
                    self._logger.warning(
                        "Failed to mirror %s into SQLite cache (non-fatal): %s",
                        operation_name,
                        cache_exc,
                    )
            return result

        with self._db.write_lock:
            try:
                result = sqlite_op()
                self.sqlite.commit()
                return result
            except StoreError:
                self.sqlite.rollback()
                raise
            except sqlite3.Error as exc:
                self.sqlite.rollback()
                raise self._translate_error(exc, operation_name) from exc

    # ------------------------------------------------------------------
    # Error translation
    # ------------------------------------------------------------------

    def _translate_error(self, exc: Exception, operation_name: str) -> StoreError:
        """Map a raw client exception to a store-layer exception.

        Uniqueness violations (PostgREST ``23505`` or a SQLite ``UNIQUE``
        constraint) become :class:`DuplicateNameError`.  Everything else is
        a transport-level :class:`StoreUnavailableError`.
        """
        code = str(getattr(exc, "code", "") or "")
        is_unique_violation = code == _PG_UNIQUE_VIOLATION or (
            isinstance(exc, sqlite3.IntegrityError) and "UNIQUE" in str(exc).upper()
        )
        if is_unique_violation:
            self._logger.info(
                "Uniqueness violation during %s: %s", operation_name, exc,
            )
            return DuplicateNameError(str(exc), operation=operation_name)

        self._logger.error(
            "Store failure during %s: %s", operation_name, exc, exc_info=True,
        )
        return StoreUnavailableError(
            f"The data store is unavailable ({operation_name}).",
            operation=operation_name,
        )
