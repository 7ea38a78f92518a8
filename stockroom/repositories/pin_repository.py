"""
PIN Repository.

Reads and replaces the single ``pin_settings`` row.

Known race: :meth:`replace` is the write half of a lookup-then-write with
no concurrency token.  Two sessions rotating at the same time both succeed
and the later write wins.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from stockroom.database import DatabaseManager
from stockroom.logger import StructuredLogger
from stockroom.models.errors import RecordNotFoundError
from stockroom.models.pin import PinCredential
from stockroom.repositories.base_repository import BaseRepository


class PinRepository(BaseRepository):
    """Data access layer for the singleton :class:`PinCredential`."""

    TABLE = "pin_settings"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def _get_remote(self) -> Optional[PinCredential]:
        response = (
            self.supabase.table(self.TABLE)
            .select("id, pin, updated_at")
            .limit(1)
            .execute()
        )
        return PinCredential(**response.data[0]) if response.data else None

    def _get_local(self) -> Optional[PinCredential]:
        row = self.sqlite.execute(
            f"SELECT id, pin, updated_at FROM {self.TABLE} LIMIT 1"
        ).fetchone()
        return PinCredential(**dict(row)) if row else None

    def get(self) -> Optional[PinCredential]:
        """Fetch the PIN record for display / verification, cache allowed."""
        return self._execute_with_fallback(
            supabase_op=self._get_remote,
            sqlite_op=self._get_local,
            default_factory=lambda: None,
            operation_name="get (pin_settings)",
            on_supabase_success=self._cache_to_sqlite,
        )

    def get_current(self) -> Optional[PinCredential]:
        """Fetch the PIN record from the authoritative store only.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        return self._read_authoritative(
            supabase_op=self._get_remote,
            sqlite_op=self._get_local,
            operation_name="get_current (pin_settings)",
        )

    def replace(self, current: PinCredential, new_pin: str) -> PinCredential:
        """Overwrite *current* with *new_pin* and a fresh ``updated_at``.

        The row is matched by id when known, otherwise by the old PIN value.

        Raises:
            RecordNotFoundError: If no row matched *current*.
            StoreUnavailableError: If the store cannot be written.
        """
        replacement = PinCredential(
            id=current.id,
            pin=new_pin,
            updated_at=datetime.now(timezone.utc),
        )
        changes = {
            "pin": replacement.pin,
            "updated_at": replacement.updated_at.isoformat(),
        }

        def _supabase() -> PinCredential:
            query = self.supabase.table(self.TABLE).update(changes)
            if current.id is not None:
                query = query.eq("id", current.id)
            else:
                query = query.eq("pin", current.pin)
            response = query.execute()
            if not response.data:
                raise RecordNotFoundError(
                    "No PIN record matched the rotation.",
                    operation="replace (pin_settings)",
                )
            return PinCredential(**response.data[0])

        def _sqlite() -> PinCredential:
            if current.id is not None:
                cursor = self.sqlite.execute(
                    f"UPDATE {self.TABLE} SET pin = ?, updated_at = ? WHERE id = ?",
                    (changes["pin"], changes["updated_at"], current.id),
                )
            else:
                cursor = self.sqlite.execute(
                    f"UPDATE {self.TABLE} SET pin = ?, updated_at = ? WHERE pin = ?",
                    (changes["pin"], changes["updated_at"], current.pin),
                )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(
                    "No PIN record matched the rotation.",
                    operation="replace (pin_settings)",
                )
            return replacement

        saved = self._write(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            operation_name="replace (pin_settings)",
            on_supabase_success=self._cache_to_sqlite,
        )
        self._logger.info("PIN record replaced (id=%s).", saved.id)
        return saved

    def create(self, pin: str) -> PinCredential:
        """Insert the first PIN record.  Callers check that none exists."""
        credential = PinCredential(pin=pin)

        def _supabase() -> PinCredential:
            response = (
                self.supabase.table(self.TABLE)
                .insert({"pin": credential.pin, "updated_at": credential.updated_at.isoformat()})
                .execute()
            )
            return PinCredential(**response.data[0])

        def _sqlite() -> PinCredential:
            created = credential.model_copy(update={"id": str(uuid.uuid4())})
            self.sqlite.execute(
                f"INSERT INTO {self.TABLE} (id, pin, updated_at) VALUES (?, ?, ?)",
                (created.id, created.pin, created.updated_at.isoformat()),
            )
            return created

        created = self._write(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            operation_name="create (pin_settings)",
            on_supabase_success=self._cache_to_sqlite,
        )
        self._logger.info("Initial PIN record created (id=%s).", created.id)
        return created

    def _cache_to_sqlite(self, credential: PinCredential) -> None:
        with self._db.write_lock:
            self.sqlite.execute(f"DELETE FROM {self.TABLE}")
            self.sqlite.execute(
                f"INSERT INTO {self.TABLE} (id, pin, updated_at) VALUES (?, ?, ?)",
                (credential.id, credential.pin, credential.updated_at.isoformat()),
            )
            self.sqlite.commit()
