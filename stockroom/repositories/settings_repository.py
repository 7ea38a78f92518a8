"""
Settings Repository.

Handles the single application settings row via Supabase (authoritative
when online) and SQLite (cache, or the store itself offline).

A save always writes the complete record: the row is updated in place when
it exists and inserted otherwise, never patched field by field.
"""

from __future__ import annotations

import uuid
from typing import Optional

from stockroom.database import DatabaseManager
from stockroom.logger import StructuredLogger
from stockroom.models.settings import Settings
from stockroom.repositories.base_repository import BaseRepository
from stockroom.utils.string_helpers import JsonValue


class SettingsRepository(BaseRepository):
    """Data access layer for the singleton :class:`Settings` record."""

    TABLE = "settings"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def get(self) -> Optional[Settings]:
        """Fetch the stored settings, or ``None`` if no row exists yet."""

        def _supabase() -> Optional[Settings]:
            response = self.supabase.table(self.TABLE).select("*").limit(1).execute()
            return Settings(**response.data[0]) if response.data else None

        return self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=self._get_local,
            default_factory=lambda: None,
            operation_name="get (settings)",
            on_supabase_success=self._cache_to_sqlite,
        )

    def load(self) -> Settings:
        """Fetch the stored settings, falling back to application defaults."""
        stored = self.get()
        if stored is None:
            self._logger.info("No settings row found; using defaults.")
            return Settings()
        return stored

    def save(self, settings: Settings) -> Settings:
        """Persist the whole settings record and return the stored version.

        Raises:
            StoreUnavailableError: If the store cannot be written.
        """

        def _supabase() -> Settings:
            payload = self._payload(settings)
            existing = self.supabase.table(self.TABLE).select("id").limit(1).execute()
            if existing.data:
                response = (
                    self.supabase.table(self.TABLE)
                    .update(payload)
                    .eq("id", existing.data[0]["id"])
                    .execute()
                )
            else:
                response = self.supabase.table(self.TABLE).insert(payload).execute()
            return Settings(**response.data[0])

        def _sqlite() -> Settings:
            existing = self._get_local()
            row_id = existing.id if existing is not None else str(uuid.uuid4())
            stored = settings.model_copy(update={"id": row_id})
            self._upsert_local(stored)
            return stored

        saved = self._write(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            operation_name="save (settings)",
            on_supabase_success=self._cache_to_sqlite,
        )
        self._logger.info("Settings saved (id=%s).", saved.id)
        return saved

    # ------------------------------------------------------------------
    # SQLite helpers
    # ------------------------------------------------------------------

    def _get_local(self) -> Optional[Settings]:
        row = self.sqlite.execute(f"SELECT * FROM {self.TABLE} LIMIT 1").fetchone()
        return Settings(**dict(row)) if row else None

    @staticmethod
    def _payload(settings: Settings) -> dict[str, JsonValue]:
        # JSON mode renders Decimal as a string, which numeric columns
        # accept without float rounding.
        return settings.model_dump(mode="json", exclude={"id"})

    def _upsert_local(self, settings: Settings) -> None:
        data = settings.model_dump(mode="json")
        columns = list(data.keys())
        values = [int(v) if isinstance(v, bool) else v for v in data.values()]
        assignments = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
        self.sqlite.execute(
            f"""
            INSERT INTO {self.TABLE} ({", ".join(columns)}, updated_at)
            VALUES ({", ".join("?" for _ in columns)}, CURRENT_TIMESTAMP)
            ON CONFLICT(id) DO UPDATE SET {assignments}, updated_at = CURRENT_TIMESTAMP
            """,
            values,
        )

    def _cache_to_sqlite(self, settings: Settings) -> None:
        """Mirror a Supabase row into the local cache.

        The local table only ever holds one row, so any row with a
        different id is replaced.
        """
        if settings.id is None:
            return
        with self._db.write_lock:
            self.sqlite.execute(f"DELETE FROM {self.TABLE} WHERE id != ?", (settings.id,))
            self._upsert_local(settings)
            self.sqlite.commit()
