"""
Alert Rule Repository.

Handles the fixed alert-rule set.  Saves upsert every rule by id and then
re-read the set, so callers always hold what the store holds.
"""

from __future__ import annotations

from typing import Optional

from stockroom.database import DatabaseManager
from stockroom.logger import StructuredLogger
from stockroom.models.alert_rule import DEFAULT_ALERT_RULES, AlertRule
from stockroom.repositories.base_repository import BaseRepository


class AlertRuleRepository(BaseRepository):
    """Data access layer for :class:`AlertRule` entities."""

    TABLE = "alert_rules"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def get_all(self) -> list[AlertRule]:
        """Fetch all rules ordered by id; defaults when the store has none."""

        def _supabase() -> Optional[list[AlertRule]]:
            response = self.supabase.table(self.TABLE).select("*").order("id").execute()
            return [AlertRule(**row) for row in response.data] or None

        return self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=self._get_all_local,
            default_factory=lambda: [rule.model_copy() for rule in DEFAULT_ALERT_RULES],
            operation_name="get_all (alert_rules)",
            on_supabase_success=self._cache_to_sqlite,
        )

    def save_all(self, rules: list[AlertRule]) -> list[AlertRule]:
        """Upsert every rule and return the stored set.

        Raises:
            StoreUnavailableError: If the store cannot be written.
        """
        payload = [rule.model_dump(mode="json") for rule in rules]

        def _supabase() -> list[AlertRule]:
            self.supabase.table(self.TABLE).upsert(payload).execute()
            response = self.supabase.table(self.TABLE).select("*").order("id").execute()
            return [AlertRule(**row) for row in response.data]

        def _sqlite() -> list[AlertRule]:
            for rule in rules:
                self._upsert_local(rule)
            return self._get_all_local() or []

        saved = self._write(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            operation_name="save_all (alert_rules)",
            on_supabase_success=self._cache_to_sqlite,
        )
        self._logger.info("Saved %d alert rule(s).", len(rules))
        return saved

    # ------------------------------------------------------------------
    # SQLite helpers
    # ------------------------------------------------------------------

    def _get_all_local(self) -> Optional[list[AlertRule]]:
        rows = self.sqlite.execute(f"SELECT * FROM {self.TABLE} ORDER BY id").fetchall()
        return [AlertRule(**dict(row)) for row in rows] or None

    def _upsert_local(self, rule: AlertRule) -> None:
        self.sqlite.execute(
            f"""
            INSERT INTO {self.TABLE} (id, type, enabled, message, threshold)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                type      = excluded.type,
                enabled   = excluded.enabled,
                message   = excluded.message,
                threshold = excluded.threshold
            """,
            (
                rule.id,
                str(rule.type),
                int(rule.enabled),
                rule.message,
                str(rule.threshold) if rule.threshold is not None else None,
            ),
        )

    def _cache_to_sqlite(self, rules: list[AlertRule]) -> None:
        with self._db.write_lock:
            for rule in rules:
                self._upsert_local(rule)
            self.sqlite.commit()
