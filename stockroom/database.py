"""
Connection Management.

Two stores back the settings core:

- **Supabase** (PostgreSQL behind PostgREST) is authoritative whenever a
  URL and key are configured.  Configuration tables and the business
  tables emptied by the reset gates all live there.
- **SQLite** is always opened.  Online it caches the configuration tables
  so the settings screen can still render when Supabase is unreachable;
  offline it *is* the store.

``DatabaseManager`` owns both handles and the lock that serialises local
writes.  Queries belong in the repositories.

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=config.SQLITE_PATH,
        logger=StructuredLogger(name="stockroom.database"),
    )
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Optional, Union

from supabase import Client as SupabaseClient
from supabase import create_client

from stockroom.logger import StructuredLogger


class DatabaseManager:
    """Holds the optional Supabase client and the local SQLite connection.

    Parameters
    ----------
    supabase_url, supabase_key:
        Supabase project credentials.  Leave either empty to run offline.
    sqlite_path:
        Local database file, or ``":memory:"``.
    logger:
        Structured logger.
    supabase_client:
        Ready-made client; wins over the credentials.  Lets an embedding
        application share its client, and tests pass a fake.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        sqlite_path: Union[Path, str],
        logger: StructuredLogger,
        supabase_client: Optional[SupabaseClient] = None,
    ) -> None:
        self._logger = logger
        self._write_lock = threading.RLock()
        self._closed = False
        self._remote: Optional[SupabaseClient] = (
            supabase_client
            if supabase_client is not None
            else self._create_remote(supabase_url, supabase_key)
        )
        self._local: sqlite3.Connection = self._open_local(sqlite_path)
        self._logger.info(
            "Storage ready (mode=%s, sqlite=%s).",
            "online" if self.is_online else "offline",
            sqlite_path,
        )

    # ------------------------------------------------------------------
    # Handles
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """The Supabase client.

        Raises
        ------
        RuntimeError
            In offline mode.  Repositories check :attr:`is_online` first.
        """
        if self._remote is None:
            raise RuntimeError("No Supabase client: running in offline mode.")
        return self._remote

    @property
    def is_online(self) -> bool:
        return self._remote is not None

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._local

    @property
    def write_lock(self) -> threading.RLock:
        """Hold while writing to :attr:`sqlite` and until the commit."""
        return self._write_lock

    def close(self) -> None:
        """Close the SQLite connection.  Later calls do nothing."""
        with self._write_lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._local.close()
            except sqlite3.ProgrammingError as exc:
                self._logger.warning("SQLite close reported: %s", exc)
            else:
                self._logger.info("SQLite connection closed.")

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _create_remote(self, url: str, key: str) -> Optional[SupabaseClient]:
        if not (url and key):
            self._logger.warning("Supabase credentials missing; running offline.")
            return None
        try:
            client = create_client(url, key)
        except Exception as exc:
            # A malformed URL or key must not stop the shop from opening.
            self._logger.error(
                "Could not create the Supabase client (%s); running offline.",
                exc,
                exc_info=True,
            )
            return None
        self._logger.info("Supabase client created.")
        return client

    def _open_local(self, path: Union[Path, str]) -> sqlite3.Connection:
        """Open the SQLite file with WAL journaling and foreign keys.

        Raises
        ------
        PermissionError
            With an operator-readable message when the file or its folder
            cannot be opened.
        """
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
        except (PermissionError, sqlite3.OperationalError) as exc:
            message = (
                f"Cannot open the local database at '{path}'. Check that the "
                "folder exists and is writable."
            )
            self._logger.error(message)
            raise PermissionError(message) from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn
