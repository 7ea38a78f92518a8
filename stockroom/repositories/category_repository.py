"""
Category Repository.

Handles product categories.  Uniqueness of names (case-insensitive) is the
store's job: a unique index on ``lower(name)`` in Supabase, and in SQLite a
unique ``name_key`` column holding :attr:`Category.name_key` (Python
``casefold()``, which also folds non-ASCII letters).  Both surface as
:class:`~stockroom.models.errors.DuplicateNameError`.
"""

from __future__ import annotations

import uuid

from stockroom.database import DatabaseManager
from stockroom.logger import StructuredLogger
from stockroom.models.category import Category
from stockroom.repositories.base_repository import BaseRepository

_CACHE_INSERT: str = (
    "INSERT OR REPLACE INTO categories (id, name, name_key, description) "
    "VALUES (?, ?, ?, ?)"
)


class CategoryRepository(BaseRepository):
    """Data access layer for :class:`Category` entities.

    No update or delete: categories are only ever added from the settings
    screen.
    """

    TABLE = "categories"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def get_all(self) -> list[Category]:
        """Fetch all categories ordered by name."""

        def _supabase() -> list[Category]:
            response = (
                self.supabase.table(self.TABLE)
                .select("id, name, description")
                .order("name")
                .execute()
            )
            return [Category(**row) for row in response.data]

        def _sqlite() -> list[Category]:
            rows = self.sqlite.execute(
                f"SELECT id, name, description FROM {self.TABLE} "
                f"ORDER BY name COLLATE NOCASE"
            ).fetchall()
            return [Category(**dict(row)) for row in rows]

        return self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            default_factory=list,
            operation_name="get_all (categories)",
            on_supabase_success=self._replace_cache,
        )

    def create(self, name: str, description: str = "") -> Category:
        """Insert a new category and return it with its store-generated id.

        Raises:
            DuplicateNameError: If a category with the same name (ignoring
                case) already exists.
            StoreUnavailableError: If the store cannot be written.
        """
        category = Category(name=name, description=description)

        def _supabase() -> Category:
            response = (
                self.supabase.table(self.TABLE)
                .insert(category.model_dump(exclude={"id"}))
                .execute()
            )
            return Category(**response.data[0])

        def _sqlite() -> Category:
            created = category.model_copy(update={"id": str(uuid.uuid4())})
            self.sqlite.execute(
                f"INSERT INTO {self.TABLE} (id, name, name_key, description) "
                f"VALUES (?, ?, ?, ?)",
                (created.id, created.name, created.name_key, created.description),
            )
            return created

        created = self._write(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            operation_name="create (categories)",
            on_supabase_success=self._cache_one,
        )
        self._logger.info("Category created: %s (%s)", created.name, created.id)
        return created

    # ------------------------------------------------------------------
    # SQLite cache helpers
    # ------------------------------------------------------------------

    def _cache_one(self, category: Category) -> None:
        with self._db.write_lock:
            self.sqlite.execute(
                _CACHE_INSERT,
                (category.id, category.name, category.name_key, category.description),
            )
            self.sqlite.commit()

    def _replace_cache(self, categories: list[Category]) -> None:
        """Make the local table an exact mirror of the remote list."""
        with self._db.write_lock:
            try:
                self.sqlite.execute(f"DELETE FROM {self.TABLE}")
                self.sqlite.executemany(
                    _CACHE_INSERT,
                    [(c.id, c.name, c.name_key, c.description) for c in categories],
                )
                self.sqlite.commit()
            except Exception:
                self.sqlite.rollback()
                raise
