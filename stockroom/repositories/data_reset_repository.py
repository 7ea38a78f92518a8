"""
Data Reset Repository.

The bulk-delete collaborator invoked by the destructive-action gates.
Business tables (products, sales, returns, customers, sellers) are owned
by the rest of the application; this repository only knows how to empty
them.

Bulk deletes always target Supabase.  They are refused in offline mode:
clearing a local cache would report success while the authoritative data
survives.  Nothing here retries: a failure part-way through leaves the
earlier tables cleared and the error names the table that failed, so the
operator can decide whether to start a new, explicitly confirmed reset.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Callable, TypeVar

from stockroom.database import DatabaseManager
from stockroom.logger import StructuredLogger
from stockroom.models.errors import StoreError, StoreUnavailableError
from stockroom.repositories.base_repository import BaseRepository

T = TypeVar("T")

# PostgREST refuses an unfiltered DELETE; no row carries the nil UUID.
_NIL_UUID: str = "00000000-0000-0000-0000-000000000000"

# Children before parents so foreign keys never block a delete.
SALES_HISTORY_TABLES: tuple[str, ...] = ("returns", "sales")
ALL_DATA_TABLES: tuple[str, ...] = ("returns", "sales", "products", "customers", "sellers")

# Rows requested per read; the server may return fewer.
SALES_PAGE_SIZE: int = 1000


class DataResetRepository(BaseRepository):
    """Irreversible bulk deletes of business data."""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def reset_sales_history(self, restore_inventory: bool) -> list[str]:
        """Delete every sale and return, and zero the seller totals.

        When *restore_inventory* is true the quantity of every sale is added
        back to its product's stock before the sales are deleted.

        Returns:
            Names of the tables that were cleared, in order.

        Raises:
            StoreUnavailableError: Offline, or when any step fails.
        """
        self._require_online("reset_sales_history")
        if restore_inventory:
            self._restore_sold_stock()
        cleared = self._delete_all(SALES_HISTORY_TABLES, "reset_sales_history")
        self._run(
            lambda: self.supabase.table("sellers")
            .update({"total_sales": 0, "total_revenue": 0, "total_profit": 0})
            .neq("id", _NIL_UUID)
            .execute(),
            "reset_sales_history (sellers totals)",
        )
        self._logger.warning(
            "Sales history reset (restore_inventory=%s).", restore_inventory,
            extra={"event": "RESET_SALES_HISTORY"},
        )
        return cleared

    def reset_all_data(self) -> list[str]:
        """Delete all products, sales, returns, customers and sellers.

        Settings, alert rules, categories and the PIN are configuration and
        survive.

        Returns:
            Names of the tables that were cleared, in order.

        Raises:
            StoreUnavailableError: Offline, or when any step fails.
        """
        self._require_online("reset_all_data")
        cleared = self._delete_all(ALL_DATA_TABLES, "reset_all_data")
        self._logger.warning(
            "All business data reset.", extra={"event": "RESET_ALL_DATA"},
        )
        return cleared

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_online(self, operation_name: str) -> None:
        if not self.is_online:
            raise StoreUnavailableError(
                "Bulk deletion requires a connection to the remote store.",
                operation=operation_name,
            )

    def _run(self, op: Callable[[], T], operation_name: str) -> T:
        try:
            return op()
        except StoreError:
            raise
        except Exception as exc:
            raise self._translate_error(exc, operation_name) from exc

    def _delete_all(self, tables: tuple[str, ...], operation_name: str) -> list[str]:
        cleared: list[str] = []
        for table in tables:
            self._run(
                lambda t=table: self.supabase.table(t).delete().neq("id", _NIL_UUID).execute(),
                f"{operation_name} ({table})",
            )
            cleared.append(table)
            self._logger.info("Cleared table %s.", table)
        return cleared

    def _read_all_sales(self) -> list[dict]:
        """Read every sale, one page at a time.

        PostgREST truncates a response at the project's ``max-rows``, so a
        single select can silently miss rows.  Pages are requested in id
        order, each starting after the rows already received, until an
        empty page comes back.
        """
        rows: list[dict] = []
        while True:
            response = self._run(
                lambda first=len(rows): self.supabase.table("sales")
                .select("id, product_id, quantity")
                .order("id")
                .range(first, first + SALES_PAGE_SIZE - 1)
                .execute(),
                "reset_sales_history (read sales)",
            )
            page = response.data or []
            if not page:
                return rows
            rows.extend(page)

    def _restore_sold_stock(self) -> None:
        sold: dict[str, Decimal] = defaultdict(Decimal)
        for row in self._read_all_sales():
            if row.get("product_id"):
                sold[str(row["product_id"])] += Decimal(str(row.get("quantity") or 0))

        for product_id, quantity in sold.items():
            product = self._run(
                lambda pid=product_id: self.supabase.table("products")
                .select("id, stock")
                .eq("id", pid)
                .limit(1)
                .execute(),
                "reset_sales_history (read product)",
            )
            if not product.data:
                self._logger.warning(
                    "Product %s no longer exists; %s unit(s) not restored.",
                    product_id,
                    quantity,
                )
                continue
            new_stock = Decimal(str(product.data[0].get("stock") or 0)) + quantity
            self._run(
                lambda pid=product_id, stock=new_stock: self.supabase.table("products")
                .update({"stock": int(stock)})
                .eq("id", pid)
                .execute(),
                "reset_sales_history (restore stock)",
            )
        self._logger.info("Restored stock for %d product(s).", len(sold))
