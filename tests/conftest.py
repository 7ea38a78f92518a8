# tests/conftest.py
from __future__ import annotations

import copy
import uuid
from pathlib import Path
from typing import Optional, Union

import pytest

from stockroom.auth import SessionManager
from stockroom.config import AppConfig
from stockroom.database import DatabaseManager
from stockroom.logger import StructuredLogger
from stockroom.models.errors import StoreUnavailableError
from stockroom.models.user import User
from stockroom.repositories.alert_rule_repository import AlertRuleRepository
from stockroom.repositories.category_repository import CategoryRepository
from stockroom.repositories.config_store import ConfigStore
from stockroom.repositories.pin_repository import PinRepository
from stockroom.repositories.settings_repository import SettingsRepository
from stockroom.schema import initialize_schema
from stockroom.services.alert_rules import AlertRuleEngine
from stockroom.services.categories import CategoryRegistry
from stockroom.services.destructive_gate import ResetAllGate, ResetSalesGate
from stockroom.services.pin_credential import PinCredentialService
from stockroom.services.settings_facade import SettingsFacade

Row = dict[str, object]


# ---------------------------------------------------------------------------
# In-memory stand-in for the Supabase query builder
# ---------------------------------------------------------------------------


class FakeAPIError(Exception):
    """Mimics postgrest's APIError: carries the Postgres error ``code``."""

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


class FakeResponse:
    def __init__(self, data: list[Row]) -> None:
        self.data = data


class FakeQuery:
    def __init__(self, client: "FakeSupabase", table: str) -> None:
        self._client = client
        self._table = table
        self._mode = "select"
        self._columns = "*"
        self._payload: Union[Row, list[Row], None] = None
        self._filters: list[tuple[str, str, object]] = []
        self._order: Optional[str] = None
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None

    def select(self, columns: str = "*") -> "FakeQuery":
        self._mode, self._columns = "select", columns
        return self

    def insert(self, payload: Union[Row, list[Row]]) -> "FakeQuery":
        self._mode, self._payload = "insert", payload
        return self

    def update(self, payload: Row) -> "FakeQuery":
        self._mode, self._payload = "update", payload
        return self

    def upsert(self, payload: Union[Row, list[Row]]) -> "FakeQuery":
        self._mode, self._payload = "upsert", payload
        return self

    def delete(self) -> "FakeQuery":
        self._mode = "delete"
        return self

    def eq(self, column: str, value: object) -> "FakeQuery":
        self._filters.append(("eq", column, value))
        return self

    def neq(self, column: str, value: object) -> "FakeQuery":
        self._filters.append(("neq", column, value))
        return self

    def order(self, column: str) -> "FakeQuery":
        self._order = column
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    def _matches(self, row: Row) -> bool:
        for op, column, value in self._filters:
            equal = str(row.get(column)) == str(value)
            if (op == "eq" and not equal) or (op == "neq" and equal):
                return False
        return True

    def _project(self, row: Row) -> Row:
        if self._columns.strip() == "*":
            return dict(row)
        wanted = [c.strip() for c in self._columns.split(",")]
        return {c: row.get(c) for c in wanted}

    def execute(self) -> FakeResponse:
        self._client.calls.append((self._table, self._mode))
        if self._table in self._client.failing_tables:
            raise ConnectionError(f"network unreachable ({self._table})")

        rows = self._client.tables.setdefault(self._table, [])
        matched = [r for r in rows if self._matches(r)]

        if self._mode == "select":
            if self._order:
                matched.sort(key=lambda r: str(r.get(self._order)))
            if self._range is not None:
                matched = matched[self._range[0] : self._range[1] + 1]
            if self._limit is not None:
                matched = matched[: self._limit]
            if self._client.max_rows is not None:
                matched = matched[: self._client.max_rows]
            return FakeResponse([self._project(r) for r in matched])

        if self._mode == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            created = []
            for item in payload:
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                self._client.check_unique(self._table, row)
                rows.append(row)
                created.append(dict(row))
            return FakeResponse(created)

        if self._mode == "update":
            for row in matched:
                row.update(self._payload)
            return FakeResponse([dict(r) for r in matched])

        if self._mode == "upsert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            for item in payload:
                existing = next((r for r in rows if r.get("id") == item.get("id")), None)
                if existing is not None:
                    existing.update(item)
                else:
                    rows.append(dict(item))
            return FakeResponse([dict(i) for i in payload])

        if self._mode == "delete":
            self._client.tables[self._table] = [r for r in rows if not self._matches(r)]
            return FakeResponse([dict(r) for r in matched])

        raise AssertionError(f"unsupported mode {self._mode}")


class FakeSupabase:
    """Just enough of ``supabase.Client`` for the repositories."""

    def __init__(self) -> None:
        self.tables: dict[str, list[Row]] = {}
        self.failing_tables: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        # PostgREST max-rows: selects are truncated to this many rows.
        self.max_rows: Optional[int] = None
        # table -> column unique case-insensitively
        self.unique: dict[str, str] = {"categories": "name"}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def check_unique(self, table: str, row: Row) -> None:
        column = self.unique.get(table)
        if column is None:
            return
        value = str(row.get(column, "")).lower()
        for existing in self.tables.get(table, []):
            if str(existing.get(column, "")).lower() == value:
                raise FakeAPIError(
                    f'duplicate key value violates unique constraint "{table}_{column}_key"',
                    code="23505",
                )

    def seed(self, table: str, rows: list[Row]) -> None:
        self.tables[table] = copy.deepcopy(rows)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class RecordingReset:
    """Records calls to the bulk-delete collaborator."""

    def __init__(self) -> None:
        self.sales_calls: list[bool] = []
        self.all_calls: int = 0
        self.fail: bool = False

    def reset_sales_history(self, restore_inventory: bool) -> list[str]:
        self.sales_calls.append(restore_inventory)
        if self.fail:
            raise StoreUnavailableError("store down", operation="reset_sales_history")
        return ["returns", "sales"]

    def reset_all_data(self) -> list[str]:
        self.all_calls += 1
        if self.fail:
            raise StoreUnavailableError("store down", operation="reset_all_data")
        return ["returns", "sales", "products", "customers", "sellers"]


def make_store(db: DatabaseManager, logger: StructuredLogger) -> ConfigStore:
    return ConfigStore(
        settings_repo=SettingsRepository(db=db, logger=logger),
        alert_rule_repo=AlertRuleRepository(db=db, logger=logger),
        category_repo=CategoryRepository(db=db, logger=logger),
        pin_repo=PinRepository(db=db, logger=logger),
    )


def make_facade(
    store: ConfigStore,
    config: AppConfig,
    resetter: RecordingReset,
    session: SessionManager,
    logger: StructuredLogger,
    audit_conn=None,
) -> SettingsFacade:
    return SettingsFacade(
        store=store,
        pin_service=PinCredentialService(store=store, config=config, logger=logger),
        alert_engine=AlertRuleEngine(store=store, logger=logger),
        category_registry=CategoryRegistry(store=store, config=config, logger=logger),
        reset_sales_gate=ResetSalesGate(resetter.reset_sales_history, logger),
        reset_all_gate=ResetAllGate(
            resetter.reset_all_data, config.RESET_ALL_CONFIRMATION_TOKEN, logger,
        ),
        session=session,
        logger=logger,
        audit_conn=audit_conn,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def test_logger() -> StructuredLogger:
    return StructuredLogger(name=f"stockroom.test.{uuid.uuid4().hex}", log_to_file=False)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(_env_file=None, SUPABASE_URL="", SUPABASE_ANON_KEY="")


def _open_db(path: Path, logger: StructuredLogger, client=None) -> DatabaseManager:
    db = DatabaseManager(
        supabase_url="",
        supabase_key="",
        sqlite_path=path,
        logger=logger,
        supabase_client=client,
    )
    initialize_schema(db.sqlite, logger)
    return db


@pytest.fixture
def db(tmp_path: Path, test_logger: StructuredLogger):
    """Offline database: the local SQLite file is the store."""
    manager = _open_db(tmp_path / "offline.db", test_logger)
    yield manager
    manager.close()


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def online_db(tmp_path: Path, test_logger: StructuredLogger, fake_supabase: FakeSupabase):
    """Online database: the fake client is authoritative, SQLite caches."""
    manager = _open_db(tmp_path / "cache.db", test_logger, client=fake_supabase)
    yield manager
    manager.close()


@pytest.fixture
def store(db: DatabaseManager, test_logger: StructuredLogger) -> ConfigStore:
    return make_store(db, test_logger)


@pytest.fixture
def online_store(online_db: DatabaseManager, test_logger: StructuredLogger) -> ConfigStore:
    return make_store(online_db, test_logger)


@pytest.fixture
def resetter() -> RecordingReset:
    return RecordingReset()


@pytest.fixture
def session() -> SessionManager:
    manager = SessionManager()
    manager.sign_in(
        User(id="user-1", email="owner@example.com", full_name="Store Owner"),
    )
    return manager


@pytest.fixture
def facade(store, config, resetter, session, test_logger, db) -> SettingsFacade:
    built = make_facade(store, config, resetter, session, test_logger, audit_conn=db.sqlite)
    assert built.load().success
    return built
