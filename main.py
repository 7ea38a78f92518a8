"""
Stockroom Settings Core Entry Point.

Bootstraps the dependency graph via constructor injection, initialises
the local SQLite schema and loads the settings facade.  The presentation
layer embeds :func:`bootstrap` and drives the returned facade; running
this module directly performs a startup check and prints nothing but the
structured log.

Usage::

    python main.py
"""

from __future__ import annotations

import atexit
import sys

from stockroom.auth import SessionManager
from stockroom.config import AppConfig, get_config
from stockroom.database import DatabaseManager
from stockroom.logger import StructuredLogger, get_logger
from stockroom.schema import initialize_schema
from stockroom.services import ServiceContainer, create_services


def bootstrap(
    config: AppConfig,
    session: SessionManager,
) -> tuple[DatabaseManager, ServiceContainer]:
    """Wire configuration, storage, schema and services together."""
    # ------------------------------------------------------------------
    # 1. Database Manager (Supabase when configured, SQLite always)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=config.SQLITE_PATH,
        logger=StructuredLogger(name="stockroom.database"),
    )

    # DatabaseManager.close() is idempotent, so the explicit close in
    # main() and this handler can both run.
    atexit.register(db.close)

    # ------------------------------------------------------------------
    # 2. SQLite schema (idempotent)
    # ------------------------------------------------------------------
    initialize_schema(db.sqlite, StructuredLogger(name="stockroom.schema"))

    # ------------------------------------------------------------------
    # 3. Service container (single composition root)
    # ------------------------------------------------------------------
    services = create_services(db=db, config=config, session=session)
    return db, services


def main() -> int:
    """Startup check: load every part of the settings core and report."""
    logger: StructuredLogger = get_logger("stockroom.main")
    logger.info("Starting Stockroom settings core...")

    config = get_config()
    session = SessionManager()
    db, services = bootstrap(config, session)
    try:
        facade = services["settings_facade"]
        loaded = facade.load()
        if not loaded.success:
            logger.error("Startup load failed: %s", loaded.error)
            return 1
        settings = facade.settings
        logger.info(
            "Ready (online=%s): currency=%s, rate=%s, tax=%s%%, categories=%d, PIN configured=%s.",
            db.is_online,
            settings.currency.value,
            settings.usd_to_iqd_rate,
            settings.tax_rate_percent,
            len(facade.categories.categories),
            facade.has_pin,
        )
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
