"""
Business Logic Services Package.

Services depend on the repository layer for data access and on the
session for user context.

The ``create_services()`` factory wires every repository and service
together, returning a typed dict that the presentation layer can consume
without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import TypedDict

from stockroom.auth import SessionManager
from stockroom.config import AppConfig
from stockroom.database import DatabaseManager
from stockroom.logger import get_logger
from stockroom.repositories.alert_rule_repository import AlertRuleRepository
from stockroom.repositories.category_repository import CategoryRepository
from stockroom.repositories.config_store import ConfigStore
from stockroom.repositories.data_reset_repository import DataResetRepository
from stockroom.repositories.pin_repository import PinRepository
from stockroom.repositories.settings_repository import SettingsRepository
from stockroom.services.alert_rules import AlertRuleEngine
from stockroom.services.categories import CategoryRegistry
from stockroom.services.destructive_gate import ResetAllGate, ResetSalesGate
from stockroom.services.pin_credential import PinCredentialService
from stockroom.services.settings_facade import SettingsFacade


class ServiceContainer(TypedDict):
    """Typed container for the settings-core services."""

    config_store: ConfigStore
    pin_service: PinCredentialService
    alert_rule_engine: AlertRuleEngine
    category_registry: CategoryRegistry
    reset_sales_gate: ResetSalesGate
    reset_all_gate: ResetAllGate
    settings_facade: SettingsFacade


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application entry-point calls this once at startup.

    Args:
        db: Initialised DatabaseManager (SQLite ready, Supabase optional).
        config: Application configuration.
        session: Holder of the signed-in user.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("stockroom.services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    config_store = ConfigStore(
        settings_repo=SettingsRepository(db=db, logger=logger),
        alert_rule_repo=AlertRuleRepository(db=db, logger=logger),
        category_repo=CategoryRepository(db=db, logger=logger),
        pin_repo=PinRepository(db=db, logger=logger),
    )
    data_reset_repo = DataResetRepository(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    pin_service = PinCredentialService(store=config_store, config=config, logger=logger)
    alert_rule_engine = AlertRuleEngine(store=config_store, logger=logger)
    category_registry = CategoryRegistry(store=config_store, config=config, logger=logger)
    reset_sales_gate = ResetSalesGate(
        reset_action=data_reset_repo.reset_sales_history,
        logger=logger,
    )
    reset_all_gate = ResetAllGate(
        reset_action=data_reset_repo.reset_all_data,
        confirmation_token=config.RESET_ALL_CONFIRMATION_TOKEN,
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 3. Facade
    # ------------------------------------------------------------------
    settings_facade = SettingsFacade(
        store=config_store,
        pin_service=pin_service,
        alert_engine=alert_rule_engine,
        category_registry=category_registry,
        reset_sales_gate=reset_sales_gate,
        reset_all_gate=reset_all_gate,
        session=session,
        logger=logger,
        audit_conn=db.sqlite,
    )

    return ServiceContainer(
        config_store=config_store,
        pin_service=pin_service,
        alert_rule_engine=alert_rule_engine,
        category_registry=category_registry,
        reset_sales_gate=reset_sales_gate,
        reset_all_gate=reset_all_gate,
        settings_facade=settings_facade,
    )
