"""Application wiring for payment reconciliation."""
from __future__ import annotations

import logging
from functools import lru_cache

from ..billing import BillingConfig, CoaMode, LedgerSync, ReconciliationService, load_billing_config
from ..billing.repository import PostgresBillingRepository
from ..entitlements import (
    EntitlementSynchronizer,
    HttpSessionInvalidator,
    NoopSessionInvalidator,
    PostgresRadiusStore,
    RadClientSessionInvalidator,
    SessionInvalidator,
)
from .notifications import get_http_client, get_payment_notifier

logger = logging.getLogger("billing")


@lru_cache(maxsize=1)
def get_billing_config() -> BillingConfig:
    return load_billing_config()


@lru_cache(maxsize=1)
def get_radius_store() -> PostgresRadiusStore:
    return PostgresRadiusStore()


def build_session_invalidator(config: BillingConfig) -> SessionInvalidator:
    if config.coa_mode == CoaMode.HTTP:
        return HttpSessionInvalidator(
            config.coa_endpoint,
            client=get_http_client(),
            timeout_seconds=config.coa_timeout_seconds,
        )
    if config.coa_mode == CoaMode.DISABLED:
        logger.warning("Session invalidation disabled; paying subscribers keep their old session")
        return NoopSessionInvalidator()
    return RadClientSessionInvalidator(
        get_radius_store(),
        radclient_path=config.radclient_path,
        coa_port=config.coa_port,
        timeout_seconds=config.coa_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_reconciliation_service() -> ReconciliationService:
    config = get_billing_config()
    repository = PostgresBillingRepository()
    service = ReconciliationService(
        invoices=repository,
        subscribers=repository,
        ledger=LedgerSync(repository, category_name=config.ledger_income_category),
        notifier=get_payment_notifier(),
        entitlements=EntitlementSynchronizer(get_radius_store()),
        sessions=build_session_invalidator(config),
        billing_timezone=config.tzinfo,
    )
    return service


__all__ = [
    "build_session_invalidator",
    "get_billing_config",
    "get_radius_store",
    "get_reconciliation_service",
]
