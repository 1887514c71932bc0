"""
Order Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_order_service
    service = create_order_service(config, event_bus)
"""
from typing import Optional

from core.config_manager import ConfigManager

from .order_service import OrderService
from .pricing import PricingEngine, PricingPolicy


def create_tax_provider(config: ConfigManager):
    """Flat configured rate, or the tax service when ORDER_TAX_SOURCE=service"""
    from .clients import FlatTaxRateProvider, TaxServiceClient

    service_config = config.get_service_config()
    if service_config.pricing.tax_source == "service":
        return TaxServiceClient(base_url=service_config.tax_service_url)
    return FlatTaxRateProvider(service_config.pricing.tax_rate)


def create_order_service(
    config: Optional[ConfigManager] = None,
    event_bus=None,
    account_client=None,
    tax_provider=None,
) -> OrderService:
    """
    Create OrderService with real dependencies.

    This function imports the real repositories (which have I/O dependencies).
    Use this in production, NOT in tests.

    Args:
        config: Configuration manager
        event_bus: Event bus for publishing events
        account_client: Account service client
        tax_provider: Tax rate source (built from config when omitted)

    Returns:
        Configured OrderService instance; call
        ``service.repository.initialize()`` before serving requests
    """
    # Import real repositories here (not at module level)
    from core.postgres_client import PostgresClient
    from .order_repository import OrderRepository
    from .order_status_repository import OrderStatusRepository
    from .catalog_repository import CatalogRepository
    from .clients import AccountClient

    if config is None:
        config = ConfigManager("order_service")
    service_config = config.get_service_config()

    db = PostgresClient("order_service", infra=service_config.infra)

    return OrderService(
        repository=OrderRepository(config=config, db=db),
        status_repository=OrderStatusRepository(db),
        catalog_repository=CatalogRepository(db),
        tax_provider=tax_provider or create_tax_provider(config),
        event_bus=event_bus,
        account_client=account_client or AccountClient(base_url=service_config.account_service_url),
        pricing=PricingEngine(PricingPolicy.from_config(service_config.pricing)),
        currency=service_config.pricing.currency,
    )
