"""
Component Test Fixtures for Order Service

Wires OrderService to the in-memory mocks. Each test gets fresh state.
"""

import pytest
from decimal import Decimal
from typing import List
import sys
import os
import uuid

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../.."))

from microservices.order_service.models import (
    AddressType, CatalogItem, OrderAddress, OrderItem, OrderItemStatusCode, OrderPayment,
)
from microservices.order_service.order_service import OrderService
from microservices.order_service.pricing import PricingEngine, PricingPolicy
from tests.contracts.order.data_contract import OrderTestDataFactory

from tests.component.order_service.mocks import (
    MockAccountClient,
    MockCatalogRepository,
    MockEventBus,
    MockOrderRepository,
    MockOrderStatusRepository,
    MockTaxRateProvider,
)


@pytest.fixture
def factory() -> OrderTestDataFactory:
    return OrderTestDataFactory()


@pytest.fixture
def user_id(factory) -> str:
    return factory.make_user_id()


@pytest.fixture
def mock_catalog() -> MockCatalogRepository:
    return MockCatalogRepository()


@pytest.fixture
def mock_repo(mock_catalog) -> MockOrderRepository:
    return MockOrderRepository(catalog=mock_catalog)


@pytest.fixture
def mock_status_repo() -> MockOrderStatusRepository:
    return MockOrderStatusRepository()


@pytest.fixture
def mock_account_client(user_id) -> MockAccountClient:
    client = MockAccountClient()
    client.set_user(user_id)
    return client


@pytest.fixture
def mock_tax_provider() -> MockTaxRateProvider:
    return MockTaxRateProvider(default_rate=Decimal("0.13"))


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    return MockEventBus()


@pytest.fixture
def order_service(
    mock_repo, mock_status_repo, mock_catalog, mock_tax_provider,
    mock_event_bus, mock_account_client,
) -> OrderService:
    """OrderService with every dependency mocked"""
    return OrderService(
        repository=mock_repo,
        status_repository=mock_status_repo,
        catalog_repository=mock_catalog,
        tax_provider=mock_tax_provider,
        event_bus=mock_event_bus,
        account_client=mock_account_client,
        pricing=PricingEngine(PricingPolicy()),
    )


@pytest.fixture
def scarf(mock_catalog, factory) -> CatalogItem:
    """Catalog item priced 10.00 with 10 units in stock"""
    item = factory.make_catalog_item(price=Decimal("10.00"), stock_quantity=10)
    mock_catalog.set_item(item)
    return item


@pytest.fixture
def mittens(mock_catalog, factory) -> CatalogItem:
    """Catalog item priced 30.00 with 3 units in stock, two variants"""
    item = factory.make_catalog_item(
        price=Decimal("30.00"), stock_quantity=3,
        name_en="Mittens", name_fr="Mitaines", variant_count=2,
    )
    mock_catalog.set_item(item)
    return item


def make_order_items(order_id: str, lines: List[tuple]) -> List[OrderItem]:
    """
    Order lines for seeding. Each line is
    ``(catalog_item, quantity)`` or ``(catalog_item, quantity, status)``.
    """
    items = []
    for line in lines:
        catalog_item, quantity = line[0], line[1]
        status = line[2] if len(line) > 2 else OrderItemStatusCode.PENDING
        variant = catalog_item.variants[0]
        items.append(OrderItem(
            order_item_id=str(uuid.uuid4()),
            order_id=order_id,
            item_id=catalog_item.item_id,
            item_variant_id=variant.item_variant_id,
            name_en=catalog_item.name_en,
            name_fr=catalog_item.name_fr,
            variant_name_en=variant.name_en,
            variant_name_fr=variant.name_fr,
            quantity=quantity,
            unit_price=variant.price,
            total_price=variant.price * quantity,
            status=status,
        ))
    return items


def make_order_addresses(order_id: str) -> List[OrderAddress]:
    return [
        OrderAddress(
            address_id=str(uuid.uuid4()),
            order_id=order_id,
            address_type=address_type,
            full_name="Marie Tremblay",
            address_line1="1 Rue Sainte-Catherine",
            city="Montréal",
            province_state="QC",
            postal_code="H3B 1A7",
            country="Canada",
        )
        for address_type in (AddressType.SHIPPING, AddressType.BILLING)
    ]


@pytest.fixture
def seed_order(mock_repo):
    """Seed an existing order: seed_order(user_id, [(item, qty), ...], status=...)"""

    def _seed(owner_id: str, lines: List[tuple], **kwargs):
        order_id = str(uuid.uuid4())
        items = make_order_items(order_id, lines)
        payment = OrderPayment(
            payment_id=str(uuid.uuid4()),
            order_id=order_id,
            amount=Decimal("0.00"),
            provider="stripe",
        )
        return mock_repo.set_order(
            owner_id, items, order_id=order_id,
            addresses=make_order_addresses(order_id), payment=payment, **kwargs,
        )

    return _seed
