"""Shared fakes for the conversation pipeline tests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path
import sys
from typing import Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from vhouse_ai.application.interfaces import (  # noqa: E402
    CatalogRepositoryInterface,
    CustomerRepositoryInterface,
    OrderRepositoryInterface,
    TextGenerationGateway,
)
from vhouse_ai.domain.models import AIProvider, Customer, OrderRecord, Product  # noqa: E402
from vhouse_ai.pipelines.conversation.types import GenerationResult  # noqa: E402


class FakeCustomerRepository(CustomerRepositoryInterface):
    def __init__(self, customers=()):
        self.customers = {customer.id: customer for customer in customers}

    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        return self.customers.get(customer_id)


class FakeOrderRepository(OrderRepositoryInterface):
    def __init__(self, orders=()):
        self.orders = list(orders)

    async def list_recent_for_customer(self, customer_id: int, limit: int = 5):
        matching = [order for order in self.orders if order.customer_id == customer_id]
        matching.sort(key=lambda order: order.order_date, reverse=True)
        return matching[:limit]


class FakeCatalogRepository(CatalogRepositoryInterface):
    def __init__(self, products=()):
        self.products = list(products)

    async def list_all(self):
        return list(self.products)


class FakeGateway(TextGenerationGateway):
    """Returns scripted results and remembers every request it saw."""

    def __init__(self, content: str = "", *, result: Optional[GenerationResult] = None):
        self.result = result or GenerationResult(
            content=content,
            is_successful=True,
            used_provider=AIProvider.CLAUDE,
            used_model="fake-claude",
            tokens_used=42,
        )
        self.requests = []

    async def generate(self, request):
        self.requests.append(request)
        return self.result

    def health_status(self):
        return {
            "service_status": {"claude": True, "openai": False},
            "recommended_provider": "claude",
            "fallback_available": False,
        }


def make_product(product_id, name, price, stock=100, active=True):
    return Product(
        id=product_id,
        name=name,
        price=Decimal(str(price)),
        stock_quantity=stock,
        is_active=active,
    )


def make_order(order_id, customer_id, total, day=1, notes=None):
    return OrderRecord(
        id=order_id,
        customer_id=customer_id,
        total_amount=Decimal(str(total)),
        order_date=datetime(2024, 5, day, 10, 0),
        notes=notes,
    )


@pytest.fixture
def catalog():
    return [
        make_product(1, "Leche de Avena Orgánica", "25.00", stock=100),
        make_product(2, "Queso Vegano Cheddar", "65.00", stock=20),
        make_product(3, "Tofu Firme", "35.75", stock=40),
        make_product(4, "Hamburguesa de Lentejas", "28.50", stock=0),
        make_product(5, "Yogurt de Coco", "30.00", stock=15, active=False),
    ]


@pytest.fixture
def customer():
    return Customer(
        id=7,
        name="Café Verde",
        email="compras@cafeverde.mx",
        is_vegan_preferred=True,
        is_active=True,
    )


@pytest.fixture
def repositories(customer, catalog):
    return (
        FakeCustomerRepository([customer]),
        FakeOrderRepository(),
        FakeCatalogRepository(catalog),
    )
