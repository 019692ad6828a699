"""SQLAlchemy models backing the customer, catalog and order stores."""

from .base import Base
from .customer import Customer  # noqa: F401
from .order import Order, OrderItem  # noqa: F401
from .product import Product  # noqa: F401

__all__ = [
    "Base",
    "Customer",
    "Product",
    "Order",
    "OrderItem",
]
