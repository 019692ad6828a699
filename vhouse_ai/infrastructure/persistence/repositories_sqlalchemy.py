from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vhouse_ai.application.interfaces import (
    CatalogRepositoryInterface,
    CustomerRepositoryInterface,
    OrderRepositoryInterface,
)
from vhouse_ai.domain.models import Customer, OrderRecord, Product
from vhouse_ai.models.customer import Customer as CustomerEntity
from vhouse_ai.models.order import Order as OrderEntity
from vhouse_ai.models.product import Product as ProductEntity


class SQLAlchemyCustomerRepository(CustomerRepositoryInterface):
    """SQLAlchemy implementation of the customer store"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        result = await self.session.execute(
            select(CustomerEntity).where(CustomerEntity.id == customer_id)
        )
        db_customer = result.scalar_one_or_none()
        return Customer.model_validate(db_customer) if db_customer else None


class SQLAlchemyCatalogRepository(CatalogRepositoryInterface):
    """SQLAlchemy implementation of the product catalog"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> List[Product]:
        result = await self.session.execute(
            select(ProductEntity).order_by(ProductEntity.id)
        )
        return [Product.model_validate(row) for row in result.scalars().all()]


class SQLAlchemyOrderRepository(OrderRepositoryInterface):
    """SQLAlchemy implementation of the order history store"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_recent_for_customer(
        self, customer_id: int, limit: int = 5
    ) -> List[OrderRecord]:
        if limit <= 0:
            return []
        result = await self.session.execute(
            select(OrderEntity)
            .where(OrderEntity.customer_id == customer_id)
            .order_by(OrderEntity.order_date.desc(), OrderEntity.id.desc())
            .limit(limit)
        )
        return [OrderRecord.model_validate(row) for row in result.scalars().all()]
