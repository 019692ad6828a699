"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vhouse_ai.application.interfaces import (
    CatalogRepositoryInterface,
    CustomerRepositoryInterface,
    OrderRepositoryInterface,
    TextGenerationGateway,
)
from vhouse_ai.application.use_cases.conversation_use_cases import (
    GenerateBusinessEmailUseCase,
    ProcessBusinessConversationUseCase,
    ProcessComplexOrderUseCase,
)
from vhouse_ai.database import get_session
from vhouse_ai.infrastructure.persistence.repositories_sqlalchemy import (
    SQLAlchemyCatalogRepository,
    SQLAlchemyCustomerRepository,
    SQLAlchemyOrderRepository,
)
from vhouse_ai.services.generation_gateway import get_generation_gateway

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_customer_repository(session: SessionDep) -> CustomerRepositoryInterface:
    return SQLAlchemyCustomerRepository(session)


def get_order_repository(session: SessionDep) -> OrderRepositoryInterface:
    return SQLAlchemyOrderRepository(session)


def get_catalog_repository(session: SessionDep) -> CatalogRepositoryInterface:
    return SQLAlchemyCatalogRepository(session)


def get_text_generation_gateway() -> TextGenerationGateway:
    """Process-wide gateway; its provider health cache outlives a request."""

    return get_generation_gateway()


CustomerRepositoryDep = Annotated[CustomerRepositoryInterface, Depends(get_customer_repository)]
OrderRepositoryDep = Annotated[OrderRepositoryInterface, Depends(get_order_repository)]
CatalogRepositoryDep = Annotated[CatalogRepositoryInterface, Depends(get_catalog_repository)]
GatewayDep = Annotated[TextGenerationGateway, Depends(get_text_generation_gateway)]


def get_conversation_use_case(
    customers: CustomerRepositoryDep,
    orders: OrderRepositoryDep,
    catalog: CatalogRepositoryDep,
    gateway: GatewayDep,
) -> ProcessBusinessConversationUseCase:
    return ProcessBusinessConversationUseCase(customers, orders, catalog, gateway)


def get_email_use_case(
    customers: CustomerRepositoryDep,
    orders: OrderRepositoryDep,
    catalog: CatalogRepositoryDep,
    gateway: GatewayDep,
) -> GenerateBusinessEmailUseCase:
    return GenerateBusinessEmailUseCase(customers, orders, catalog, gateway)


def get_complex_order_use_case(
    customers: CustomerRepositoryDep,
    orders: OrderRepositoryDep,
    catalog: CatalogRepositoryDep,
    gateway: GatewayDep,
) -> ProcessComplexOrderUseCase:
    return ProcessComplexOrderUseCase(customers, orders, catalog, gateway)


__all__ = [
    "CatalogRepositoryDep",
    "CustomerRepositoryDep",
    "GatewayDep",
    "OrderRepositoryDep",
    "SessionDep",
    "get_catalog_repository",
    "get_complex_order_use_case",
    "get_conversation_use_case",
    "get_customer_repository",
    "get_email_use_case",
    "get_order_repository",
    "get_text_generation_gateway",
]
