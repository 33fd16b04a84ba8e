"""
Application service for customers and orders (data ingestion).
"""

import logging
from datetime import datetime
from typing import List, Optional

from crm.core.exceptions import NotFoundError
from crm.repositories.customer import Customer, CustomerStore
from crm.repositories.order import Order, OrderStore

logger = logging.getLogger(__name__)


class CustomersApplicationService:
    """
    Use cases for customer and order ingestion.

    Raises:
        DuplicateKey: email / orderId already exists
        NotFoundError: unknown customer
    """

    def __init__(self, customers: CustomerStore, orders: OrderStore):
        self._customers = customers
        self._orders = orders

    async def create_customer(
        self,
        name: str,
        email: str,
        total_spends: float = 0,
        visit_count: int = 0,
        last_active_date: Optional[datetime] = None,
    ) -> Customer:
        customer = await self._customers.create(
            name=name.strip(),
            email=email.strip().lower(),
            total_spends=total_spends,
            visit_count=visit_count,
            last_active_date=last_active_date,
        )
        logger.info(f"[CustomersService] Customer created: id={customer.id}")
        return customer

    async def list_customers(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        return await self._customers.list(limit=limit, offset=offset)

    async def delete_customer(self, customer_id: str) -> None:
        if not await self._customers.delete(customer_id):
            raise NotFoundError("Customer", customer_id)

    async def record_order(
        self,
        order_id: str,
        customer_id: str,
        order_amount: float,
        order_date: datetime,
    ) -> Order:
        """Ingests an order; the customer's aggregates move with it."""
        return await self._orders.record(
            order_id=order_id.strip(),
            customer_id=customer_id,
            order_amount=order_amount,
            order_date=order_date,
        )

    async def list_orders(
        self, limit: int = 100, offset: int = 0, customer_id: Optional[str] = None
    ) -> List[Order]:
        return await self._orders.list(limit=limit, offset=offset, customer_id=customer_id)
