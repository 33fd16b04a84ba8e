"""
Repository for orders.

Ingesting an order also bumps the customer's aggregates
(total_spends, visit_count, last_active_date) in one store-side
function, so the resolver never sees an order without its effect.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from crm.core.exceptions import DatabaseError, DuplicateKey, NotFoundError
from crm.core.timezone import parse_datetime

from .base import BaseRepository, is_unique_violation

logger = logging.getLogger(__name__)

# Raised by record_customer_order when the customer does not exist
CUSTOMER_NOT_FOUND = "P0002"


@dataclass
class Order:
    id: str
    order_id: str
    customer_id: str
    order_amount: float
    order_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "Order":
        return cls(
            id=str(row.get("id", "")),
            order_id=row.get("order_id", ""),
            customer_id=str(row.get("customer_id", "")),
            order_amount=row.get("order_amount") or 0,
            order_date=parse_datetime(row.get("order_date")),
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "customerId": self.customer_id,
            "orderAmount": self.order_amount,
            "orderDate": self.order_date.isoformat() if self.order_date else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class OrderStore(ABC):
    """Order persistence port."""

    @abstractmethod
    async def list(
        self, limit: int = 100, offset: int = 0, customer_id: Optional[str] = None
    ) -> List[Order]:
        pass

    @abstractmethod
    async def record(
        self, order_id: str, customer_id: str, order_amount: float, order_date: datetime
    ) -> Order:
        """
        Inserts the order and updates the customer's aggregates atomically.

        Raises:
            DuplicateKey: order_id already ingested
            NotFoundError: unknown customer
        """
        pass


class OrderRepository(BaseRepository[Order], OrderStore):
    """Supabase adapter for orders."""

    @property
    def table_name(self) -> str:
        return "orders"

    async def get_by_id(self, id: str) -> Optional[Order]:
        try:
            response = self.db.table(self.table_name).select("*").eq("id", id).execute()
        except Exception as e:
            logger.error(f"Error fetching order {id}: {e}")
            raise DatabaseError(f"Error fetching order: {e}", original_error=e)
        if response.data:
            return Order.from_db_row(response.data[0])
        return None

    async def list(
        self, limit: int = 100, offset: int = 0, customer_id: Optional[str] = None
    ) -> List[Order]:
        try:
            query = self.db.table(self.table_name).select("*")
            if customer_id:
                query = query.eq("customer_id", customer_id)
            response = (
                query.order("order_date", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing orders: {e}")
            raise DatabaseError(f"Error listing orders: {e}", original_error=e)
        return [Order.from_db_row(row) for row in response.data or []]

    async def record(
        self, order_id: str, customer_id: str, order_amount: float, order_date: datetime
    ) -> Order:
        try:
            response = self.db.rpc(
                "record_customer_order",
                {
                    "p_order_id": order_id,
                    "p_customer_id": customer_id,
                    "p_order_amount": order_amount,
                    "p_order_date": order_date.isoformat(),
                },
            ).execute()
        except Exception as e:
            if is_unique_violation(e):
                raise DuplicateKey("Order", "orderId", order_id)
            if getattr(e, "code", None) == CUSTOMER_NOT_FOUND:
                raise NotFoundError("Customer", customer_id)
            logger.error(f"Error recording order {order_id}: {e}")
            raise DatabaseError(f"Error recording order: {e}", original_error=e)

        row = response.data
        if isinstance(row, list):
            row = row[0] if row else None
        if not row:
            raise DatabaseError("Order ingestion returned no row")
        logger.info(f"Order recorded: {order_id} for customer {customer_id}")
        return Order.from_db_row(row)
