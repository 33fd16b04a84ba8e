"""
Repository for customers.

Customers are the audience universe: the resolver counts and
materializes them through compiled predicates.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from crm.core.config import settings
from crm.core.exceptions import DatabaseError, DuplicateKey
from crm.core.timezone import parse_datetime
from crm.services.audience.compiler import MATCH_ALL, Predicate, is_match_all

from .base import BaseRepository, is_unique_violation

logger = logging.getLogger(__name__)


@dataclass
class Customer:
    """A customer row."""

    id: str
    name: str
    email: str
    total_spends: float = 0
    visit_count: int = 0
    last_active_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "Customer":
        """Builds a Customer from a store row."""
        return cls(
            id=str(row.get("id", "")),
            name=row.get("name") or "",
            email=row.get("email") or "",
            total_spends=row.get("total_spends") or 0,
            visit_count=row.get("visit_count") or 0,
            last_active_date=parse_datetime(row.get("last_active_date")),
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> dict:
        """API representation (camelCase)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "totalSpends": self.total_spends,
            "visitCount": self.visit_count,
            "lastActiveDate": self.last_active_date.isoformat() if self.last_active_date else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class CustomerStore(ABC):
    """Customer persistence port."""

    @abstractmethod
    async def get_by_id(self, id: str) -> Optional[Customer]:
        pass

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        pass

    @abstractmethod
    async def create(
        self,
        name: str,
        email: str,
        total_spends: float = 0,
        visit_count: int = 0,
        last_active_date: Optional[datetime] = None,
    ) -> Customer:
        """Raises DuplicateKey when the email is taken."""
        pass

    @abstractmethod
    async def delete(self, id: str) -> bool:
        pass

    @abstractmethod
    async def count(self, predicate: Predicate = MATCH_ALL) -> int:
        """Number of customers matching the predicate."""
        pass

    @abstractmethod
    async def find(self, predicate: Predicate = MATCH_ALL) -> List[Customer]:
        """Every customer matching the predicate."""
        pass


class CustomerRepository(BaseRepository[Customer], CustomerStore):
    """
    Supabase adapter for customers.

    Usage:
        repo = CustomerRepository(supabase)
        total = await repo.count(compile_rules(rules))
    """

    def __init__(self, db_client, page_size: Optional[int] = None):
        super().__init__(db_client)
        self.page_size = page_size or settings.AUDIENCE_PAGE_SIZE

    @property
    def table_name(self) -> str:
        return "customers"

    def _filtered(self, query, predicate: Predicate):
        if is_match_all(predicate):
            return query
        # A single-operand or() carries any logic tree
        return query.or_(predicate.to_postgrest())

    async def get_by_id(self, id: str) -> Optional[Customer]:
        try:
            response = self.db.table(self.table_name).select("*").eq("id", id).execute()
        except Exception as e:
            logger.error(f"Error fetching customer {id}: {e}")
            raise DatabaseError(f"Error fetching customer: {e}", original_error=e)
        if response.data:
            return Customer.from_db_row(response.data[0])
        return None

    async def list(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing customers: {e}")
            raise DatabaseError(f"Error listing customers: {e}", original_error=e)
        return [Customer.from_db_row(row) for row in response.data or []]

    async def create(
        self,
        name: str,
        email: str,
        total_spends: float = 0,
        visit_count: int = 0,
        last_active_date: Optional[datetime] = None,
    ) -> Customer:
        data = {
            "name": name,
            "email": email,
            "total_spends": total_spends,
            "visit_count": visit_count,
            "last_active_date": last_active_date.isoformat() if last_active_date else None,
        }
        try:
            response = self.db.table(self.table_name).insert(data).execute()
        except Exception as e:
            if is_unique_violation(e):
                raise DuplicateKey("Customer", "email", email)
            logger.error(f"Error creating customer: {e}")
            raise DatabaseError(f"Error creating customer: {e}", original_error=e)

        if not response.data:
            raise DatabaseError("Customer insert returned no row")
        logger.info(f"Customer created: {response.data[0].get('id')}")
        return Customer.from_db_row(response.data[0])

    async def delete(self, id: str) -> bool:
        try:
            response = self.db.table(self.table_name).delete().eq("id", id).execute()
        except Exception as e:
            logger.error(f"Error deleting customer {id}: {e}")
            raise DatabaseError(f"Error deleting customer: {e}", original_error=e)
        if response.data:
            logger.info(f"Customer deleted: {id}")
            return True
        return False

    async def count(self, predicate: Predicate = MATCH_ALL) -> int:
        try:
            query = self.db.table(self.table_name).select("id", count="exact")
            response = self._filtered(query, predicate).limit(1).execute()
        except Exception as e:
            logger.error(f"Error counting customers: {e}")
            raise DatabaseError(f"Error counting customers: {e}", original_error=e)
        return response.count or 0

    async def find(self, predicate: Predicate = MATCH_ALL) -> List[Customer]:
        customers: List[Customer] = []
        offset = 0
        while True:
            try:
                query = self.db.table(self.table_name).select("*")
                response = (
                    self._filtered(query, predicate)
                    .order("id")
                    .range(offset, offset + self.page_size - 1)
                    .execute()
                )
            except Exception as e:
                logger.error(f"Error resolving customers: {e}")
                raise DatabaseError(f"Error resolving customers: {e}", original_error=e)

            rows = response.data or []
            customers.extend(Customer.from_db_row(row) for row in rows)
            if len(rows) < self.page_size:
                return customers
            offset += self.page_size
