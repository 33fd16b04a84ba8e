"""
Base Repository - common interface for every repository.

Repositories hold a database client (Supabase or a test double) and
translate rows into entities. Services depend on the abstract store
interfaces declared next to each adapter, never on Supabase directly.
"""
from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional, List, Any

# Type variable for entities
T = TypeVar('T')

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: Exception) -> bool:
    """True when a store error comes from a unique index/constraint."""
    code = getattr(error, "code", None)
    if code == UNIQUE_VIOLATION:
        return True
    return "duplicate key" in str(error).lower()


class BaseRepository(ABC, Generic[T]):
    """
    Base interface for repositories.

    Attributes:
        db: database client (Supabase, Mock, etc.)
        table_name: table backing the entity

    Example:
        class CustomerRepository(BaseRepository[Customer]):
            @property
            def table_name(self) -> str:
                return "customers"

            async def get_by_id(self, id: str) -> Optional[Customer]:
                response = self.db.table(self.table_name).select("*").eq("id", id).execute()
                return Customer.from_db_row(response.data[0]) if response.data else None
    """

    def __init__(self, db_client: Any):
        """
        Args:
            db_client: database client (Supabase, Mock, etc.)
        """
        self.db = db_client

    @property
    @abstractmethod
    def table_name(self) -> str:
        """Table name in the store."""
        pass

    @abstractmethod
    async def get_by_id(self, id: str) -> Optional[T]:
        """
        Fetches an entity by ID.

        Returns:
            Entity or None when not found
        """
        pass

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[T]:
        """Lists entities, newest first."""
        pass
