"""
Abstract Storage interface for Bestelsysteem.

Defines the persistence contract used by the services. Every read and
write happens through a UnitOfWork obtained from Storage.transaction();
all statements issued on one unit of work commit together or not at all.
Implementations can be in-memory, database-backed, or other backends.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Iterable, List, Optional

from bestelsysteem.domain import (
    BarRecord,
    OrderRecord,
    OrderStatus,
    ProductRecord,
    RelationRecord,
    SystemRecord,
    TableRecord,
)


class UnitOfWork(ABC):
    """Set-based find/add/update/delete primitives scoped to one transaction."""

    # ---------- Systems ----------
    @abstractmethod
    def list_systems(self) -> List[SystemRecord]:
        """All systems ordered by id."""
        ...

    @abstractmethod
    def get_system(self, system_id: int) -> Optional[SystemRecord]:
        ...

    @abstractmethod
    def get_live_system(self) -> Optional[SystemRecord]:
        """The system flagged live, or None. Lowest id wins if several are flagged."""
        ...

    @abstractmethod
    def add_system(self, system: SystemRecord) -> SystemRecord:
        """Insert a system and return it with its generated id."""
        ...

    @abstractmethod
    def update_system(self, system: SystemRecord) -> None:
        ...

    @abstractmethod
    def clear_live_flag(self, except_system_id: int) -> None:
        """Set live=False on every system other than the given one."""
        ...

    @abstractmethod
    def delete_system(self, system_id: int) -> None:
        """
        Delete a system with everything it owns.

        Products, bars, tables, relations and orders of the system are removed.
        """
        ...

    # ---------- Products ----------
    @abstractmethod
    def list_products(self, system_id: int) -> List[ProductRecord]:
        """Products of a system ordered by type then position."""
        ...

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        """Look up a product by its external product_id across all systems."""
        ...

    @abstractmethod
    def add_product(self, product: ProductRecord) -> ProductRecord:
        ...

    @abstractmethod
    def update_product(self, product: ProductRecord) -> None:
        """Update name, price, type and position of the row with product.id."""
        ...

    @abstractmethod
    def delete_products(self, ids: Iterable[int]) -> None:
        """Delete products by internal row id."""
        ...

    # ---------- Bars and kitchens ----------
    @abstractmethod
    def list_bars(self, system_id: int) -> List[BarRecord]:
        """Bars and kitchens of a system ordered by type then bar_number."""
        ...

    @abstractmethod
    def get_bar(self, bar_id: int) -> Optional[BarRecord]:
        ...

    @abstractmethod
    def add_bar(self, bar: BarRecord) -> BarRecord:
        ...

    @abstractmethod
    def update_bar(self, bar: BarRecord) -> None:
        ...

    @abstractmethod
    def delete_bars(self, ids: Iterable[int]) -> None:
        """
        Delete bars by id.

        Their relations are deleted; orders routed to them keep existing with bar_id=None.
        """
        ...

    # ---------- Tables ----------
    @abstractmethod
    def list_tables(self, system_id: int) -> List[TableRecord]:
        """Tables of a system ordered by table_number."""
        ...

    @abstractmethod
    def get_table_by_number(self, system_id: int, table_number: int) -> Optional[TableRecord]:
        ...

    @abstractmethod
    def add_table(self, system_id: int, table_number: int) -> TableRecord:
        ...

    @abstractmethod
    def delete_tables(self, ids: Iterable[int]) -> None:
        """Delete tables by id together with their relations and orders."""
        ...

    # ---------- Table to bar relations ----------
    @abstractmethod
    def list_relations(self, system_id: int) -> List[RelationRecord]:
        ...

    @abstractmethod
    def add_relation(self, system_id: int, table_id: int, bar_id: int) -> RelationRecord:
        ...

    @abstractmethod
    def delete_relations(self, ids: Iterable[int]) -> None:
        ...

    # ---------- Orders ----------
    @abstractmethod
    def add_order(self, order: OrderRecord) -> OrderRecord:
        """Insert an order; created_at is set when missing. Returns it with id."""
        ...

    @abstractmethod
    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        ...

    @abstractmethod
    def set_order_status(self, order_id: int, status: OrderStatus) -> bool:
        """Update order status. Returns False when the order does not exist."""
        ...

    @abstractmethod
    def list_orders(
        self,
        system_id: int,
        status: Optional[OrderStatus] = None,
        bar_id: Optional[int] = None,
    ) -> List[OrderRecord]:
        """
        Orders of a system in creation order (oldest first).

        Optional filters narrow by status and by routed bar. Each returned
        record carries the table_number of its table.
        """
        ...


class Storage(ABC):
    """Abstract base class for storage implementations."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """
        Open a transaction and yield its UnitOfWork.

        Leaving the block normally commits; an exception rolls every
        statement of the block back and propagates unchanged.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove all stored state."""
        ...

    def close(self) -> None:
        """Release connections. No-op by default."""
        return None
