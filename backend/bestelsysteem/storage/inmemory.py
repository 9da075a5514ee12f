"""
In-memory storage implementation for Bestelsysteem.

State lives in plain dictionaries. Reads inside a transaction go straight
to the committed state and hand out copies. The first write takes a deep
copy, which is swapped in on success, so a failing block leaves nothing
behind. Transactions are serialised with a lock.
"""

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Optional

from bestelsysteem.domain import (
    BarRecord,
    OrderRecord,
    OrderStatus,
    ProductRecord,
    RelationRecord,
    SystemRecord,
    TableRecord,
)
from bestelsysteem.storage.base import Storage, UnitOfWork
from bestelsysteem.utils.time_utils import now_local_naive


@dataclass
class _State:
    systems: Dict[int, SystemRecord] = field(default_factory=dict)
    products: Dict[int, ProductRecord] = field(default_factory=dict)
    bars: Dict[int, BarRecord] = field(default_factory=dict)
    tables: Dict[int, TableRecord] = field(default_factory=dict)
    relations: Dict[int, RelationRecord] = field(default_factory=dict)
    orders: Dict[int, OrderRecord] = field(default_factory=dict)
    # Last generated id per entity
    sequences: Dict[str, int] = field(default_factory=dict)

    def next_id(self, entity: str) -> int:
        self.sequences[entity] = self.sequences.get(entity, 0) + 1
        return self.sequences[entity]


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work that copies the in-memory state on its first write."""

    def __init__(self, state: _State):
        self._state = state
        self.copied = False

    def _begin_write(self) -> None:
        if not self.copied:
            self._state = copy.deepcopy(self._state)
            self.copied = True

    # ---------- Systems ----------
    def list_systems(self) -> List[SystemRecord]:
        return [copy.deepcopy(s) for _, s in sorted(self._state.systems.items())]

    def get_system(self, system_id: int) -> Optional[SystemRecord]:
        system = self._state.systems.get(system_id)
        return copy.deepcopy(system) if system else None

    def get_live_system(self) -> Optional[SystemRecord]:
        for _, system in sorted(self._state.systems.items()):
            if system.live:
                return copy.deepcopy(system)
        return None

    def add_system(self, system: SystemRecord) -> SystemRecord:
        self._begin_write()
        stored = replace(system, id=self._state.next_id("system"))
        self._state.systems[stored.id] = stored
        return copy.deepcopy(stored)

    def update_system(self, system: SystemRecord) -> None:
        self._begin_write()
        self._state.systems[system.id] = copy.deepcopy(system)

    def clear_live_flag(self, except_system_id: int) -> None:
        self._begin_write()
        for system_id, system in self._state.systems.items():
            if system_id != except_system_id:
                system.live = False

    def delete_system(self, system_id: int) -> None:
        self._begin_write()
        self._state.systems.pop(system_id, None)
        for name in ("products", "bars", "tables", "relations", "orders"):
            rows = getattr(self._state, name)
            for row_id in [i for i, row in rows.items() if row.system_id == system_id]:
                del rows[row_id]

    # ---------- Products ----------
    def list_products(self, system_id: int) -> List[ProductRecord]:
        products = [p for p in self._state.products.values() if p.system_id == system_id]
        products.sort(key=lambda p: (p.type.value, p.position, p.id))
        return [copy.deepcopy(p) for p in products]

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        for product in self._state.products.values():
            if product.product_id == product_id:
                return copy.deepcopy(product)
        return None

    def add_product(self, product: ProductRecord) -> ProductRecord:
        self._begin_write()
        stored = replace(product, id=self._state.next_id("product"))
        self._state.products[stored.id] = stored
        return copy.deepcopy(stored)

    def update_product(self, product: ProductRecord) -> None:
        self._begin_write()
        existing = self._state.products[product.id]
        existing.name = product.name
        existing.price = product.price
        existing.type = product.type
        existing.position = product.position

    def delete_products(self, ids: Iterable[int]) -> None:
        self._begin_write()
        for product_id in ids:
            self._state.products.pop(product_id, None)

    # ---------- Bars and kitchens ----------
    def list_bars(self, system_id: int) -> List[BarRecord]:
        bars = [b for b in self._state.bars.values() if b.system_id == system_id]
        bars.sort(key=lambda b: (b.type.value, b.bar_number, b.id))
        return [copy.deepcopy(b) for b in bars]

    def get_bar(self, bar_id: int) -> Optional[BarRecord]:
        bar = self._state.bars.get(bar_id)
        return copy.deepcopy(bar) if bar else None

    def add_bar(self, bar: BarRecord) -> BarRecord:
        self._begin_write()
        stored = replace(bar, id=self._state.next_id("bar"))
        self._state.bars[stored.id] = stored
        return copy.deepcopy(stored)

    def update_bar(self, bar: BarRecord) -> None:
        self._begin_write()
        existing = self._state.bars[bar.id]
        existing.bar_number = bar.bar_number
        existing.name = bar.name
        existing.type = bar.type

    def delete_bars(self, ids: Iterable[int]) -> None:
        self._begin_write()
        ids = set(ids)
        for bar_id in ids:
            self._state.bars.pop(bar_id, None)
        self._drop_relations(lambda r: r.bar_id in ids)
        for order in self._state.orders.values():
            if order.bar_id in ids:
                order.bar_id = None

    # ---------- Tables ----------
    def list_tables(self, system_id: int) -> List[TableRecord]:
        tables = [t for t in self._state.tables.values() if t.system_id == system_id]
        tables.sort(key=lambda t: (t.table_number, t.id))
        return [copy.deepcopy(t) for t in tables]

    def get_table_by_number(self, system_id: int, table_number: int) -> Optional[TableRecord]:
        for table in self.list_tables(system_id):
            if table.table_number == table_number:
                return table
        return None

    def add_table(self, system_id: int, table_number: int) -> TableRecord:
        self._begin_write()
        stored = TableRecord(id=self._state.next_id("table"), system_id=system_id, table_number=table_number)
        self._state.tables[stored.id] = stored
        return copy.deepcopy(stored)

    def delete_tables(self, ids: Iterable[int]) -> None:
        self._begin_write()
        ids = set(ids)
        for table_id in ids:
            self._state.tables.pop(table_id, None)
        self._drop_relations(lambda r: r.table_id in ids)
        for order_id in [i for i, o in self._state.orders.items() if o.table_id in ids]:
            del self._state.orders[order_id]

    # ---------- Table to bar relations ----------
    def list_relations(self, system_id: int) -> List[RelationRecord]:
        relations = [r for r in self._state.relations.values() if r.system_id == system_id]
        relations.sort(key=lambda r: r.id)
        return [copy.deepcopy(r) for r in relations]

    def add_relation(self, system_id: int, table_id: int, bar_id: int) -> RelationRecord:
        self._begin_write()
        stored = RelationRecord(
            id=self._state.next_id("relation"),
            system_id=system_id,
            table_id=table_id,
            bar_id=bar_id,
        )
        self._state.relations[stored.id] = stored
        return copy.deepcopy(stored)

    def delete_relations(self, ids: Iterable[int]) -> None:
        self._begin_write()
        for relation_id in ids:
            self._state.relations.pop(relation_id, None)

    def _drop_relations(self, predicate) -> None:
        for relation_id in [i for i, r in self._state.relations.items() if predicate(r)]:
            del self._state.relations[relation_id]

    # ---------- Orders ----------
    def add_order(self, order: OrderRecord) -> OrderRecord:
        self._begin_write()
        stored = copy.deepcopy(order)
        stored.id = self._state.next_id("order")
        stored.table_number = None
        if stored.created_at is None:
            stored.created_at = now_local_naive()
        self._state.orders[stored.id] = stored
        return self._with_table_number(stored)

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        order = self._state.orders.get(order_id)
        return self._with_table_number(order) if order else None

    def set_order_status(self, order_id: int, status: OrderStatus) -> bool:
        self._begin_write()
        order = self._state.orders.get(order_id)
        if order is None:
            return False
        order.status = status
        return True

    def list_orders(
        self,
        system_id: int,
        status: Optional[OrderStatus] = None,
        bar_id: Optional[int] = None,
    ) -> List[OrderRecord]:
        orders = [o for o in self._state.orders.values() if o.system_id == system_id]
        if status is not None:
            orders = [o for o in orders if o.status == status]
        if bar_id is not None:
            orders = [o for o in orders if o.bar_id == bar_id]
        orders.sort(key=lambda o: (o.created_at, o.id))
        return [self._with_table_number(o) for o in orders]

    def _with_table_number(self, order: OrderRecord) -> OrderRecord:
        result = copy.deepcopy(order)
        table = self._state.tables.get(order.table_id)
        result.table_number = table.table_number if table else None
        return result


class InMemoryStorage(Storage):
    """In-memory storage using dictionaries."""

    def __init__(self):
        """Initialize with empty storage."""
        self._state = _State()
        self._lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[InMemoryUnitOfWork]:
        with self._lock:
            uow = InMemoryUnitOfWork(self._state)
            yield uow
            # Only reached when the block did not raise
            if uow.copied:
                self._state = uow._state

    def clear(self) -> None:
        """Clear all state."""
        with self._lock:
            self._state = _State()
