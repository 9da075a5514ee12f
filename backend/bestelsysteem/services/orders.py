"""
Order Engine: placing, advancing and listing orders.

A patron basket maps product_id to a quantity string. Placing it writes at
most two orders in one transaction: the drinks, routed to the bar assigned
to the table, and the foods, which go to the system-wide kitchen queue.
Notifications are published only after the transaction has committed.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from bestelsysteem.domain import (
    BarType,
    LineItem,
    OrderReceipt,
    OrderRecord,
    OrderStatus,
    ProductRecord,
    ProductType,
)
from bestelsysteem.exceptions import NotFoundError, ValidationError
from bestelsysteem.services.cache import KeyedCache
from bestelsysteem.services.catalog import load_products
from bestelsysteem.services.notifications import NotificationBus
from bestelsysteem.services.systems import SystemSettingsService
from bestelsysteem.storage import Storage

logger = logging.getLogger(__name__)

SORT_ASC = "asc"
SORT_DESC = "desc"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_quantity(raw: Any) -> int:
    """
    Parse a basket quantity.

    Strings are read up to the first non-digit ("3", " 2 ", "2.5" -> 2).
    Missing, non-numeric and negative values count as 0.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    if isinstance(raw, float):
        return max(int(raw), 0)
    match = _LEADING_INT.match(str(raw))
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def parse_table_number(raw: Any) -> int:
    """Table numbers arrive as int or string; empty or non-numeric is rejected."""
    if raw is None or isinstance(raw, bool) or str(raw).strip() == "":
        raise ValidationError("Table number is required")
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"Invalid table number: {raw!r}")


def _money(value: float) -> float:
    return round(value, 2)


def _sorted_orders(orders: List[OrderRecord], sort: str) -> List[OrderRecord]:
    if sort not in (SORT_ASC, SORT_DESC):
        raise ValidationError(f"Invalid sort order: {sort!r} (expected 'asc' or 'desc')")
    return sorted(orders, key=lambda o: (o.created_at, o.id), reverse=(sort == SORT_DESC))


class OrderEngine:
    """Validates, records and advances patron orders."""

    def __init__(
        self,
        storage: Storage,
        product_cache: KeyedCache,
        bus: NotificationBus,
        systems: SystemSettingsService,
        max_quantity: Optional[int] = None,
    ):
        self.storage = storage
        self.product_cache = product_cache
        self.bus = bus
        self.systems = systems
        self.max_quantity = max_quantity

    def _catalog(self, system_id: int) -> List[ProductRecord]:
        return self.product_cache.get_or_load(system_id, lambda: load_products(self.storage, system_id))

    def _build_lines(self, catalog: List[ProductRecord], basket: Mapping[str, Any]) -> List[LineItem]:
        lines = []
        for product in catalog:
            quantity = parse_quantity(basket.get(product.product_id))
            if quantity == 0:
                continue
            if self.max_quantity is not None and quantity > self.max_quantity:
                raise ValidationError(
                    f"Quantity {quantity} for '{product.name}' exceeds the maximum of {self.max_quantity}"
                )
            lines.append(LineItem(
                product_id=product.product_id,
                name=product.name,
                unit_price=product.price,
                type=product.type,
                quantity=quantity,
                price=_money(quantity * product.price),
            ))
        return lines

    def place_order(self, system_id: int, table_number: Any, basket: Mapping[str, Any]) -> OrderReceipt:
        """
        Record a basket for a table.

        Raises:
            ValidationError: unknown product id, missing/invalid table number,
                or a quantity above the configured maximum
            NotFoundError: system or table missing, or the table has no bar
        """
        with self.storage.transaction() as uow:
            if uow.get_system(system_id) is None:
                raise NotFoundError("System", system_id)
        catalog = self._catalog(system_id)
        known = {p.product_id for p in catalog}
        unknown = sorted(str(key) for key in basket if key not in known)
        if unknown:
            raise ValidationError(f"Invalid product: {', '.join(unknown)}")
        number = parse_table_number(table_number)

        lines = self._build_lines(catalog, basket)
        drinks = [line for line in lines if line.type == ProductType.DRINK]
        foods = [line for line in lines if line.type == ProductType.FOOD]

        written: List[OrderRecord] = []
        with self.storage.transaction() as uow:
            if uow.get_system(system_id) is None:
                raise NotFoundError("System", system_id)
            table = uow.get_table_by_number(system_id, number)
            if table is None:
                raise NotFoundError("Table", number)
            relation = next((r for r in uow.list_relations(system_id) if r.table_id == table.id), None)
            if relation is None:
                raise NotFoundError("Table", number, detail=f"Table {number} has no bar assigned")

            if drinks:
                written.append(uow.add_order(OrderRecord(
                    id=None,
                    system_id=system_id,
                    table_id=table.id,
                    bar_id=relation.bar_id,
                    status=OrderStatus.PENDING,
                    drinks=drinks,
                    total_price=_money(sum(line.price for line in drinks)),
                )))
            if foods:
                written.append(uow.add_order(OrderRecord(
                    id=None,
                    system_id=system_id,
                    table_id=table.id,
                    bar_id=None,
                    status=OrderStatus.PENDING,
                    foods=foods,
                    total_price=_money(sum(line.price for line in foods)),
                )))

        total = _money(sum(order.total_price for order in written))
        if written:
            logger.info(
                f"[OrderEngine] Table {number} in system {system_id}: "
                f"{len(drinks)} drink lines, {len(foods)} food lines, total {total:.2f}"
            )
            self._notify()
        else:
            logger.info(f"[OrderEngine] Table {number} in system {system_id}: empty basket, nothing written")
        return OrderReceipt(orders=written, drinks=drinks, foods=foods, total_price=total)

    def advance_order(self, order_id: int) -> OrderRecord:
        """
        Mark an order COMPLETED ("send").

        No status guard: sending an already completed order succeeds again.
        """
        with self.storage.transaction() as uow:
            if not uow.set_order_status(order_id, OrderStatus.COMPLETED):
                raise NotFoundError("Order", order_id)
            order = uow.get_order(order_id)

        logger.info(f"[OrderEngine] Order {order_id} sent")
        self._notify()
        return order

    def list_orders_for_bar(self, bar_number: int, sort: str = SORT_ASC) -> List[OrderRecord]:
        """PENDING drink orders of the live system routed to the bar with this number."""
        system = self.systems.require_live_system()
        with self.storage.transaction() as uow:
            bar = next(
                (b for b in uow.list_bars(system.id) if b.type == BarType.BAR and b.bar_number == bar_number),
                None,
            )
            if bar is None:
                raise NotFoundError("Bar", bar_number)
            orders = uow.list_orders(system.id, status=OrderStatus.PENDING, bar_id=bar.id)
        return _sorted_orders([o for o in orders if o.drinks], sort)

    def list_orders_for_kitchen(self, sort: str = SORT_ASC) -> List[OrderRecord]:
        """PENDING orders of the live system with food, whatever their bar."""
        system = self.systems.require_live_system()
        with self.storage.transaction() as uow:
            orders = uow.list_orders(system.id, status=OrderStatus.PENDING)
        return _sorted_orders([o for o in orders if o.foods], sort)

    def _notify(self) -> None:
        try:
            self.bus.notify_order_changed()
        except Exception:
            # Order is already committed
            logger.exception("[OrderEngine] Failed to publish order notification")


def receipt_summary(receipt: OrderReceipt) -> Dict[str, Any]:
    """Compact receipt used in logs and by the seeding script."""
    return {
        "orders": [o.id for o in receipt.orders],
        "drinks": len(receipt.drinks),
        "foods": len(receipt.foods),
        "total_price": receipt.total_price,
    }
