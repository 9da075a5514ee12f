"""
Statistics Aggregator.

Everything is recomputed from the orders of the live system on each
request. Status counts cover all orders; all other figures only look at
COMPLETED orders. Rankings keep first-seen order on ties.
"""

import logging
import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from bestelsysteem.domain import LineItem, OrderRecord, OrderStatus, ProductRecord
from bestelsysteem.services.systems import SystemSettingsService
from bestelsysteem.storage import Storage

logger = logging.getLogger(__name__)

TOP_N = 5
PITCHER_PREFIX = "pitcher "
PITCHER_MULTIPLIER = 5
BEER_NAMES = ("bier",)
ROSE_BEER_NAMES = ("rosé bier", "rose bier")


@dataclass
class ProductQuantity:
    product_id: str
    name: str
    quantity: int


@dataclass
class TableQuantity:
    table: int
    quantity: int


@dataclass
class FoodWinner:
    food: str
    table_number: int
    quantity: int


@dataclass
class Statistics:
    order_counts: Dict[str, int] = field(default_factory=dict)
    top_tables: List[Tuple[int, int]] = field(default_factory=list)
    ordered_foods: List[ProductQuantity] = field(default_factory=list)
    ordered_drinks: List[ProductQuantity] = field(default_factory=list)
    all_products: List[ProductRecord] = field(default_factory=list)
    ordered_beers: List[Tuple[int, int]] = field(default_factory=list)
    ordered_rose_beers: List[Tuple[int, int]] = field(default_factory=list)
    most_snacks_table: Optional[TableQuantity] = None
    top_food_by_table: List[FoodWinner] = field(default_factory=list)


def _normalize_name(name: str) -> str:
    return unicodedata.normalize("NFC", name or "").strip().casefold()


def beer_units(line: LineItem) -> Tuple[Optional[str], int]:
    """
    Classify a drink line as beer or rosé beer in single servings.

    Returns ("beer" | "rose" | None, units). A "Pitcher " prefix counts as
    five servings per unit.
    """
    name = _normalize_name(line.name)
    multiplier = 1
    if name.startswith(PITCHER_PREFIX):
        name = name[len(PITCHER_PREFIX):].strip()
        multiplier = PITCHER_MULTIPLIER
    if name in BEER_NAMES:
        return "beer", line.quantity * multiplier
    if name in ROSE_BEER_NAMES:
        return "rose", line.quantity * multiplier
    return None, 0


def _top(counter: Dict[int, int], n: int = TOP_N) -> List[Tuple[int, int]]:
    # sorted() is stable, so ties keep insertion (first-seen) order
    return sorted(counter.items(), key=lambda item: item[1], reverse=True)[:n]


def _product_totals(lines: Sequence[LineItem]) -> List[ProductQuantity]:
    totals: Dict[str, ProductQuantity] = {}
    for line in lines:
        entry = totals.get(line.product_id)
        if entry is None:
            totals[line.product_id] = ProductQuantity(line.product_id, line.name, line.quantity)
        else:
            entry.quantity += line.quantity
    return sorted(totals.values(), key=lambda p: p.quantity, reverse=True)


def compute_statistics(orders: Sequence[OrderRecord], products: Sequence[ProductRecord]) -> Statistics:
    """Aggregate the given orders of one system."""
    status_counts = Counter(order.status for order in orders)
    order_counts = {status.value: status_counts.get(status, 0) for status in OrderStatus}

    completed = sorted(
        (o for o in orders if o.status == OrderStatus.COMPLETED),
        key=lambda o: (o.created_at is None, o.created_at, o.id),
    )

    orders_per_table: Dict[int, int] = {}
    beers: Dict[int, int] = {}
    rose_beers: Dict[int, int] = {}
    food_per_table: Dict[int, int] = {}
    # food name -> table -> quantity
    food_by_name: Dict[str, Dict[int, int]] = {}
    drink_lines: List[LineItem] = []
    food_lines: List[LineItem] = []

    for order in completed:
        table = order.table_number
        orders_per_table[table] = orders_per_table.get(table, 0) + 1

        for line in order.drinks:
            drink_lines.append(line)
            kind, units = beer_units(line)
            if kind == "beer":
                beers[table] = beers.get(table, 0) + units
            elif kind == "rose":
                rose_beers[table] = rose_beers.get(table, 0) + units

        for line in order.foods:
            food_lines.append(line)
            food_per_table[table] = food_per_table.get(table, 0) + line.quantity
            per_table = food_by_name.setdefault(line.name, {})
            per_table[table] = per_table.get(table, 0) + line.quantity

    most_snacks = None
    for table, quantity in food_per_table.items():
        if most_snacks is None or quantity > most_snacks.quantity:
            most_snacks = TableQuantity(table=table, quantity=quantity)

    top_food_by_table = []
    for food, per_table in food_by_name.items():
        winner = None
        for table, quantity in per_table.items():
            if winner is None or quantity > winner.quantity:
                winner = FoodWinner(food=food, table_number=table, quantity=quantity)
        top_food_by_table.append(winner)

    return Statistics(
        order_counts=order_counts,
        top_tables=_top(orders_per_table),
        ordered_foods=_product_totals(food_lines),
        ordered_drinks=_product_totals(drink_lines),
        all_products=list(products),
        ordered_beers=_top(beers),
        ordered_rose_beers=_top(rose_beers),
        most_snacks_table=most_snacks,
        top_food_by_table=top_food_by_table,
    )


class StatisticsService:
    """Computes statistics for the live system on demand."""

    def __init__(self, storage: Storage, systems: SystemSettingsService):
        self.storage = storage
        self.systems = systems

    def get_statistics(self) -> Statistics:
        system = self.systems.require_live_system()
        with self.storage.transaction() as uow:
            orders = uow.list_orders(system.id)
            products = uow.list_products(system.id)
        stats = compute_statistics(orders, products)
        logger.debug(f"[Statistics] Computed statistics for system {system.id} over {len(orders)} orders")
        return stats
