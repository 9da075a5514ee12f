"""
Topology Store: bars, kitchens, tables and the table-to-bar routing.

A save replaces the whole topology of a system in one transaction. Tables
are numbered 1..N and are only removed when they lose their last routing
entry and hold no orders. Bars are removed when they lose their last
routing entry.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from bestelsysteem.domain import Assignment, BarDraft, BarRecord, BarType, OrderStatus, Topology
from bestelsysteem.exceptions import NotFoundError, ValidationError
from bestelsysteem.services.notifications import NotificationBus
from bestelsysteem.storage import Storage, UnitOfWork

logger = logging.getLogger(__name__)


# ---------- Redistribution helpers ----------

def even_distribution(bars: Sequence[Any], total_tables: int) -> List[Assignment]:
    """
    Split tables 1..total_tables into contiguous blocks, one block per bar.

    Every bar gets total_tables // len(bars) tables and the first
    total_tables % len(bars) bars get one extra. With 3 bars and 10 tables
    the blocks are 1-4, 5-7 and 8-10.
    """
    if not bars or total_tables <= 0:
        return []
    base, extra = divmod(total_tables, len(bars))
    assignments = []
    table_number = 1
    for index, bar in enumerate(bars):
        count = base + (1 if index < extra else 0)
        for _ in range(count):
            assignments.append(Assignment(table_number=table_number, bar_id=bar.id, bar_number=bar.bar_number))
            table_number += 1
    return assignments


def alternating_distribution(bars: Sequence[Any], total_tables: int) -> List[Assignment]:
    """Round-robin: table i (1-based) goes to bars[(i - 1) % len(bars)]."""
    if not bars or total_tables <= 0:
        return []
    return [
        Assignment(
            table_number=i + 1,
            bar_id=bars[i % len(bars)].id,
            bar_number=bars[i % len(bars)].bar_number,
        )
        for i in range(total_tables)
    ]


DISTRIBUTIONS = {
    "even": even_distribution,
    "alternating": alternating_distribution,
}


# ---------- Store ----------

def _read_topology(uow: UnitOfWork, system_id: int) -> Topology:
    bars = uow.list_bars(system_id)
    tables = uow.list_tables(system_id)
    table_numbers = {t.id: t.table_number for t in tables}
    bar_numbers = {b.id: b.bar_number for b in bars}

    assignments = [
        Assignment(
            table_number=table_numbers.get(r.table_id),
            table_id=r.table_id,
            bar_id=r.bar_id,
            bar_number=bar_numbers.get(r.bar_id),
        )
        for r in uow.list_relations(system_id)
    ]
    assignments.sort(key=lambda a: (a.table_number is None, a.table_number or 0, a.table_id))

    return Topology(
        bars=[b for b in bars if b.type == BarType.BAR],
        kitchens=[b for b in bars if b.type == BarType.KITCHEN],
        total_tables=len(tables),
        assignments=assignments,
    )


def _pending_routing(uow: UnitOfWork, system_id: int) -> Dict[int, Optional[int]]:
    return {o.id: o.bar_id for o in uow.list_orders(system_id, status=OrderStatus.PENDING)}


class TopologyStore:
    """Reads and replaces the bar/kitchen roster and table routing of a system."""

    def __init__(self, storage: Storage, bus: Optional[NotificationBus] = None):
        self.storage = storage
        self.bus = bus

    def get_topology(self, system_id: Optional[int]) -> Topology:
        """Bars, kitchens, table count and assignments sorted by table number."""
        if not system_id:
            return Topology()
        with self.storage.transaction() as uow:
            return _read_topology(uow, system_id)

    def save_topology(
        self,
        system_id: int,
        total_tables: int,
        bars: Sequence[BarDraft],
        kitchens: Sequence[BarDraft],
        assignments: Sequence[Any],
    ) -> Topology:
        """
        Replace the topology of a system atomically.

        1. Bars and kitchens not in the incoming lists are deleted, the rest
           are created (id None) or updated.
        2. Tables 1..total_tables are created where missing.
        3. Relations are reconciled against the assignments. An assignment
           without bar_id is skipped unless its bar_number names a bar of
           this save. The table is taken from table_id, else from
           table_number, else it is table number index + 1.
           A table or bar left without relations by a removed relation is
           deleted, unless the table still has orders.

        Assignment entries only need table_id, table_number, bar_id and
        bar_number attributes.

        Raises:
            NotFoundError: system or an incoming bar id does not exist
            ValidationError: negative table count, or an assignment that
                points at a kitchen or at a table/bar of another system
                or at an unknown table number
        """
        if total_tables is None or total_tables < 0:
            raise ValidationError("total_tables must be a non-negative number")

        with self.storage.transaction() as uow:
            if uow.get_system(system_id) is None:
                raise NotFoundError("System", system_id)
            routing_before = _pending_routing(uow, system_id)

            saved_bars = self._reconcile_bars(uow, system_id, bars, kitchens)
            table_by_number = self._reconcile_tables(uow, system_id, total_tables)
            self._reconcile_relations(uow, system_id, assignments, saved_bars, table_by_number)

            topology = _read_topology(uow, system_id)
            orders_changed = _pending_routing(uow, system_id) != routing_before

        logger.info(
            f"[TopologyStore] Saved topology for system {system_id}: "
            f"{len(topology.bars)} bars, {len(topology.kitchens)} kitchens, "
            f"{topology.total_tables} tables, {len(topology.assignments)} assignments"
        )
        if orders_changed and self.bus is not None:
            logger.info(f"[TopologyStore] Pending orders of system {system_id} lost their bar")
            try:
                self.bus.notify_order_changed()
            except Exception:
                # Topology is already committed
                logger.exception("[TopologyStore] Failed to publish order notification")
        return topology

    def _reconcile_bars(
        self,
        uow: UnitOfWork,
        system_id: int,
        bars: Sequence[BarDraft],
        kitchens: Sequence[BarDraft],
    ) -> List[BarRecord]:
        """Upsert bars and kitchens; returns the saved BARs."""
        incoming = [(b, BarType.BAR) for b in bars] + [(k, BarType.KITCHEN) for k in kitchens]
        incoming_ids = {draft.id for draft, _ in incoming if draft.id is not None}

        stored = {b.id: b for b in uow.list_bars(system_id)}
        removed = [bar_id for bar_id in stored if bar_id not in incoming_ids]
        if removed:
            uow.delete_bars(removed)
            logger.info(f"[TopologyStore] Deleted bars {removed} from system {system_id}")

        saved_bars: List[BarRecord] = []
        for draft, bar_type in incoming:
            record = BarRecord(
                id=draft.id,
                system_id=system_id,
                bar_number=draft.bar_number,
                name=draft.name or "",
                type=bar_type,
            )
            if draft.id is None:
                record = uow.add_bar(record)
            elif draft.id in stored:
                uow.update_bar(record)
            else:
                raise NotFoundError("Bar", draft.id)
            if bar_type == BarType.BAR:
                saved_bars.append(record)
        return saved_bars

    def _reconcile_tables(self, uow: UnitOfWork, system_id: int, total_tables: int) -> Dict[int, int]:
        """Create missing tables 1..total_tables; returns table id by number."""
        table_by_number = {t.table_number: t.id for t in uow.list_tables(system_id)}
        for number in range(1, total_tables + 1):
            if number not in table_by_number:
                table_by_number[number] = uow.add_table(system_id, number).id
        return table_by_number

    def _reconcile_relations(
        self,
        uow: UnitOfWork,
        system_id: int,
        assignments: Sequence[Any],
        saved_bars: List[BarRecord],
        table_by_number: Dict[int, int],
    ) -> None:
        routable_bars = {bar.id for bar in saved_bars}
        bar_by_number: Dict[int, BarRecord] = {}
        for bar in saved_bars:
            bar_by_number.setdefault(bar.bar_number, bar)
        table_ids = set(table_by_number.values())

        # table_id -> bar_id, a later entry for the same table wins
        desired: Dict[int, int] = {}
        for index, entry in enumerate(assignments):
            bar_id = getattr(entry, "bar_id", None)
            if bar_id is None:
                bar_number = getattr(entry, "bar_number", None)
                fallback = bar_by_number.get(bar_number) if bar_number is not None else None
                if fallback is None:
                    continue
                bar_id = fallback.id
            if bar_id not in routable_bars:
                raise ValidationError(f"Assignment {index + 1} does not point at a bar of this system")

            table_id = getattr(entry, "table_id", None)
            table_number = getattr(entry, "table_number", None)
            if table_id is None and table_number is None:
                table_id = table_by_number.get(index + 1)
                if table_id is None:
                    continue
            elif table_id is None:
                table_id = table_by_number.get(table_number)
                if table_id is None:
                    raise ValidationError(f"Assignment {index + 1} names unknown table {table_number}")
            elif table_id not in table_ids:
                raise ValidationError(f"Assignment {index + 1} does not point at a table of this system")
            desired[table_id] = bar_id

        wanted: Set[Tuple[int, int]] = set(desired.items())
        existing = uow.list_relations(system_id)
        present = {(r.table_id, r.bar_id) for r in existing}

        stale = [r for r in existing if (r.table_id, r.bar_id) not in wanted]
        for table_id, bar_id in sorted(wanted - present):
            uow.add_relation(system_id, table_id, bar_id)
        if not stale:
            return
        uow.delete_relations([r.id for r in stale])

        # Orphan cleanup: rows that lost their last relation in this step
        remaining = uow.list_relations(system_id)
        used_tables = {r.table_id for r in remaining}
        used_bars = {r.bar_id for r in remaining}
        # Tables that still hold orders are kept, unrouted
        used_tables |= {o.table_id for o in uow.list_orders(system_id)}
        orphan_tables = sorted({r.table_id for r in stale} - used_tables)
        orphan_bars = sorted({r.bar_id for r in stale} - used_bars)
        if orphan_tables:
            uow.delete_tables(orphan_tables)
        if orphan_bars:
            uow.delete_bars(orphan_bars)
        logger.info(
            f"[TopologyStore] Removed {len(stale)} relations in system {system_id}; "
            f"orphaned tables {orphan_tables}, orphaned bars {orphan_bars}"
        )
