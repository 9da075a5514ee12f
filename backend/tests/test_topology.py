"""Tests for the Topology Store and the table distribution helpers."""

import pytest

from bestelsysteem.domain import Assignment, BarDraft, BarRecord, BarType, OrderStatus
from bestelsysteem.exceptions import NotFoundError, ValidationError
from bestelsysteem.services.notifications import ORDER_CHANGED
from bestelsysteem.services.topology import alternating_distribution, even_distribution


def _bars(count):
    return [BarRecord(id=100 + n, system_id=1, bar_number=n, name=f"Bar {n}") for n in range(1, count + 1)]


def _routing(topology):
    bar_numbers = {b.id: b.bar_number for b in topology.bars}
    return {a.table_number: bar_numbers[a.bar_id] for a in topology.assignments}


class TestDistributions:
    """Pure redistribution helpers."""

    def test_even_distribution_three_bars_ten_tables(self):
        assignments = even_distribution(_bars(3), 10)

        assert [a.table_number for a in assignments] == list(range(1, 11))
        assert [a.bar_number for a in assignments] == [1, 1, 1, 1, 2, 2, 2, 3, 3, 3]
        assert [a.bar_id for a in assignments[:4]] == [101] * 4

    def test_even_distribution_sizes(self):
        assignments = even_distribution(_bars(3), 10)
        sizes = [sum(1 for a in assignments if a.bar_number == n) for n in (1, 2, 3)]
        assert sizes == [4, 3, 3]

    def test_alternating_distribution_two_bars_five_tables(self):
        assignments = alternating_distribution(_bars(2), 5)

        assert [(a.table_number, a.bar_number) for a in assignments] == [
            (1, 1), (2, 2), (3, 1), (4, 2), (5, 1),
        ]

    def test_no_bars_or_no_tables(self):
        assert even_distribution([], 5) == []
        assert alternating_distribution(_bars(2), 0) == []

    def test_more_bars_than_tables(self):
        assignments = even_distribution(_bars(4), 2)
        assert [(a.table_number, a.bar_number) for a in assignments] == [(1, 1), (2, 2)]


class TestSaveTopology:
    """Atomic replace of bars, tables and relations."""

    def test_seeded_topology(self, services, event):
        topology = services.topology.get_topology(event["system"].id)

        assert [b.bar_number for b in topology.bars] == [1, 2]
        assert [k.name for k in topology.kitchens] == ["Keuken"]
        assert topology.kitchens[0].type == BarType.KITCHEN
        assert topology.total_tables == 4
        assert _routing(topology) == {1: 1, 2: 1, 3: 2, 4: 2}

    def test_assignments_sorted_by_table_number(self, services, event):
        topology = services.topology.get_topology(event["system"].id)
        numbers = [a.table_number for a in topology.assignments]
        assert numbers == sorted(numbers)

    def test_reassign_tables_with_explicit_ids(self, services, event):
        system_id = event["system"].id
        current = services.topology.get_topology(system_id)
        bar1, bar2 = event["bars"][1], event["bars"][2]
        # Everything to bar 2 except table 1
        assignments = [
            Assignment(table_id=a.table_id, bar_id=bar1.id if a.table_number == 1 else bar2.id)
            for a in current.assignments
        ]

        topology = services.topology.save_topology(
            system_id,
            total_tables=4,
            bars=[BarDraft(bar1.id, 1, "Bar 1"), BarDraft(bar2.id, 2, "Bar 2")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=assignments,
        )

        assert _routing(topology) == {1: 1, 2: 2, 3: 2, 4: 2}
        assert topology.total_tables == 4

    def test_positional_fallback_for_missing_table_id(self, services, event):
        system_id = event["system"].id
        bar1, bar2 = event["bars"][1], event["bars"][2]
        current = services.topology.get_topology(system_id)

        topology = services.topology.save_topology(
            system_id,
            total_tables=4,
            bars=[BarDraft(bar1.id, 1, "Bar 1"), BarDraft(bar2.id, 2, "Bar 2")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=[Assignment(bar_id=bar2.id), Assignment(bar_id=bar2.id),
                         Assignment(bar_id=bar1.id), Assignment(bar_id=bar1.id)],
        )

        assert _routing(topology) == {1: 2, 2: 2, 3: 1, 4: 1}

    def test_table_number_wins_over_position(self, services, event):
        system_id = event["system"].id
        bar1, bar2 = event["bars"][1], event["bars"][2]
        current = services.topology.get_topology(system_id)

        topology = services.topology.save_topology(
            system_id,
            total_tables=4,
            bars=[BarDraft(bar1.id, 1, "Bar 1"), BarDraft(bar2.id, 2, "Bar 2")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=[Assignment(table_number=4, bar_id=bar1.id), Assignment(table_number=3, bar_id=bar1.id),
                         Assignment(table_number=2, bar_id=bar2.id), Assignment(table_number=1, bar_id=bar2.id)],
        )

        assert _routing(topology) == {1: 2, 2: 2, 3: 1, 4: 1}
        receipt = services.orders.place_order(system_id, "4", {"bier": "1"})
        assert receipt.orders[0].bar_id == bar1.id

    def test_unknown_table_number_rejected(self, services, event):
        system_id = event["system"].id
        bar1 = event["bars"][1]
        before = services.topology.get_topology(system_id)

        with pytest.raises(ValidationError):
            services.topology.save_topology(
                system_id,
                total_tables=4,
                bars=[BarDraft(b.id, b.bar_number, b.name) for b in before.bars],
                kitchens=[BarDraft(before.kitchens[0].id, 1, "Keuken")],
                assignments=[Assignment(table_number=9, bar_id=bar1.id)],
            )

        assert _routing(services.topology.get_topology(system_id)) == _routing(before)

    def test_bar_updated_in_place(self, services, event):
        system_id = event["system"].id
        bar1, bar2 = event["bars"][1], event["bars"][2]
        current = services.topology.get_topology(system_id)

        topology = services.topology.save_topology(
            system_id,
            total_tables=4,
            bars=[BarDraft(bar1.id, 1, "Grote Bar"), BarDraft(bar2.id, 2, "Bar 2")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=current.assignments,
        )

        assert topology.bars[0].id == bar1.id
        assert topology.bars[0].name == "Grote Bar"

    def test_tables_are_created_up_to_total(self, services):
        system = services.systems.save_system(name="Feest")
        topology = services.topology.save_topology(
            system.id,
            total_tables=6,
            bars=[BarDraft(None, 1, "Bar 1")],
            kitchens=[],
            assignments=even_distribution([BarDraft(None, 1, "Bar 1")], 6),
        )

        assert topology.total_tables == 6
        assert [a.table_number for a in topology.assignments] == [1, 2, 3, 4, 5, 6]

    def test_assignment_without_bar_is_skipped(self, services):
        system = services.systems.save_system(name="Feest")
        topology = services.topology.save_topology(
            system.id,
            total_tables=3,
            bars=[BarDraft(None, 1, "Bar 1")],
            kitchens=[],
            assignments=[Assignment(bar_number=1), Assignment(), Assignment(bar_number=1)],
        )

        assert topology.total_tables == 3
        assert [a.table_number for a in topology.assignments] == [1, 3]

    def test_unknown_bar_id_rolls_back(self, services, event):
        system_id = event["system"].id
        before = services.topology.get_topology(system_id)

        with pytest.raises(NotFoundError):
            services.topology.save_topology(
                system_id,
                total_tables=8,
                bars=[BarDraft(9999, 1, "Bestaat niet")],
                kitchens=[],
                assignments=[],
            )

        after = services.topology.get_topology(system_id)
        assert after.total_tables == before.total_tables
        assert _routing(after) == _routing(before)
        assert len(after.kitchens) == 1

    def test_kitchen_cannot_receive_tables(self, services, event):
        system_id = event["system"].id
        current = services.topology.get_topology(system_id)
        kitchen = current.kitchens[0]
        bar1, bar2 = event["bars"][1], event["bars"][2]

        with pytest.raises(ValidationError):
            services.topology.save_topology(
                system_id,
                total_tables=4,
                bars=[BarDraft(bar1.id, 1, "Bar 1"), BarDraft(bar2.id, 2, "Bar 2")],
                kitchens=[BarDraft(kitchen.id, 1, "Keuken")],
                assignments=[Assignment(bar_id=kitchen.id)],
            )

    def test_negative_table_count_rejected(self, services, event):
        with pytest.raises(ValidationError):
            services.topology.save_topology(event["system"].id, -1, [], [], [])

    def test_unknown_system(self, services):
        with pytest.raises(NotFoundError):
            services.topology.save_topology(404, 2, [BarDraft(None, 1, "Bar")], [], [])

    def test_system_zero_is_empty(self, services):
        topology = services.topology.get_topology(0)
        assert topology.bars == []
        assert topology.total_tables == 0


class TestOrphanCleanup:
    """Rows left without relations by a save are deleted, tables with orders excepted."""

    def test_table_losing_its_relation_is_deleted(self, services, event):
        system_id = event["system"].id
        bar1, bar2 = event["bars"][1], event["bars"][2]
        current = services.topology.get_topology(system_id)

        # Only three tables keep an assignment; table 4 loses its relation
        topology = services.topology.save_topology(
            system_id,
            total_tables=3,
            bars=[BarDraft(bar1.id, 1, "Bar 1"), BarDraft(bar2.id, 2, "Bar 2")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=current.assignments[:3],
        )

        assert topology.total_tables == 3
        assert sorted(_routing(topology)) == [1, 2, 3]

    def test_bar_losing_all_relations_is_deleted(self, services, event):
        system_id = event["system"].id
        bar1, bar2 = event["bars"][1], event["bars"][2]
        current = services.topology.get_topology(system_id)

        topology = services.topology.save_topology(
            system_id,
            total_tables=4,
            bars=[BarDraft(bar1.id, 1, "Bar 1"), BarDraft(bar2.id, 2, "Bar 2")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=[Assignment(table_id=a.table_id, bar_id=bar1.id) for a in current.assignments],
        )

        assert [b.id for b in topology.bars] == [bar1.id]
        assert _routing(topology) == {1: 1, 2: 1, 3: 1, 4: 1}

    def test_deleting_a_bar_keeps_its_tables(self, services, event):
        system_id = event["system"].id
        bar1 = event["bars"][1]
        current = services.topology.get_topology(system_id)

        topology = services.topology.save_topology(
            system_id,
            total_tables=4,
            bars=[BarDraft(bar1.id, 1, "Bar 1")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=[a for a in current.assignments if a.bar_id == bar1.id],
        )

        # Tables 3 and 4 lost their bar together with the bar itself
        assert topology.total_tables == 4
        assert _routing(topology) == {1: 1, 2: 1}

    def test_table_with_orders_is_kept(self, services, event):
        system_id = event["system"].id
        bar1, bar2 = event["bars"][1], event["bars"][2]
        current = services.topology.get_topology(system_id)
        receipt = services.orders.place_order(system_id, "4", {"bier": "3"})
        emitted = services.bus.emission_count(ORDER_CHANGED)

        topology = services.topology.save_topology(
            system_id,
            total_tables=3,
            bars=[BarDraft(bar1.id, 1, "Bar 1"), BarDraft(bar2.id, 2, "Bar 2")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=current.assignments[:3],
        )

        # Table 4 stays, without a bar
        assert topology.total_tables == 4
        assert sorted(_routing(topology)) == [1, 2, 3]
        with services.storage.transaction() as uow:
            order = uow.get_order(receipt.orders[0].id)
        assert order.status == OrderStatus.PENDING
        assert order.table_number == 4
        assert [o.id for o in services.orders.list_orders_for_bar(2)] == [order.id]
        assert services.bus.emission_count(ORDER_CHANGED) == emitted
        with pytest.raises(NotFoundError):
            services.orders.place_order(system_id, "4", {"bier": "1"})

    def test_pending_orders_losing_their_bar_are_announced(self, services, event):
        system_id = event["system"].id
        bar1 = event["bars"][1]
        current = services.topology.get_topology(system_id)
        receipt = services.orders.place_order(system_id, "3", {"bier": "1"})
        emitted = services.bus.emission_count(ORDER_CHANGED)

        services.topology.save_topology(
            system_id,
            total_tables=4,
            bars=[BarDraft(bar1.id, 1, "Bar 1")],
            kitchens=[BarDraft(current.kitchens[0].id, 1, "Keuken")],
            assignments=[Assignment(table_id=a.table_id, bar_id=bar1.id) for a in current.assignments],
        )

        with services.storage.transaction() as uow:
            assert uow.get_order(receipt.orders[0].id).bar_id is None
        assert services.bus.emission_count(ORDER_CHANGED) == emitted + 1
