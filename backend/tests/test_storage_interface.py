"""
Tests for the Storage interface contract.

Every test runs against both InMemoryStorage and SQLAlchemyStorage:
- Entities can be created, listed and updated inside a transaction
- A failing transaction leaves no trace
- Deleting tables, bars and systems cascades as documented
"""

import pytest

from bestelsysteem.domain import (
    BarRecord,
    BarType,
    LineItem,
    OrderRecord,
    OrderStatus,
    ProductRecord,
    ProductType,
    SystemRecord,
)
from bestelsysteem.storage import InMemoryStorage


def _system(uow, name="Feest", live=False):
    return uow.add_system(SystemRecord(id=None, name=name, user_password="u", admin_password="a", live=live))


def _order(system_id, table_id, bar_id=None, status=OrderStatus.PENDING):
    line = LineItem("bier", "Bier", 2.5, ProductType.DRINK, 2, 5.0)
    return OrderRecord(
        id=None,
        system_id=system_id,
        table_id=table_id,
        bar_id=bar_id,
        status=status,
        drinks=[line],
        total_price=5.0,
    )


class TestSystems:
    """System rows and the live flag."""

    def test_add_and_get_system(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
        assert system.id is not None

        with storage.transaction() as uow:
            loaded = uow.get_system(system.id)
        assert loaded.name == "Feest"
        assert loaded.live is False

    def test_live_system_lowest_id_wins(self, storage):
        with storage.transaction() as uow:
            _system(uow, "Eerste", live=False)
            second = _system(uow, "Tweede", live=True)
            _system(uow, "Derde", live=True)

        with storage.transaction() as uow:
            assert uow.get_live_system().id == second.id

    def test_clear_live_flag_keeps_given_system(self, storage):
        with storage.transaction() as uow:
            a = _system(uow, "A", live=True)
            b = _system(uow, "B", live=True)
            uow.clear_live_flag(except_system_id=b.id)

        with storage.transaction() as uow:
            assert uow.get_system(a.id).live is False
            assert uow.get_system(b.id).live is True

    def test_delete_system_cascades(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            uow.add_product(ProductRecord(None, system.id, "p1", "Bier", 2.5, ProductType.DRINK, 0))
            bar = uow.add_bar(BarRecord(None, system.id, 1, "Bar 1"))
            table = uow.add_table(system.id, 1)
            uow.add_relation(system.id, table.id, bar.id)
            uow.add_order(_order(system.id, table.id, bar.id))

        with storage.transaction() as uow:
            uow.delete_system(system.id)

        with storage.transaction() as uow:
            assert uow.get_system(system.id) is None
            assert uow.list_products(system.id) == []
            assert uow.list_bars(system.id) == []
            assert uow.list_tables(system.id) == []
            assert uow.list_relations(system.id) == []
            assert uow.list_orders(system.id) == []


class TestTransactions:
    """Commit and rollback behaviour."""

    def test_exception_rolls_back_every_statement(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)

        with pytest.raises(RuntimeError):
            with storage.transaction() as uow:
                uow.add_table(system.id, 1)
                uow.add_bar(BarRecord(None, system.id, 1, "Bar 1"))
                raise RuntimeError("boom")

        with storage.transaction() as uow:
            assert uow.list_tables(system.id) == []
            assert uow.list_bars(system.id) == []

    def test_records_are_copies(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            bar = uow.add_bar(BarRecord(None, system.id, 1, "Bar 1"))

        bar.name = "Changed outside a transaction"
        with storage.transaction() as uow:
            assert uow.get_bar(bar.id).name == "Bar 1"

    def test_clear_removes_everything(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            uow.add_table(system.id, 1)

        storage.clear()

        with storage.transaction() as uow:
            assert uow.list_systems() == []


class TestProductsAndBars:
    """Products and bars ordering and updates."""

    def test_products_ordered_by_type_then_position(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            uow.add_product(ProductRecord(None, system.id, "f1", "Friet", 3.0, ProductType.FOOD, 0))
            uow.add_product(ProductRecord(None, system.id, "d2", "Cola", 2.0, ProductType.DRINK, 1))
            uow.add_product(ProductRecord(None, system.id, "d1", "Bier", 2.5, ProductType.DRINK, 0))

        with storage.transaction() as uow:
            products = uow.list_products(system.id)
        assert [p.product_id for p in products] == ["d1", "d2", "f1"]

    def test_get_product_by_external_id(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            uow.add_product(ProductRecord(None, system.id, "abc", "Bier", 2.5, ProductType.DRINK, 0))

        with storage.transaction() as uow:
            product = uow.get_product("abc")
            assert product.name == "Bier"
            assert product.system_id == system.id
            assert uow.get_product("missing") is None

    def test_update_product(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            product = uow.add_product(ProductRecord(None, system.id, "abc", "Bier", 2.5, ProductType.DRINK, 0))

        product.name = "Speciaalbier"
        product.price = 4.0
        with storage.transaction() as uow:
            uow.update_product(product)

        with storage.transaction() as uow:
            loaded = uow.get_product("abc")
        assert loaded.name == "Speciaalbier"
        assert loaded.price == 4.0

    def test_update_bar_type(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            bar = uow.add_bar(BarRecord(None, system.id, 1, "Bar 1"))

        bar.type = BarType.KITCHEN
        with storage.transaction() as uow:
            uow.update_bar(bar)
            assert uow.get_bar(bar.id).type == BarType.KITCHEN


class TestCascades:
    """Deleting tables and bars."""

    def test_delete_table_removes_relations_and_orders(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            bar = uow.add_bar(BarRecord(None, system.id, 1, "Bar 1"))
            table = uow.add_table(system.id, 1)
            uow.add_relation(system.id, table.id, bar.id)
            uow.add_order(_order(system.id, table.id, bar.id))

        with storage.transaction() as uow:
            uow.delete_tables([table.id])

        with storage.transaction() as uow:
            assert uow.list_relations(system.id) == []
            assert uow.list_orders(system.id) == []
            assert [b.id for b in uow.list_bars(system.id)] == [bar.id]

    def test_delete_bar_keeps_orders_without_bar(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            bar = uow.add_bar(BarRecord(None, system.id, 1, "Bar 1"))
            table = uow.add_table(system.id, 1)
            uow.add_relation(system.id, table.id, bar.id)
            order = uow.add_order(_order(system.id, table.id, bar.id))

        with storage.transaction() as uow:
            uow.delete_bars([bar.id])

        with storage.transaction() as uow:
            assert uow.list_relations(system.id) == []
            assert [t.id for t in uow.list_tables(system.id)] == [table.id]
            kept = uow.get_order(order.id)
        assert kept is not None
        assert kept.bar_id is None


class TestOrders:
    """Order rows, status and filters."""

    def test_add_order_sets_created_at_and_table_number(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            table = uow.add_table(system.id, 7)
            order = uow.add_order(_order(system.id, table.id))

        assert order.id is not None
        assert order.created_at is not None
        assert order.table_number == 7
        assert order.drinks[0].name == "Bier"
        assert order.drinks[0].type == ProductType.DRINK

    def test_set_order_status(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            table = uow.add_table(system.id, 1)
            order = uow.add_order(_order(system.id, table.id))

        with storage.transaction() as uow:
            assert uow.set_order_status(order.id, OrderStatus.COMPLETED) is True
            assert uow.set_order_status(9999, OrderStatus.COMPLETED) is False

        with storage.transaction() as uow:
            assert uow.get_order(order.id).status == OrderStatus.COMPLETED

    def test_list_orders_filters(self, storage):
        with storage.transaction() as uow:
            system = _system(uow)
            bar = uow.add_bar(BarRecord(None, system.id, 1, "Bar 1"))
            table = uow.add_table(system.id, 1)
            first = uow.add_order(_order(system.id, table.id, bar.id))
            second = uow.add_order(_order(system.id, table.id, None))
            uow.add_order(_order(system.id, table.id, bar.id, status=OrderStatus.COMPLETED))

        with storage.transaction() as uow:
            pending = uow.list_orders(system.id, status=OrderStatus.PENDING)
            for_bar = uow.list_orders(system.id, status=OrderStatus.PENDING, bar_id=bar.id)
            everything = uow.list_orders(system.id)

        assert [o.id for o in pending] == [first.id, second.id]
        assert [o.id for o in for_bar] == [first.id]
        assert len(everything) == 3


class TestInMemoryCopyOnWrite:
    """InMemoryStorage only copies its state for transactions that write."""

    def test_read_only_transaction_does_not_copy(self):
        storage = InMemoryStorage()
        with storage.transaction() as uow:
            _system(uow)

        with storage.transaction() as uow:
            uow.list_systems()
            uow.list_orders(1)
        assert uow.copied is False

    def test_first_write_copies(self):
        storage = InMemoryStorage()
        with storage.transaction() as uow:
            system = _system(uow)
            assert uow.copied is True
            uow.add_table(system.id, 1)

        with storage.transaction() as uow:
            assert [t.table_number for t in uow.list_tables(system.id)] == [1]

    def test_read_then_failed_write_leaves_state(self):
        storage = InMemoryStorage()
        with storage.transaction() as uow:
            system = _system(uow)

        with pytest.raises(RuntimeError):
            with storage.transaction() as uow:
                assert uow.list_tables(system.id) == []
                uow.add_table(system.id, 1)
                assert len(uow.list_tables(system.id)) == 1
                raise RuntimeError("boom")

        with storage.transaction() as uow:
            assert uow.list_tables(system.id) == []
