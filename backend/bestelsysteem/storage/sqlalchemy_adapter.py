"""
SQLAlchemy storage implementation for Bestelsysteem.

Uses the canonical models from bestelsysteem.db.models. Each transaction is
one Session wrapped in an explicit begin() block; records are converted to
domain dataclasses before the session closes.
"""

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from sqlalchemy import create_engine, delete, select, update
from sqlalchemy.orm import Session, selectinload, sessionmaker

from bestelsysteem.db import init_db
from bestelsysteem.db.models import (
    Bar,
    BarTableRelation,
    Base,
    Order,
    Product,
    SystemSettings,
    Table,
)
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

logger = logging.getLogger(__name__)


class SQLAlchemyUnitOfWork(UnitOfWork):
    """Unit of work bound to one SQLAlchemy session inside begin()."""

    def __init__(self, session: Session):
        self.session = session

    # ---------- Systems ----------
    def list_systems(self) -> List[SystemRecord]:
        stmt = select(SystemSettings).order_by(SystemSettings.id)
        return [s.to_record() for s in self.session.execute(stmt).scalars().all()]

    def get_system(self, system_id: int) -> Optional[SystemRecord]:
        system = self.session.get(SystemSettings, system_id)
        return system.to_record() if system else None

    def get_live_system(self) -> Optional[SystemRecord]:
        stmt = (
            select(SystemSettings)
            .where(SystemSettings.live == True)  # noqa: E712
            .order_by(SystemSettings.id)
            .limit(1)
        )
        system = self.session.execute(stmt).scalar_one_or_none()
        return system.to_record() if system else None

    def add_system(self, system: SystemRecord) -> SystemRecord:
        row = SystemSettings(
            name=system.name,
            user_password=system.user_password,
            admin_password=system.admin_password,
            live=system.live,
        )
        self.session.add(row)
        self.session.flush()  # Get ID assigned
        return row.to_record()

    def update_system(self, system: SystemRecord) -> None:
        row = self.session.get(SystemSettings, system.id)
        row.name = system.name
        row.user_password = system.user_password
        row.admin_password = system.admin_password
        row.live = system.live
        self.session.flush()

    def clear_live_flag(self, except_system_id: int) -> None:
        self.session.execute(
            update(SystemSettings)
            .where(SystemSettings.id != except_system_id)
            .values(live=False)
        )

    def delete_system(self, system_id: int) -> None:
        row = self.session.get(SystemSettings, system_id)
        if row is not None:
            # ORM cascades remove products, bars, tables, relations and orders
            self.session.delete(row)
            self.session.flush()

    # ---------- Products ----------
    def list_products(self, system_id: int) -> List[ProductRecord]:
        stmt = (
            select(Product)
            .where(Product.system_id == system_id)
            .order_by(Product.product_type, Product.position, Product.id)
        )
        return [p.to_record() for p in self.session.execute(stmt).scalars().all()]

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        stmt = select(Product).where(Product.product_id == product_id)
        row = self.session.execute(stmt).scalar_one_or_none()
        return row.to_record() if row else None

    def add_product(self, product: ProductRecord) -> ProductRecord:
        row = Product(
            system_id=product.system_id,
            product_id=product.product_id,
            product_name=product.name,
            product_price=product.price,
            product_type=product.type,
            position=product.position,
        )
        self.session.add(row)
        self.session.flush()
        return row.to_record()

    def update_product(self, product: ProductRecord) -> None:
        row = self.session.get(Product, product.id)
        row.product_name = product.name
        row.product_price = product.price
        row.product_type = product.type
        row.position = product.position
        self.session.flush()

    def delete_products(self, ids: Iterable[int]) -> None:
        ids = list(ids)
        if ids:
            self.session.execute(delete(Product).where(Product.id.in_(ids)))

    # ---------- Bars and kitchens ----------
    def list_bars(self, system_id: int) -> List[BarRecord]:
        stmt = (
            select(Bar)
            .where(Bar.system_id == system_id)
            .order_by(Bar.bar_type, Bar.bar_number, Bar.id)
        )
        return [b.to_record() for b in self.session.execute(stmt).scalars().all()]

    def get_bar(self, bar_id: int) -> Optional[BarRecord]:
        bar = self.session.get(Bar, bar_id)
        return bar.to_record() if bar else None

    def add_bar(self, bar: BarRecord) -> BarRecord:
        row = Bar(
            system_id=bar.system_id,
            bar_number=bar.bar_number,
            bar_name=bar.name,
            bar_type=bar.type,
        )
        self.session.add(row)
        self.session.flush()
        return row.to_record()

    def update_bar(self, bar: BarRecord) -> None:
        row = self.session.get(Bar, bar.id)
        row.bar_number = bar.bar_number
        row.bar_name = bar.name
        row.bar_type = bar.type
        self.session.flush()

    def delete_bars(self, ids: Iterable[int]) -> None:
        # Deleted through the ORM so relations cascade and orders get bar_id=None
        for bar_id in ids:
            row = self.session.get(Bar, bar_id)
            if row is not None:
                self.session.delete(row)
        self.session.flush()

    # ---------- Tables ----------
    def list_tables(self, system_id: int) -> List[TableRecord]:
        stmt = (
            select(Table)
            .where(Table.system_id == system_id)
            .order_by(Table.table_number, Table.id)
        )
        return [t.to_record() for t in self.session.execute(stmt).scalars().all()]

    def get_table_by_number(self, system_id: int, table_number: int) -> Optional[TableRecord]:
        stmt = (
            select(Table)
            .where(Table.system_id == system_id)
            .where(Table.table_number == table_number)
        )
        row = self.session.execute(stmt).scalars().first()
        return row.to_record() if row else None

    def add_table(self, system_id: int, table_number: int) -> TableRecord:
        row = Table(system_id=system_id, table_number=table_number)
        self.session.add(row)
        self.session.flush()
        return row.to_record()

    def delete_tables(self, ids: Iterable[int]) -> None:
        for table_id in ids:
            row = self.session.get(Table, table_id)
            if row is not None:
                self.session.delete(row)
        self.session.flush()

    # ---------- Table to bar relations ----------
    def list_relations(self, system_id: int) -> List[RelationRecord]:
        stmt = (
            select(BarTableRelation)
            .where(BarTableRelation.system_id == system_id)
            .order_by(BarTableRelation.id)
        )
        return [r.to_record() for r in self.session.execute(stmt).scalars().all()]

    def add_relation(self, system_id: int, table_id: int, bar_id: int) -> RelationRecord:
        row = BarTableRelation(system_id=system_id, table_id=table_id, bar_id=bar_id)
        self.session.add(row)
        self.session.flush()
        return row.to_record()

    def delete_relations(self, ids: Iterable[int]) -> None:
        for relation_id in ids:
            row = self.session.get(BarTableRelation, relation_id)
            if row is not None:
                self.session.delete(row)
        self.session.flush()

    # ---------- Orders ----------
    def add_order(self, order: OrderRecord) -> OrderRecord:
        row = Order(
            system_id=order.system_id,
            table_id=order.table_id,
            bar_id=order.bar_id,
            status=order.status,
            drinks=[item.to_dict() for item in order.drinks],
            foods=[item.to_dict() for item in order.foods],
            total_price=order.total_price,
            created_at=order.created_at or now_local_naive(),
        )
        self.session.add(row)
        self.session.flush()
        return row.to_record()

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        row = self.session.get(Order, order_id)
        return row.to_record() if row else None

    def set_order_status(self, order_id: int, status: OrderStatus) -> bool:
        row = self.session.get(Order, order_id)
        if row is None:
            return False
        row.status = status
        self.session.flush()
        return True

    def list_orders(
        self,
        system_id: int,
        status: Optional[OrderStatus] = None,
        bar_id: Optional[int] = None,
    ) -> List[OrderRecord]:
        stmt = (
            select(Order)
            .options(selectinload(Order.table))
            .where(Order.system_id == system_id)
        )
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if bar_id is not None:
            stmt = stmt.where(Order.bar_id == bar_id)
        stmt = stmt.order_by(Order.created_at, Order.id)
        return [o.to_record() for o in self.session.execute(stmt).scalars().all()]


class SQLAlchemyStorage(Storage):
    """
    SQLAlchemy-backed storage.

    Works with SQLite (default) or any database SQLAlchemy supports.
    """

    def __init__(self, database_url: str = "sqlite:///bestelsysteem.db", use_alembic: bool = False):
        """
        Initialize SQLAlchemy storage with canonical models.

        Args:
            database_url: SQLAlchemy database URL
            use_alembic: Run Alembic migrations instead of create_all
        """
        self.database_url = database_url

        # echo=False: suppress SQL logging (set to True for debugging)
        # pool_pre_ping=True: verify connections before use (detect stale connections)
        self.engine = create_engine(
            self.database_url,
            connect_args={"check_same_thread": False} if "sqlite" in database_url else {},
            echo=False,
            future=True,
            pool_pre_ping=True,
        )

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        init_db(self.engine, use_alembic=use_alembic)
        logger.info(f"[SQLAlchemyStorage] Database initialized at {self.database_url}")

    def _get_session(self) -> Session:
        """Get a new database session (caller must close)."""
        return self.SessionLocal()

    @contextmanager
    def transaction(self) -> Iterator[SQLAlchemyUnitOfWork]:
        session = self._get_session()
        try:
            with session.begin():
                yield SQLAlchemyUnitOfWork(session)
        finally:
            session.close()

    def clear(self) -> None:
        """Delete all rows from every table (children first)."""
        session = self._get_session()
        try:
            with session.begin():
                for table in reversed(Base.metadata.sorted_tables):
                    session.execute(table.delete())
        finally:
            session.close()

    def close(self) -> None:
        """Dispose the engine's connection pool."""
        self.engine.dispose()
