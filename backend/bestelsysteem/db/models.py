"""
Canonical relational database models for Bestelsysteem.

These models represent the full relational schema and are used by Alembic
for migration generation and by the SQLAlchemy storage adapter.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from bestelsysteem.domain import (
    BarRecord,
    BarType,
    LineItem,
    OrderRecord,
    OrderStatus,
    ProductRecord,
    ProductType,
    RelationRecord,
    SystemRecord,
    TableRecord,
)
from bestelsysteem.utils.time_utils import now_local_naive

Base = declarative_base()


class SystemSettings(Base):
    """One event configuration; owns everything else."""

    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, default="")
    user_password = Column(String(255), nullable=False)  # hashed
    admin_password = Column(String(255), nullable=False)  # hashed
    live = Column(Boolean, default=False, nullable=False, index=True)

    # Relationships
    products = relationship("Product", back_populates="system", cascade="all, delete-orphan")
    bars = relationship("Bar", back_populates="system", cascade="all, delete-orphan")
    tables = relationship("Table", back_populates="system", cascade="all, delete-orphan")
    relations = relationship("BarTableRelation", back_populates="system", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="system", cascade="all, delete-orphan")

    def to_record(self) -> SystemRecord:
        return SystemRecord(
            id=self.id,
            name=self.name,
            user_password=self.user_password,
            admin_password=self.admin_password,
            live=bool(self.live),
        )

    def __repr__(self):
        return f"<SystemSettings(id={self.id}, name={self.name}, live={self.live})>"


class Product(Base):
    """Drink or food on the menu of one system."""

    __tablename__ = "product"

    id = Column(Integer, primary_key=True, index=True)
    system_id = Column(Integer, ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False, unique=True)  # stable external id
    product_name = Column(String(255), nullable=False)
    product_price = Column(Float, nullable=False, default=0.0)
    product_type = Column(Enum(ProductType, name="product_type"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_product_system_type", "system_id", "product_type"),
    )

    system = relationship("SystemSettings", back_populates="products")

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            id=self.id,
            system_id=self.system_id,
            product_id=self.product_id,
            name=self.product_name,
            price=self.product_price,
            type=self.product_type,
            position=self.position,
        )

    def __repr__(self):
        return f"<Product(id={self.id}, product_id={self.product_id}, name={self.product_name})>"


class Bar(Base):
    """Fulfilment queue: a bar (drinks) or a kitchen (food)."""

    __tablename__ = "bar"

    id = Column(Integer, primary_key=True, index=True)
    system_id = Column(Integer, ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False, index=True)
    bar_number = Column(Integer, nullable=False)
    bar_name = Column(String(255), nullable=False, default="")
    bar_type = Column(Enum(BarType, name="bar_type"), nullable=False, default=BarType.BAR)

    system = relationship("SystemSettings", back_populates="bars")
    relations = relationship("BarTableRelation", back_populates="bar", cascade="all, delete-orphan")
    # Orders outlive their bar; the foreign key is nulled on delete
    orders = relationship("Order", back_populates="bar")

    def to_record(self) -> BarRecord:
        return BarRecord(
            id=self.id,
            system_id=self.system_id,
            bar_number=self.bar_number,
            name=self.bar_name,
            type=self.bar_type,
        )

    def __repr__(self):
        return f"<Bar(id={self.id}, number={self.bar_number}, type={self.bar_type})>"


class Table(Base):
    """Numbered table in the venue."""

    __tablename__ = "table"

    id = Column(Integer, primary_key=True, index=True)
    system_id = Column(Integer, ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False, index=True)
    table_number = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("system_id", "table_number", name="uq_table_system_number"),
    )

    system = relationship("SystemSettings", back_populates="tables")
    relations = relationship("BarTableRelation", back_populates="table", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="table", cascade="all, delete-orphan")

    def to_record(self) -> TableRecord:
        return TableRecord(id=self.id, system_id=self.system_id, table_number=self.table_number)

    def __repr__(self):
        return f"<Table(id={self.id}, number={self.table_number})>"


class BarTableRelation(Base):
    """Routes the drinks of a table to a bar."""

    __tablename__ = "bar_table_relation"

    id = Column(Integer, primary_key=True, index=True)
    system_id = Column(Integer, ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("table.id", ondelete="CASCADE"), nullable=False, index=True)
    bar_id = Column(Integer, ForeignKey("bar.id", ondelete="CASCADE"), nullable=False, index=True)

    system = relationship("SystemSettings", back_populates="relations")
    table = relationship("Table", back_populates="relations")
    bar = relationship("Bar", back_populates="relations")

    def to_record(self) -> RelationRecord:
        return RelationRecord(
            id=self.id,
            system_id=self.system_id,
            table_id=self.table_id,
            bar_id=self.bar_id,
        )


class Order(Base):
    """Drink or food order of one table. Line items are JSON snapshots."""

    __tablename__ = "order"

    id = Column(Integer, primary_key=True, index=True)
    system_id = Column(Integer, ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("table.id", ondelete="CASCADE"), nullable=False, index=True)
    bar_id = Column(Integer, ForeignKey("bar.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(Enum(OrderStatus, name="order_status"), default=OrderStatus.PENDING, nullable=False)
    drinks = Column(JSON, default=list, nullable=False)
    foods = Column(JSON, default=list, nullable=False)
    total_price = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=now_local_naive, nullable=False, index=True)

    __table_args__ = (
        Index("idx_order_system_status", "system_id", "status"),
        Index("idx_order_bar_status", "bar_id", "status"),
    )

    system = relationship("SystemSettings", back_populates="orders")
    table = relationship("Table", back_populates="orders")
    bar = relationship("Bar", back_populates="orders")

    def to_record(self) -> OrderRecord:
        return OrderRecord(
            id=self.id,
            system_id=self.system_id,
            table_id=self.table_id,
            bar_id=self.bar_id,
            status=self.status,
            drinks=[LineItem.from_dict(d) for d in (self.drinks or [])],
            foods=[LineItem.from_dict(f) for f in (self.foods or [])],
            total_price=self.total_price,
            created_at=self.created_at,
            table_number=self.table.table_number if self.table is not None else None,
        )

    def __repr__(self):
        return f"<Order(id={self.id}, table_id={self.table_id}, status={self.status})>"
