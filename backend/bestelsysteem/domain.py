"""
Domain records shared by the services and the storage adapters.

Storage adapters return copies of these records; mutating a record never
changes stored state until it is written back inside a transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ProductType(str, Enum):
    DRINK = "DRINK"
    FOOD = "FOOD"


class BarType(str, Enum):
    BAR = "BAR"
    KITCHEN = "KITCHEN"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


@dataclass
class SystemRecord:
    """One event configuration. Passwords are stored hashed."""
    id: Optional[int]
    name: str
    user_password: str
    admin_password: str
    live: bool = False


@dataclass
class ProductRecord:
    id: Optional[int]
    system_id: int
    product_id: str
    name: str
    price: float
    type: ProductType
    position: int = 0


@dataclass
class BarRecord:
    id: Optional[int]
    system_id: int
    bar_number: int
    name: str
    type: BarType = BarType.BAR


@dataclass
class TableRecord:
    id: Optional[int]
    system_id: int
    table_number: int


@dataclass
class RelationRecord:
    """Routes the drinks of one table to one bar."""
    id: Optional[int]
    system_id: int
    table_id: int
    bar_id: int


@dataclass
class LineItem:
    """Snapshot of a product at order time. `price` is quantity x unit_price."""
    product_id: str
    name: str
    unit_price: float
    type: ProductType
    quantity: int
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": self.unit_price,
            "type": self.type.value,
            "quantity": self.quantity,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        return cls(
            product_id=data["product_id"],
            name=data["name"],
            unit_price=float(data["unit_price"]),
            type=ProductType(data["type"]),
            quantity=int(data["quantity"]),
            price=float(data["price"]),
        )


@dataclass
class OrderRecord:
    id: Optional[int]
    system_id: int
    table_id: int
    bar_id: Optional[int]
    status: OrderStatus
    drinks: List[LineItem] = field(default_factory=list)
    foods: List[LineItem] = field(default_factory=list)
    total_price: float = 0.0
    created_at: Optional[datetime] = None
    # Filled in by the storage adapters when listing, not persisted on the order row
    table_number: Optional[int] = None


@dataclass
class ProductList:
    drinks: List[ProductRecord] = field(default_factory=list)
    foods: List[ProductRecord] = field(default_factory=list)


@dataclass
class Assignment:
    """One table-to-bar routing entry as exchanged with the admin screen."""
    table_number: Optional[int] = None
    table_id: Optional[int] = None
    bar_id: Optional[int] = None
    bar_number: Optional[int] = None


@dataclass
class Topology:
    bars: List[BarRecord] = field(default_factory=list)
    kitchens: List[BarRecord] = field(default_factory=list)
    total_tables: int = 0
    assignments: List[Assignment] = field(default_factory=list)


@dataclass
class OrderReceipt:
    """Result of placing an order: the rows written and the combined total."""
    orders: List[OrderRecord] = field(default_factory=list)
    drinks: List[LineItem] = field(default_factory=list)
    foods: List[LineItem] = field(default_factory=list)
    total_price: float = 0.0


@dataclass
class ProductDraft:
    """Incoming product as submitted by the admin screen. product_id None means new."""
    product_id: Optional[str]
    name: str
    price: float
    position: Optional[int] = None


@dataclass
class BarDraft:
    """Incoming bar or kitchen. id None means new."""
    id: Optional[int]
    bar_number: int
    name: str = ""
