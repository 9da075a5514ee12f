"""Pydantic request and response models for the HTTP API."""

from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from bestelsysteem.domain import BarDraft, BarType, OrderStatus, ProductDraft, ProductType


# ---------- Auth ----------

class LoginRequest(BaseModel):
    password: str


class LoginResponse(BaseModel):
    success: bool
    is_valid_password: bool
    role: Optional[str] = None
    access_token: Optional[str] = None
    token_type: str = "bearer"


# ---------- System settings ----------

class SystemRequest(BaseModel):
    """Create (id omitted) or update a system. Empty passwords keep the current ones."""
    id: Optional[int] = None
    name: str
    user_password: Optional[str] = None
    admin_password: Optional[str] = None
    live: bool = False


class SystemResponse(BaseModel):
    id: int
    name: str
    live: bool

    class Config:
        from_attributes = True


# ---------- Catalog ----------

class ProductIn(BaseModel):
    product_id: Optional[str] = None
    name: str
    price: float
    position: Optional[int] = None

    def to_draft(self) -> ProductDraft:
        return ProductDraft(product_id=self.product_id, name=self.name, price=self.price, position=self.position)


class ProductOut(BaseModel):
    id: int
    product_id: str
    name: str
    price: float
    type: ProductType
    position: int

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    drinks: List[ProductOut] = []
    foods: List[ProductOut] = []

    class Config:
        from_attributes = True


class SaveProductsRequest(BaseModel):
    drinks: List[ProductIn] = []
    foods: List[ProductIn] = []


class NewProductIdResponse(BaseModel):
    product_id: str


# ---------- Topology ----------

class BarIn(BaseModel):
    id: Optional[int] = None
    bar_number: int
    name: str = ""

    def to_draft(self) -> BarDraft:
        return BarDraft(id=self.id, bar_number=self.bar_number, name=self.name)


class BarOut(BaseModel):
    id: int
    bar_number: int
    name: str
    type: BarType

    class Config:
        from_attributes = True


class AssignmentModel(BaseModel):
    table_number: Optional[int] = None
    table_id: Optional[int] = None
    bar_id: Optional[int] = None
    bar_number: Optional[int] = None

    class Config:
        from_attributes = True


class TopologyResponse(BaseModel):
    bars: List[BarOut] = []
    kitchens: List[BarOut] = []
    total_tables: int = 0
    assignments: List[AssignmentModel] = []

    class Config:
        from_attributes = True


class SaveTopologyRequest(BaseModel):
    total_tables: int = Field(ge=0)
    bars: List[BarIn] = []
    kitchens: List[BarIn] = []
    assignments: List[AssignmentModel] = []


class DistributeRequest(BaseModel):
    method: Literal["even", "alternating"] = "even"
    total_tables: int = Field(ge=0)
    bars: List[BarIn]


# ---------- Orders ----------

class PlaceOrderRequest(BaseModel):
    """A patron basket: product_id -> quantity. system_id defaults to the live system."""
    system_id: Optional[int] = None
    table_number: Union[int, str, None] = None
    basket: Dict[str, Union[int, float, str, None]] = {}


class LineItemOut(BaseModel):
    product_id: str
    name: str
    unit_price: float
    type: ProductType
    quantity: int
    price: float

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: int
    system_id: int
    table_id: int
    table_number: Optional[int] = None
    bar_id: Optional[int] = None
    status: OrderStatus
    drinks: List[LineItemOut] = []
    foods: List[LineItemOut] = []
    total_price: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderReceiptResponse(BaseModel):
    orders: List[OrderOut] = []
    drinks: List[LineItemOut] = []
    foods: List[LineItemOut] = []
    total_price: float

    class Config:
        from_attributes = True


# ---------- Statistics ----------

class ProductQuantityOut(BaseModel):
    product_id: str
    name: str
    quantity: int

    class Config:
        from_attributes = True


class TableQuantityOut(BaseModel):
    table: int
    quantity: int

    class Config:
        from_attributes = True


class FoodWinnerOut(BaseModel):
    food: str
    table_number: int
    quantity: int

    class Config:
        from_attributes = True


class StatisticsResponse(BaseModel):
    order_counts: Dict[str, int]
    top_tables: List[Tuple[int, int]]
    ordered_foods: List[ProductQuantityOut]
    ordered_drinks: List[ProductQuantityOut]
    all_products: List[ProductOut]
    ordered_beers: List[Tuple[int, int]]
    ordered_rose_beers: List[Tuple[int, int]]
    most_snacks_table: Optional[TableQuantityOut] = None
    top_food_by_table: List[FoodWinnerOut]

    class Config:
        from_attributes = True


# ---------- Messages ----------

class MessageRequest(BaseModel):
    message: str = Field(min_length=1)


class MessageResponse(BaseModel):
    status: str
    subscribers: int
