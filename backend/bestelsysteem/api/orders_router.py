"""Patron ordering and bar/kitchen queues."""

from typing import List

from fastapi import APIRouter, Depends, Query

from bestelsysteem.api.dependencies import get_orders, get_systems, require_user
from bestelsysteem.schemas import OrderOut, OrderReceiptResponse, PlaceOrderRequest
from bestelsysteem.services.orders import SORT_ASC, OrderEngine
from bestelsysteem.services.systems import SystemSettingsService

router = APIRouter(prefix="/api", tags=["orders"], dependencies=[Depends(require_user)])


@router.post("/orders", response_model=OrderReceiptResponse, summary="Place an order for a table")
async def place_order(
    request: PlaceOrderRequest,
    orders: OrderEngine = Depends(get_orders),
    systems: SystemSettingsService = Depends(get_systems),
):
    """
    Submit a basket (product_id -> quantity) for a table.

    Drinks go to the bar of the table, foods to the kitchen. The response
    carries the written orders and the combined total for the receipt.
    """
    system_id = request.system_id
    if system_id is None:
        system_id = systems.require_live_system().id
    receipt = orders.place_order(system_id, request.table_number, request.basket)
    return OrderReceiptResponse.model_validate(receipt)


@router.post("/orders/{order_id}/send", response_model=OrderOut, summary="Mark an order as completed")
async def send_order(order_id: int, orders: OrderEngine = Depends(get_orders)):
    return OrderOut.model_validate(orders.advance_order(order_id))


@router.get("/bars/{bar_number}/orders", response_model=List[OrderOut], summary="Pending drink orders of a bar")
async def list_bar_orders(
    bar_number: int,
    sort: str = Query(SORT_ASC, description="asc or desc by creation time"),
    orders: OrderEngine = Depends(get_orders),
):
    return [OrderOut.model_validate(o) for o in orders.list_orders_for_bar(bar_number, sort=sort)]


@router.get("/kitchen/orders", response_model=List[OrderOut], summary="Pending food orders")
async def list_kitchen_orders(
    sort: str = Query(SORT_ASC, description="asc or desc by creation time"),
    orders: OrderEngine = Depends(get_orders),
):
    return [OrderOut.model_validate(o) for o in orders.list_orders_for_kitchen(sort=sort)]
