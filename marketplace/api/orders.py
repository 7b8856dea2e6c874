"""
Order API endpoints
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.database import get_db
from marketplace.models.enums import OrderStatus
from marketplace.services.order_service import OrderPage, OrderService
from marketplace.schemas.order import (
    OrderCreate,
    OrderStatusUpdate,
    OrderCancel,
    OrderResponse,
    OrderListResponse,
    OrderStatsResponse,
    PlaceOrderResponse
)

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    """Dependency to get OrderService instance"""
    return OrderService(db)


def get_caller_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """Authenticated user ID, set by the gateway after verifying the session"""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return x_user_id


def _page_response(page: OrderPage) -> OrderListResponse:
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in page.orders],
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        total_pages=page.total_pages
    )


@router.post("", response_model=PlaceOrderResponse, status_code=status.HTTP_201_CREATED, summary="Place orders")
def place_order(
    order_data: OrderCreate,
    response: Response,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=36),
    caller_id: str = Depends(get_caller_id),
    service: OrderService = Depends(get_order_service)
):
    """
    Check out a cart, creating one order per seller

    Process:
    1. Resolve all products and validate stock
    2. Group items by seller
    3. Price each group (free shipping above 50, 10% tax)
    4. Save each order, then decrement its stock

    - **items**: Cart lines, each with product_id and quantity
    - **shipping_address**: Delivery address
    - **payment_method**: credit_card, debit_card, paypal, stripe or cash_on_delivery
    - **notes**: Buyer notes (optional, max 500 characters)

    Sending the same **Idempotency-Key** again returns the orders of the
    first attempt.
    """
    placed = service.place_order(caller_id, order_data, checkout_id=idempotency_key)
    if placed.replayed:
        response.status_code = status.HTTP_200_OK
    return PlaceOrderResponse(
        checkout_id=placed.checkout_id,
        orders=[OrderResponse.model_validate(o) for o in placed.orders],
        message=f"Successfully created {len(placed.orders)} order(s)"
    )


@router.get("", response_model=OrderListResponse, summary="Get my orders")
def get_my_orders(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Orders per page"),
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Only orders in this status"),
    caller_id: str = Depends(get_caller_id),
    service: OrderService = Depends(get_order_service)
):
    """
    Orders placed by the caller, newest first

    - **page**: Page number (default: 1)
    - **page_size**: Orders per page (default: 10, max: 100)
    - **status**: pending, processing, shipped, delivered or cancelled (optional)
    """
    return _page_response(
        service.list_buyer_orders(caller_id, page=page, page_size=page_size, status=status_filter)
    )


@router.get("/seller", response_model=OrderListResponse, summary="Get orders of my shop")
def get_seller_orders(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Orders per page"),
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Only orders in this status"),
    caller_id: str = Depends(get_caller_id),
    service: OrderService = Depends(get_order_service)
):
    """
    Orders received by the caller's seller account, newest first.
    Callers without a seller account get an empty page.
    """
    return _page_response(
        service.list_orders_of_seller_account(caller_id, page=page, page_size=page_size, status=status_filter)
    )


@router.get("/seller/stats", response_model=OrderStatsResponse, summary="Get statistics of my shop")
def get_seller_stats(
    caller_id: str = Depends(get_caller_id),
    service: OrderService = Depends(get_order_service)
):
    """
    Order counts per status, revenue and average order value of the caller's
    seller account. Cancelled orders count in their status only.
    """
    stats = service.seller_stats(caller_id)
    return OrderStatsResponse(
        total_orders=stats.total_orders,
        total_revenue=stats.total_revenue,
        average_order_value=stats.average_order_value,
        orders_by_status=stats.orders_by_status
    )


@router.get("/{order_id}", response_model=OrderResponse, summary="Get order by ID")
def get_order(
    order_id: str,
    caller_id: str = Depends(get_caller_id),
    service: OrderService = Depends(get_order_service)
):
    """
    Retrieve an order as its buyer or its seller

    - **order_id**: Order ID
    """
    return OrderResponse.model_validate(service.get_order(caller_id, order_id))


@router.patch("/{order_id}/status", response_model=OrderResponse, summary="Update order status")
def update_order_status(
    order_id: str,
    status_data: OrderStatusUpdate,
    caller_id: str = Depends(get_caller_id),
    service: OrderService = Depends(get_order_service)
):
    """
    Advance an order through its lifecycle (seller only)

    - **status**: processing, shipped, delivered or cancelled
    - **tracking_number**: Only when shipping (optional)
    - **note**: Added to the status history (optional)
    """
    order = service.transition_order_status(
        caller_id,
        order_id,
        status_data.status,
        tracking_number=status_data.tracking_number,
        note=status_data.note
    )
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse, summary="Cancel order")
def cancel_order(
    order_id: str,
    cancel_data: Optional[OrderCancel] = None,
    caller_id: str = Depends(get_caller_id),
    service: OrderService = Depends(get_order_service)
):
    """
    Cancel an order as its buyer while it is pending or processing

    - **reason**: Recorded in the status history (optional)
    """
    reason = cancel_data.reason if cancel_data else None
    return OrderResponse.model_validate(service.cancel_order(caller_id, order_id, reason=reason))
