"""
Schemas package
"""
from marketplace.schemas.catalog import ProductSnapshot, SellerRecord
from marketplace.schemas.order import (
    CartItem,
    ShippingAddressSchema,
    OrderCreate,
    OrderStatusUpdate,
    OrderCancel,
    OrderItemResponse,
    StatusHistoryEntry,
    OrderResponse,
    PlaceOrderResponse,
    OrderListResponse,
    OrderStatsResponse,
    OrderEvent
)

__all__ = [
    "ProductSnapshot",
    "SellerRecord",
    "CartItem",
    "ShippingAddressSchema",
    "OrderCreate",
    "OrderStatusUpdate",
    "OrderCancel",
    "OrderItemResponse",
    "StatusHistoryEntry",
    "OrderResponse",
    "PlaceOrderResponse",
    "OrderListResponse",
    "OrderStatsResponse",
    "OrderEvent"
]
