"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, Optional, List
from datetime import datetime
from decimal import Decimal

from marketplace.models.enums import OrderStatus, PaymentMethod, PaymentStatus


class CartItem(BaseModel):
    """One requested cart line"""
    product_id: str = Field(..., min_length=1, max_length=64, description="Product ID")
    quantity: int = Field(..., ge=1, description="Quantity to order")


class ShippingAddressSchema(BaseModel):
    """Shipping address; only the second address line is optional"""
    full_name: str = Field(..., min_length=1, max_length=255)
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)


class OrderCreate(BaseModel):
    """Schema for checking out a cart"""
    items: List[CartItem] = Field(..., min_length=1, description="Cart lines")
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethod
    notes: Optional[str] = Field(None, max_length=500, description="Buyer notes")

    model_config = ConfigDict(str_strip_whitespace=True)


class OrderStatusUpdate(BaseModel):
    """Schema for a seller-driven status transition"""
    status: OrderStatus = Field(..., description="Target status")
    tracking_number: Optional[str] = Field(None, min_length=1, max_length=100)
    note: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)


class OrderCancel(BaseModel):
    """Schema for a buyer cancellation request"""
    reason: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(str_strip_whitespace=True)


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    price: Decimal
    quantity: int
    image: str

    model_config = ConfigDict(from_attributes=True)


class StatusHistoryEntry(BaseModel):
    status: OrderStatus
    timestamp: datetime
    note: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order response"""
    id: str
    checkout_id: Optional[str]
    buyer_id: str
    seller_id: str
    items: List[OrderItemResponse]
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    total: Decimal
    status: OrderStatus
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    tracking_number: Optional[str]
    notes: Optional[str]
    status_history: List[StatusHistoryEntry]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PlaceOrderResponse(BaseModel):
    """Schema for the orders created by one checkout"""
    checkout_id: str
    orders: List[OrderResponse]
    message: str


class OrderListResponse(BaseModel):
    """Schema for a page of orders"""
    orders: List[OrderResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class OrderStatsResponse(BaseModel):
    """Schema for a seller's order statistics"""
    total_orders: int
    total_revenue: Decimal = Field(..., description="Sum of totals of orders not cancelled")
    average_order_value: Decimal
    orders_by_status: Dict[OrderStatus, int]


class OrderEvent(BaseModel):
    """Schema for published order event envelopes"""
    event_type: str
    event_id: str
    event_version: str = "1.0"
    timestamp: str
    source: str
    data: dict
