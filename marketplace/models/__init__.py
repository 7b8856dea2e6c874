"""
Models package
"""
from marketplace.models.catalog import Product, Seller
from marketplace.models.enums import CheckoutStatus, OrderStatus, PaymentMethod, PaymentStatus
from marketplace.models.order import (
    CheckoutIntent,
    Order,
    OrderLineItem,
    OrderStatusEntry,
    ShippingAddress,
)

__all__ = [
    "Product",
    "Seller",
    "CheckoutStatus",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "CheckoutIntent",
    "Order",
    "OrderLineItem",
    "OrderStatusEntry",
    "ShippingAddress",
]
