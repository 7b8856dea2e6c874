"""
SQLAlchemy Order aggregate models
"""
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Boolean, Text,
    ForeignKey, CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship, composite
from sqlalchemy.sql import func

from marketplace.clock import as_utc
from marketplace.database import Base
from marketplace.models.enums import OrderStatus, CheckoutStatus


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class ShippingAddress:
    """Shipping address embedded in an order"""
    full_name: str
    address_line1: str
    address_line2: Optional[str]
    city: str
    state: str
    postal_code: str
    country: str
    phone: str

    def __composite_values__(self):
        return (
            self.full_name, self.address_line1, self.address_line2, self.city,
            self.state, self.postal_code, self.country, self.phone,
        )


class CheckoutIntent(Base):
    """One place-order call; groups the orders it produced"""

    __tablename__ = "checkout_intents"

    id = Column(String(36), primary_key=True, default=_new_id)
    buyer_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=CheckoutStatus.OPEN.value, index=True)
    group_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    orders = relationship("Order", back_populates="checkout", order_by="Order.group_position")

    def __repr__(self):
        return f"<CheckoutIntent(id={self.id}, buyer_id={self.buyer_id}, status='{self.status}')>"


class Order(Base):
    """Seller-scoped order produced by a checkout"""

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_new_id)
    checkout_id = Column(String(36), ForeignKey("checkout_intents.id"), nullable=True, index=True)
    buyer_id = Column(String(64), nullable=False, index=True)
    seller_id = Column(String(64), nullable=False, index=True)

    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)

    status = Column(String(20), nullable=False, default=OrderStatus.PROCESSING.value, index=True)
    payment_method = Column(String(32), nullable=False)
    payment_status = Column(String(20), nullable=False, index=True)
    tracking_number = Column(String(100), nullable=True)
    notes = Column(String(500), nullable=True)

    shipping_full_name = Column(String(255), nullable=False)
    shipping_address_line1 = Column(String(255), nullable=False)
    shipping_address_line2 = Column(String(255), nullable=True)
    shipping_city = Column(String(100), nullable=False)
    shipping_state = Column(String(100), nullable=False)
    shipping_postal_code = Column(String(20), nullable=False)
    shipping_country = Column(String(100), nullable=False)
    shipping_phone = Column(String(30), nullable=False)
    shipping_address = composite(
        ShippingAddress,
        shipping_full_name,
        shipping_address_line1,
        shipping_address_line2,
        shipping_city,
        shipping_state,
        shipping_postal_code,
        shipping_country,
        shipping_phone,
    )

    # True once every line holds its quantity in the catalog
    stock_committed = Column(Boolean, nullable=False, default=False)
    # Cancelled while holding stock; lines still taken are owed back to the catalog
    restock_pending = Column(Boolean, nullable=False, default=False, index=True)
    # Seller group index within its checkout
    group_position = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    checkout = relationship("CheckoutIntent", back_populates="orders")
    items = relationship(
        "OrderLineItem",
        order_by="OrderLineItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    status_history = relationship(
        "OrderStatusEntry",
        order_by="OrderStatusEntry.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    # Constraints
    __table_args__ = (
        UniqueConstraint('checkout_id', 'seller_id', name='uq_orders_checkout_seller'),
        Index('ix_orders_buyer_created', 'buyer_id', 'created_at'),
        Index('ix_orders_seller_created', 'seller_id', 'created_at'),
        CheckConstraint('subtotal >= 0 AND tax >= 0 AND shipping_cost >= 0', name='check_amounts_non_negative'),
        CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'delivered', 'cancelled')",
            name='check_status_valid',
        ),
    )

    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def holds_stock(self) -> bool:
        return any(item.stock_taken for item in self.items)

    def record_status(self, status: OrderStatus, timestamp, note: Optional[str] = None) -> "OrderStatusEntry":
        """Set the status and append the matching history entry"""
        timestamp = as_utc(timestamp)
        if self.status_history:
            timestamp = max(timestamp, as_utc(self.status_history[-1].timestamp))
        entry = OrderStatusEntry(
            sequence=len(self.status_history),
            status=status.value,
            timestamp=timestamp,
            note=note,
        )
        self.status_history.append(entry)
        self.status = status.value
        return entry

    def __repr__(self):
        return f"<Order(id={self.id}, buyer_id={self.buyer_id}, seller_id={self.seller_id}, status='{self.status}')>"


class OrderLineItem(Base):
    """Product snapshot taken at purchase time"""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)  # Denormalized for history
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String(500), nullable=False, default="")
    stock_taken = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
        CheckConstraint('price >= 0', name='check_item_price_positive'),
    )

    def __repr__(self):
        return f"<OrderLineItem(product_id={self.product_id}, quantity={self.quantity}, price={self.price})>"


class OrderStatusEntry(Base):
    """Append-only status history row"""

    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    note = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('order_id', 'sequence', name='uq_status_history_sequence'),
    )

    def __repr__(self):
        return f"<OrderStatusEntry(order_id={self.order_id}, sequence={self.sequence}, status='{self.status}')>"
