"""
SQLAlchemy models for the shared catalog tables

The catalog is owned by another service; the order service only reads
products and sellers and moves the stock counter.
"""
from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from marketplace.database import Base


class Seller(Base):
    """Seller account, owned by a user"""

    __tablename__ = "sellers"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    shop_name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Seller(id={self.id}, user_id={self.user_id}, shop_name='{self.shop_name}')>"


class Product(Base):
    """Catalog item with its quantity-on-hand counter"""

    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    seller_id = Column(String(64), ForeignKey("sellers.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Constraints
    __table_args__ = (
        CheckConstraint('price >= 0', name='check_price_positive'),
        CheckConstraint('stock >= 0', name='check_stock_non_negative'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', price={self.price}, stock={self.stock})>"
