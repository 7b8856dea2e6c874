"""
Repositories package
"""
from marketplace.repositories.order_repository import OrderRepository
from marketplace.repositories.product_repository import ProductRepository, SellerRepository

__all__ = ["OrderRepository", "ProductRepository", "SellerRepository"]
