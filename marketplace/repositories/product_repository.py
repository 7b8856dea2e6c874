"""
Product and Seller Repositories - shared catalog tables
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from marketplace.exceptions import InsufficientStock, NotFound
from marketplace.models.catalog import Product, Seller
from marketplace.schemas.catalog import ProductSnapshot, SellerRecord
from marketplace.catalog import Catalog, SellerDirectory

logger = logging.getLogger(__name__)


class ProductRepository(Catalog):
    """Catalog backed by the shared products table"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, product_id: str) -> Optional[Product]:
        """Get product by ID"""
        return self.db.query(Product).filter(Product.id == product_id).first()

    def resolve_products(self, product_ids: Sequence[str]) -> List[ProductSnapshot]:
        """Fetch all requested products in one query"""
        if not product_ids:
            return []
        products = self.db.query(Product).filter(Product.id.in_(list(product_ids))).all()
        return [ProductSnapshot.model_validate(p) for p in products]

    def decrement_stock(self, product_id: str, quantity: int) -> None:
        """
        Guarded decrement: a single conditional UPDATE, so two concurrent
        checkouts cannot both take the last units

        Pending changes in the session are committed together with the
        decrement, or rolled back with it when the guard matches nothing.

        Raises:
            InsufficientStock: If the guard matched no row for an existing product
            NotFound: If the product does not exist
        """
        try:
            updated = self.db.query(Product).filter(
                Product.id == product_id,
                Product.stock >= quantity
            ).update(
                {Product.stock: Product.stock - quantity},
                synchronize_session=False
            )
            if updated == 1:
                self.db.commit()
            else:
                self.db.rollback()
        except Exception:
            self.db.rollback()
            raise

        if updated == 1:
            logger.debug("Stock of %s decremented by %s", product_id, quantity)
            return

        product = self.get_by_id(product_id)
        if not product:
            raise NotFound(f"Product {product_id} not found")
        raise InsufficientStock(
            f"Insufficient stock for {product.name}. Available: {product.stock}, requested: {quantity}",
            product_id=product_id
        )

    def restock(self, product_id: str, quantity: int) -> None:
        """Add units back to stock, committing pending changes with it"""
        try:
            updated = self.db.query(Product).filter(Product.id == product_id).update(
                {Product.stock: Product.stock + quantity},
                synchronize_session=False
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if not updated:
            raise NotFound(f"Product {product_id} not found")
        logger.debug("Stock of %s restored by %s", product_id, quantity)


class SellerRepository(SellerDirectory):
    """Seller directory backed by the shared sellers table"""

    def __init__(self, db: Session):
        self.db = db

    def resolve_seller_by_product(self, product_id: str) -> Optional[str]:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        return product.seller_id if product else None

    def is_owned_by(self, seller_id: str, caller_id: str) -> bool:
        return self.db.query(Seller).filter(
            Seller.id == seller_id,
            Seller.user_id == caller_id
        ).first() is not None

    def find_seller_by_owner(self, caller_id: str) -> Optional[SellerRecord]:
        seller = self.db.query(Seller).filter(Seller.user_id == caller_id).first()
        if not seller:
            return None
        return SellerRecord.model_validate(seller)
