"""
Cart Partitioner - validates a cart and splits it by seller
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Sequence

from marketplace.exceptions import InsufficientStock, NotFound
from marketplace.schemas.catalog import ProductSnapshot
from marketplace.schemas.order import CartItem
from marketplace.catalog import Catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLine:
    product: ProductSnapshot
    quantity: int


class CartPartitioner:
    """Resolves cart products in one batch and groups them by seller"""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def partition(self, items: Sequence[CartItem]) -> Dict[str, List[CartLine]]:
        """
        Validate the cart and group its lines by owning seller

        Groups keep cart order and appear in the order their seller was
        first seen. Nothing is written.

        Raises:
            NotFound: If any product ID does not resolve
            InsufficientStock: If a product's requested quantity exceeds its stock
        """
        product_ids = list(dict.fromkeys(item.product_id for item in items))
        products = {p.id: p for p in self.catalog.resolve_products(product_ids)}

        missing = [pid for pid in product_ids if pid not in products]
        if missing:
            logger.warning("Checkout rejected, unknown products: %s", missing)
            raise NotFound(f"Products not found: {', '.join(missing)}")

        requested = defaultdict(int)
        for item in items:
            requested[item.product_id] += item.quantity

        for product_id, quantity in requested.items():
            product = products[product_id]
            if quantity > product.stock:
                logger.warning(
                    "Checkout rejected, insufficient stock for %s: requested %s, available %s",
                    product_id, quantity, product.stock
                )
                raise InsufficientStock(
                    f"Insufficient stock for {product.name}. Available: {product.stock}, requested: {quantity}",
                    product_id=product_id
                )

        groups: Dict[str, List[CartLine]] = {}
        for item in items:
            product = products[item.product_id]
            groups.setdefault(product.seller_id, []).append(CartLine(product, item.quantity))

        logger.info("Cart of %s line(s) split into %s seller group(s)", len(items), len(groups))
        return groups
