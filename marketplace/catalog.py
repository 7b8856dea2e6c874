"""
Contracts the order service consumes from the catalog and seller directory
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from marketplace.schemas.catalog import ProductSnapshot, SellerRecord


class Catalog(ABC):
    """Product lookup and the inventory counter"""

    @abstractmethod
    def resolve_products(self, product_ids: Sequence[str]) -> List[ProductSnapshot]:
        """Return snapshots for the IDs that exist; unknown IDs are omitted"""

    @abstractmethod
    def decrement_stock(self, product_id: str, quantity: int) -> None:
        """
        Decrement stock by ``quantity`` only if it stays non-negative

        Raises:
            InsufficientStock: If fewer than ``quantity`` units are on hand
            NotFound: If the product does not exist
        """

    @abstractmethod
    def restock(self, product_id: str, quantity: int) -> None:
        """Return ``quantity`` units to stock"""


class SellerDirectory(ABC):
    """Seller ownership lookups"""

    @abstractmethod
    def resolve_seller_by_product(self, product_id: str) -> Optional[str]:
        """Seller ID owning the product, or None"""

    @abstractmethod
    def is_owned_by(self, seller_id: str, caller_id: str) -> bool:
        """Whether the seller account belongs to the caller"""

    @abstractmethod
    def find_seller_by_owner(self, caller_id: str) -> Optional[SellerRecord]:
        """Seller account of the caller, if the caller is a seller"""
