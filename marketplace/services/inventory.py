"""
Inventory Ledger - reserves and releases catalog stock for order lines

Each line records whether it currently holds its quantity (``stock_taken``),
so an interrupted reservation or release can be resumed line by line without
taking or returning any quantity twice.
"""
import logging
from typing import Callable, List, Optional, Sequence

from marketplace.catalog import Catalog
from marketplace.exceptions import NotFound
from marketplace.models.order import OrderLineItem

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Moves stock for a set of order lines as one unit"""

    def __init__(self, catalog: Catalog, commit: Optional[Callable[[], None]] = None):
        self.catalog = catalog
        # persists a line's flag after the catalog accepted the change
        self.commit = commit or (lambda: None)

    def reserve(self, lines: Sequence[OrderLineItem]) -> None:
        """
        Decrement stock for every line not yet holding it, or for none

        The line flag is set before the catalog call, so the shared-database
        catalog commits both in one transaction. If any decrement fails, lines
        taken by this call are given back before the error propagates.

        Raises:
            InsufficientStock: If a line's stock ran out after validation
            NotFound: If a product disappeared after validation
        """
        taken: List[OrderLineItem] = []
        try:
            for line in lines:
                if line.stock_taken:
                    continue
                line.stock_taken = True
                try:
                    self.catalog.decrement_stock(line.product_id, line.quantity)
                except Exception:
                    line.stock_taken = False
                    raise
                self.commit()
                taken.append(line)
        except Exception:
            logger.warning("Stock reservation failed after %s line(s), releasing them", len(taken))
            try:
                self.release(taken)
            except Exception:
                logger.exception("Could not release %s line(s) after a failed reservation", len(taken))
            raise

    def release(self, lines: Sequence[OrderLineItem]) -> None:
        """
        Return every line still holding stock

        A product that no longer exists has nothing to return and counts as
        released.
        """
        for line in lines:
            if not line.stock_taken:
                continue
            line.stock_taken = False
            try:
                self.catalog.restock(line.product_id, line.quantity)
            except NotFound:
                logger.warning("Product %s no longer exists, nothing to restock", line.product_id)
            except Exception:
                line.stock_taken = True
                raise
            self.commit()
