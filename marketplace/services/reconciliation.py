"""
Reconciliation of checkouts interrupted between writes

Order placement persists an order before taking its stock and records a
checkout intent before its orders. A crash, a failed catalog call or a
cancelled request in between leaves rows this job settles:

- live orders with lines that never took stock take it now, or are
  cancelled when the stock is gone
- orders pending restock give back the lines still holding stock
- open checkout intents are closed as completed or incomplete

Every step goes through the per-line ``stock_taken`` flags, so running the
job again never takes or returns a quantity twice.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.catalog import Catalog
from marketplace.clock import Clock, utc_now
from marketplace.config import settings
from marketplace.exceptions import InsufficientStock, NotFound
from marketplace.models.enums import CheckoutStatus, OrderStatus
from marketplace.repositories.order_repository import OrderRepository
from marketplace.services.inventory import InventoryLedger
from marketplace.services.state_machine import apply_transition

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    stock_committed: int = 0
    orders_cancelled: int = 0
    stock_released: int = 0
    intents_completed: int = 0
    intents_incomplete: int = 0


class Reconciler:
    """Settles orders and checkout intents older than a grace period"""

    def __init__(self, db: Session, catalog: Catalog, clock: Clock = utc_now,
                 grace_period: Optional[timedelta] = None):
        self.repository = OrderRepository(db)
        self.ledger = InventoryLedger(catalog, commit=self.repository.commit)
        self.clock = clock
        self.grace_period = grace_period or timedelta(seconds=settings.RECONCILE_AFTER_SECONDS)

    def run(self) -> ReconciliationReport:
        cutoff = self.clock() - self.grace_period
        report = ReconciliationReport()

        for order in self.repository.find_uncommitted(cutoff):
            try:
                self.ledger.reserve(order.items)
            except (InsufficientStock, NotFound) as e:
                apply_transition(
                    order, OrderStatus.CANCELLED, self.clock(),
                    note="Cancelled by reconciliation: stock no longer available"
                )
                order.restock_pending = order.holds_stock
                self.repository.save(order)
                report.orders_cancelled += 1
                logger.warning("Order %s cancelled by reconciliation: %s", order.id, e.message)
                continue
            order.stock_committed = True
            self.repository.save(order)
            report.stock_committed += 1
            logger.info("Order %s: stock committed by reconciliation", order.id)

        for order in self.repository.find_restock_pending(cutoff):
            self.ledger.release(order.items)
            order.restock_pending = False
            order.stock_committed = False
            self.repository.save(order)
            report.stock_released += 1
            logger.info("Order %s: stock released by reconciliation", order.id)

        for intent in self.repository.find_open_intents(cutoff):
            orders = self.repository.orders_for_intent(intent.id)
            complete = len(orders) == intent.group_count and all(
                o.status != OrderStatus.CANCELLED.value for o in orders
            )
            if complete:
                self.repository.set_intent_status(intent, CheckoutStatus.COMPLETED)
                report.intents_completed += 1
            else:
                self.repository.set_intent_status(intent, CheckoutStatus.INCOMPLETE)
                report.intents_incomplete += 1

        logger.info("Reconciliation finished: %s", report)
        return report
