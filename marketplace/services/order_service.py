"""
Order Service - Business Logic Layer
"""
import logging
import math
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from marketplace.catalog import Catalog, SellerDirectory
from marketplace.clock import Clock, utc_now
from marketplace.config import settings
from marketplace.exceptions import Forbidden, InsufficientStock, InvalidTransition, NotFound
from marketplace.models.enums import CheckoutStatus, OrderStatus, PaymentStatus
from marketplace.models.order import Order, OrderLineItem, ShippingAddress
from marketplace.publishers.event_publisher import EventPublisher
from marketplace.repositories.order_repository import OrderRepository
from marketplace.repositories.product_repository import ProductRepository, SellerRepository
from marketplace.schemas.order import OrderCreate
from marketplace.services.access import AccessGuard
from marketplace.services.catalog_client import CatalogServiceClient
from marketplace.services.inventory import InventoryLedger
from marketplace.services.partitioner import CartLine, CartPartitioner
from marketplace.services.pricing import calculate_pricing, to_money
from marketplace.services.state_machine import apply_transition

logger = logging.getLogger(__name__)


@dataclass
class PlacedOrders:
    checkout_id: str
    orders: List[Order]
    replayed: bool = False


@dataclass
class OrderPage:
    orders: List[Order]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


@dataclass
class OrderStats:
    total_orders: int
    total_revenue: Decimal
    average_order_value: Decimal
    orders_by_status: Dict[OrderStatus, int]


def build_catalog(db: Session):
    """Catalog and seller directory for the configured backend"""
    if settings.CATALOG_BACKEND == "http":
        client = CatalogServiceClient()
        return client, client
    return ProductRepository(db), SellerRepository(db)


class OrderService:
    """Service layer for order placement and fulfillment"""

    def __init__(
        self,
        db: Session,
        catalog: Optional[Catalog] = None,
        sellers: Optional[SellerDirectory] = None,
        event_publisher: Optional[EventPublisher] = None,
        clock: Clock = utc_now,
        restock_on_cancel: Optional[bool] = None,
    ):
        if catalog is None or sellers is None:
            default_catalog, default_sellers = build_catalog(db)
            catalog = catalog or default_catalog
            sellers = sellers or default_sellers

        self.repository = OrderRepository(db)
        self.catalog = catalog
        self.sellers = sellers
        self.partitioner = CartPartitioner(catalog)
        self.ledger = InventoryLedger(catalog, commit=self.repository.commit)
        self.guard = AccessGuard(sellers)
        self.event_publisher = event_publisher or EventPublisher()
        self.clock = clock
        self.restock_on_cancel = settings.RESTOCK_ON_CANCEL if restock_on_cancel is None else restock_on_cancel

    # Placement

    def place_order(self, buyer_id: str, order_data: OrderCreate, checkout_id: Optional[str] = None) -> PlacedOrders:
        """
        Turn a cart into one order per seller

        Steps:
        1. Replay a known checkout ID without touching anything
        2. Validate the whole cart and group it by seller (no writes)
        3. Record the checkout intent
        4. Per group: price, persist the order, then reserve stock
        5. Publish OrderCreated per order

        Groups are independent: a failure in a later group leaves earlier
        orders in place.

        Raises:
            NotFound: If a product does not exist
            InsufficientStock: If a quantity exceeds stock, at validation or
                at reservation time
            Forbidden: If the checkout ID belongs to another buyer
        """
        if checkout_id:
            intent = self.repository.get_intent(checkout_id)
            if intent:
                return self._replay(intent, buyer_id)

        groups = self.partitioner.partition(order_data.items)

        try:
            intent = self.repository.create_intent(
                checkout_id or str(uuid.uuid4()), buyer_id, len(groups), self.clock()
            )
        except IntegrityError:
            # a concurrent request with the same key recorded the intent first
            intent = self.repository.get_intent(checkout_id) if checkout_id else None
            if intent is None:
                raise
            return self._replay(intent, buyer_id)
        logger.info("Checkout %s: creating %s order(s) for buyer %s", intent.id, len(groups), buyer_id)

        created: List[Order] = []
        for position, (seller_id, lines) in enumerate(groups.items()):
            try:
                order = self._place_group(intent.id, position, buyer_id, seller_id, lines, order_data)
            except Exception:
                self.repository.set_intent_status(intent, CheckoutStatus.INCOMPLETE)
                logger.error(
                    "Checkout %s stopped at seller %s after %s order(s)",
                    intent.id, seller_id, len(created)
                )
                raise
            created.append(order)

        self.repository.set_intent_status(intent, CheckoutStatus.COMPLETED)

        for order in created:
            self._publish_created(order)

        return PlacedOrders(checkout_id=intent.id, orders=created)

    def _replay(self, intent, buyer_id: str) -> PlacedOrders:
        if intent.buyer_id != buyer_id:
            raise Forbidden("Checkout belongs to another buyer")
        logger.info("Replaying checkout %s for buyer %s", intent.id, buyer_id)
        return PlacedOrders(
            checkout_id=intent.id,
            orders=self.repository.orders_for_intent(intent.id),
            replayed=True
        )

    def _build_order(self, checkout_id: str, group_position: int, buyer_id: str, seller_id: str,
                     lines: List[CartLine], order_data: OrderCreate) -> Order:
        pricing = calculate_pricing(lines)
        now = self.clock()

        order = Order(
            id=str(uuid.uuid4()),
            checkout_id=checkout_id,
            group_position=group_position,
            buyer_id=buyer_id,
            seller_id=seller_id,
            items=[
                OrderLineItem(
                    position=position,
                    product_id=line.product.id,
                    name=line.product.name,
                    price=line.product.price,
                    quantity=line.quantity,
                    image=line.product.image_url or "",
                    stock_taken=False
                )
                for position, line in enumerate(lines)
            ],
            subtotal=pricing.subtotal,
            shipping_cost=pricing.shipping_cost,
            tax=pricing.tax,
            total=pricing.total,
            shipping_address=ShippingAddress(**order_data.shipping_address.model_dump()),
            payment_method=order_data.payment_method.value,
            # payment is settled at checkout, so orders start in processing
            payment_status=PaymentStatus.COMPLETED.value,
            notes=order_data.notes,
            stock_committed=False,
            restock_pending=False,
            created_at=now,
            updated_at=now
        )
        order.record_status(OrderStatus.PROCESSING, now)
        return order

    def _place_group(self, checkout_id: str, group_position: int, buyer_id: str, seller_id: str,
                     lines: List[CartLine], order_data: OrderCreate) -> Order:
        """Persist one seller's order, then take its stock"""
        order = self.repository.create(
            self._build_order(checkout_id, group_position, buyer_id, seller_id, lines, order_data)
        )

        try:
            self.ledger.reserve(order.items)
        except (InsufficientStock, NotFound) as e:
            apply_transition(
                order, OrderStatus.CANCELLED, self.clock(),
                note="Cancelled at checkout: stock no longer available"
            )
            # lines the ledger could not give back are left to reconciliation
            order.restock_pending = order.holds_stock
            self.repository.save(order)
            logger.warning("Order %s cancelled during checkout: %s", order.id, e.message)
            raise

        order.stock_committed = True
        self.repository.save(order)
        logger.info("Order %s created for seller %s, total %s", order.id, seller_id, order.total)
        return order

    # Reads

    def _get_or_404(self, order_id: str) -> Order:
        order = self.repository.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order with id={order_id} not found")
        return order

    def get_order(self, caller_id: str, order_id: str) -> Order:
        """Order visible to its buyer or its seller"""
        order = self._get_or_404(order_id)
        self.guard.authorize_read(order, caller_id)
        return order

    def _page_bounds(self, page: int, page_size: int):
        page = max(page, 1)
        page_size = min(max(page_size, 1), settings.MAX_PAGE_SIZE)
        return page, page_size, (page - 1) * page_size

    def list_buyer_orders(self, buyer_id: str, page: int = 1, page_size: int = None,
                          status: Optional[OrderStatus] = None) -> OrderPage:
        page, page_size, skip = self._page_bounds(page, page_size or settings.DEFAULT_PAGE_SIZE)
        orders, total = self.repository.list_by_buyer(buyer_id, skip=skip, limit=page_size, status=status)
        return OrderPage(orders=orders, total=total, page=page, page_size=page_size)

    def list_seller_orders(self, seller_id: str, page: int = 1, page_size: int = None,
                           status: Optional[OrderStatus] = None) -> OrderPage:
        page, page_size, skip = self._page_bounds(page, page_size or settings.DEFAULT_PAGE_SIZE)
        orders, total = self.repository.list_by_seller(seller_id, skip=skip, limit=page_size, status=status)
        return OrderPage(orders=orders, total=total, page=page, page_size=page_size)

    def list_orders_of_seller_account(self, caller_id: str, page: int = 1, page_size: int = None,
                                      status: Optional[OrderStatus] = None) -> OrderPage:
        """Orders of the caller's seller account; empty if the caller sells nothing"""
        seller = self.sellers.find_seller_by_owner(caller_id)
        if not seller:
            page, page_size, _ = self._page_bounds(page, page_size or settings.DEFAULT_PAGE_SIZE)
            return OrderPage(orders=[], total=0, page=page, page_size=page_size)
        return self.list_seller_orders(seller.id, page=page, page_size=page_size, status=status)

    def seller_stats(self, caller_id: str) -> OrderStats:
        """
        Order counts and revenue of the caller's seller account

        Revenue and average order value leave cancelled orders out. Every
        status is reported, with zero for statuses the seller has no order in.
        Callers without a seller account get all zeros.
        """
        by_status = {s: 0 for s in OrderStatus}
        revenue = Decimal("0")
        live_orders = 0

        seller = self.sellers.find_seller_by_owner(caller_id)
        if seller:
            for status_value, (count, total) in self.repository.seller_totals(seller.id).items():
                order_status = OrderStatus(status_value)
                by_status[order_status] = count
                if order_status != OrderStatus.CANCELLED:
                    revenue += to_money(total)
                    live_orders += count

        average = to_money(revenue / live_orders) if live_orders else Decimal("0.00")
        return OrderStats(
            total_orders=sum(by_status.values()),
            total_revenue=to_money(revenue),
            average_order_value=average,
            orders_by_status=by_status
        )

    # Lifecycle

    def transition_order_status(self, caller_id: str, order_id: str, target: OrderStatus,
                                tracking_number: Optional[str] = None, note: Optional[str] = None) -> Order:
        """
        Advance an order's status on behalf of its seller

        Raises:
            NotFound: If the order does not exist
            Forbidden: If the caller is not the order's seller (a buyer may
                only cancel, within the buyer window)
            InvalidTransition: If the target is not reachable
        """
        order = self._get_or_404(order_id)
        self.guard.authorize_transition(order, caller_id, target)
        return self._transition(order, target, tracking_number=tracking_number, note=note)

    def cancel_order(self, buyer_id: str, order_id: str, reason: Optional[str] = None) -> Order:
        """
        Buyer-initiated cancellation

        Raises:
            NotFound: If the order does not exist
            Forbidden: If the caller is not the buyer, or the order is past
                the buyer cancellation window
            InvalidTransition: If the order is already delivered or cancelled
        """
        order = self._get_or_404(order_id)
        self.guard.authorize_cancellation(order, buyer_id)
        note = f"Cancelled by buyer: {reason}" if reason else "Cancelled by buyer"
        return self._transition(order, OrderStatus.CANCELLED, note=note)

    def _transition(self, order: Order, target: OrderStatus,
                    tracking_number: Optional[str] = None, note: Optional[str] = None) -> Order:
        old_status = order.status
        apply_transition(order, target, self.clock(), tracking_number=tracking_number, note=note)
        if target == OrderStatus.CANCELLED and self.restock_on_cancel and order.holds_stock:
            order.restock_pending = True
        try:
            self.repository.save(order)
        except (StaleDataError, IntegrityError):
            # version bump or history sequence taken by another writer
            logger.warning("Order %s changed concurrently, transition to %s rejected", order.id, target.value)
            raise InvalidTransition(f"Order {order.id} was modified concurrently, please retry")

        logger.info("Order %s: %s -> %s", order.id, old_status, order.status)

        if order.restock_pending:
            self._release_stock(order)

        self._publish_status_changed(order, old_status)
        return order

    def _release_stock(self, order: Order) -> None:
        """
        Give a cancelled order's stock back, after the cancellation is saved

        Best effort: lines the catalog refuses stay marked as taken and the
        order stays pending restock for reconciliation to finish.
        """
        try:
            self.ledger.release(order.items)
        except Exception:
            logger.exception("Restock of cancelled order %s failed, left to reconciliation", order.id)
            self.repository.rollback()
            return
        order.restock_pending = False
        order.stock_committed = False
        self.repository.save(order)
        logger.info("Stock released for cancelled order %s", order.id)

    # Events

    def _publish_created(self, order: Order) -> None:
        try:
            self.event_publisher.publish_order_created(order)
        except Exception:
            # the order stands; consumers catch up from the order tables
            logger.exception("Failed to publish OrderCreated for order %s", order.id)

    def _publish_status_changed(self, order: Order, old_status: str) -> None:
        try:
            self.event_publisher.publish_order_status_changed(order, old_status)
        except Exception:
            logger.exception("Failed to publish OrderStatusChanged for order %s", order.id)
