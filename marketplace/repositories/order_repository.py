"""
Order Repository - Data Access Layer
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from marketplace.models.enums import CheckoutStatus, OrderStatus
from marketplace.models.order import CheckoutIntent, Order


class OrderRepository:
    """Repository for Order persistence"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, order_id: str) -> Optional[Order]:
        """Get order by ID"""
        return self.db.query(Order).filter(Order.id == order_id).first()

    def _page(self, query, status: Optional[OrderStatus], skip: int, limit: int) -> Tuple[List[Order], int]:
        if status is not None:
            query = query.filter(Order.status == status.value)
        orders = query.order_by(
            desc(Order.created_at), Order.id
        ).offset(skip).limit(limit).all()
        return orders, query.count()

    def list_by_buyer(self, buyer_id: str, skip: int = 0, limit: int = 10,
                      status: Optional[OrderStatus] = None) -> Tuple[List[Order], int]:
        """Page of a buyer's orders, newest first, with the total count"""
        return self._page(self.db.query(Order).filter(Order.buyer_id == buyer_id), status, skip, limit)

    def list_by_seller(self, seller_id: str, skip: int = 0, limit: int = 10,
                       status: Optional[OrderStatus] = None) -> Tuple[List[Order], int]:
        """Page of a seller's orders, newest first, with the total count"""
        return self._page(self.db.query(Order).filter(Order.seller_id == seller_id), status, skip, limit)

    def seller_totals(self, seller_id: str) -> Dict[str, Tuple[int, Decimal]]:
        """Order count and summed totals per status for one seller"""
        rows = self.db.query(
            Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total), 0)
        ).filter(
            Order.seller_id == seller_id
        ).group_by(Order.status).all()
        return {status: (count, Decimal(str(total))) for status, count, total in rows}

    def create(self, order: Order) -> Order:
        """
        Persist a new order together with its first history entry

        Raises:
            ValueError: If the order has no line items or no history
        """
        if not order.items:
            raise ValueError("Order must contain at least one item")
        if not order.status_history:
            raise ValueError("Order must be created with its initial status entry")

        self.db.add(order)
        self.commit()
        self.db.refresh(order)
        return order

    def save(self, order: Order) -> Order:
        """
        Commit changes made to an order

        Raises:
            sqlalchemy.orm.exc.StaleDataError: If another transaction updated
                the order since it was loaded
        """
        self.commit()
        self.db.refresh(order)
        return order

    def commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self) -> None:
        self.db.rollback()

    def find_uncommitted(self, created_before: datetime) -> List[Order]:
        """Live orders with lines that never took their stock"""
        return self.db.query(Order).filter(
            Order.stock_committed.is_(False),
            Order.status != OrderStatus.CANCELLED.value,
            Order.created_at < created_before
        ).order_by(Order.created_at).all()

    def find_restock_pending(self, created_before: datetime) -> List[Order]:
        """Cancelled orders whose stock is still owed back to the catalog"""
        return self.db.query(Order).filter(
            Order.restock_pending.is_(True),
            Order.created_at < created_before
        ).order_by(Order.created_at).all()

    # Checkout intents

    def get_intent(self, checkout_id: str) -> Optional[CheckoutIntent]:
        return self.db.query(CheckoutIntent).filter(CheckoutIntent.id == checkout_id).first()

    def create_intent(self, checkout_id: str, buyer_id: str, group_count: int, created_at: datetime) -> CheckoutIntent:
        """
        Raises:
            sqlalchemy.exc.IntegrityError: If the checkout ID is already taken
        """
        intent = CheckoutIntent(
            id=checkout_id,
            buyer_id=buyer_id,
            group_count=group_count,
            status=CheckoutStatus.OPEN.value,
            created_at=created_at,
            updated_at=created_at
        )
        self.db.add(intent)
        self.commit()
        self.db.refresh(intent)
        return intent

    def set_intent_status(self, intent: CheckoutIntent, status: CheckoutStatus) -> CheckoutIntent:
        intent.status = status.value
        self.commit()
        self.db.refresh(intent)
        return intent

    def find_open_intents(self, created_before: datetime) -> List[CheckoutIntent]:
        return self.db.query(CheckoutIntent).filter(
            CheckoutIntent.status == CheckoutStatus.OPEN.value,
            CheckoutIntent.created_at < created_before
        ).order_by(CheckoutIntent.created_at).all()

    def orders_for_intent(self, checkout_id: str) -> List[Order]:
        """Orders of a checkout in seller-group order"""
        return self.db.query(Order).filter(
            Order.checkout_id == checkout_id
        ).order_by(Order.group_position).all()
