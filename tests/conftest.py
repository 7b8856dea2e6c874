import os

# Configure before any marketplace module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EVENTS_ENABLED"] = "false"
os.environ["CATALOG_BACKEND"] = "database"

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.database import Base
from marketplace.models import Product, Seller
from marketplace.schemas.order import OrderCreate
from marketplace.services.order_service import OrderService

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

ADDRESS = {
    "full_name": "Ada Buyer",
    "address_line1": "1 Market Street",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
    "country": "US",
    "phone": "+1 555 0100",
}


class TickingClock:
    """Deterministic clock, one second further on every call"""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now


class RecordingPublisher:
    def __init__(self):
        self.created = []
        self.status_changes = []

    def publish_order_created(self, order):
        self.created.append(order.id)
        return True

    def publish_order_status_changed(self, order, old_status):
        self.status_changes.append((order.id, old_status, order.status))
        return True


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    return TickingClock()


@pytest.fixture()
def publisher():
    return RecordingPublisher()


@pytest.fixture()
def service(db, publisher, clock):
    return OrderService(db, event_publisher=publisher, clock=clock)


@pytest.fixture()
def catalog(db):
    """Two sellers, owned by users seller-user-1 and seller-user-2"""
    db.add_all([
        Seller(id="seller-1", user_id="seller-user-1", shop_name="First Shop"),
        Seller(id="seller-2", user_id="seller-user-2", shop_name="Second Shop"),
        Product(id="prod-a", seller_id="seller-1", name="Lamp", price=Decimal("20.00"), stock=10,
                image_url="https://img.example.com/lamp.jpg"),
        Product(id="prod-b", seller_id="seller-1", name="Rug", price=Decimal("15.00"), stock=5),
        Product(id="prod-c", seller_id="seller-2", name="Mug", price=Decimal("7.50"), stock=3),
        Product(id="prod-d", seller_id="seller-2", name="Teapot", price=Decimal("30.00"), stock=1),
    ])
    db.commit()
    return db


def make_order_data(items, payment_method="credit_card", notes=None, **address):
    return OrderCreate(
        items=[{"product_id": pid, "quantity": qty} for pid, qty in items],
        shipping_address={**ADDRESS, **address},
        payment_method=payment_method,
        notes=notes,
    )


def stock_of(db, product_id):
    db.expire_all()
    return db.query(Product).filter(Product.id == product_id).one().stock
