"""Pytest configuration and fixtures for the test suite."""
import hashlib
import hmac
import json
import time
from decimal import Decimal
from unittest.mock import patch

import pytest

import database
from app import create_app
from models import Store, Category, Size, Color, Product, ProductCategory, ProductSize, ProductColor, Image, Order, OrderItem

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"
WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def app():
    """Create a test Flask application backed by a fresh in-memory database."""
    app = create_app('testing')
    yield app
    database.db_manager.drop_tables()
    database.close_database()


@pytest.fixture
def db(app):
    """The initialized global database manager."""
    return database.db_manager


@pytest.fixture
def client(app):
    """Create a test client for API testing."""
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Bearer token for the owner of the seeded store."""
    with app.app_context():
        from flask_jwt_extended import create_access_token
        access_token = create_access_token(identity=OWNER_ID)
        return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def other_auth_headers(app):
    """Bearer token for a user that owns a different store."""
    with app.app_context():
        from flask_jwt_extended import create_access_token
        access_token = create_access_token(identity=OTHER_OWNER_ID)
        return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture(autouse=True)
def mock_notifier():
    """Keep sales notifications away from the broker."""
    with patch('tasks.notify_product_sales') as notifier:
        yield notifier


@pytest.fixture
def seed(db):
    """Two stores; the first one with categories, sizes and colors.

    Returns a dict of ids.
    """
    with database.db_session_scope() as session:
        store = Store(owner_id=OWNER_ID, name="Main Store")
        other = Store(owner_id=OTHER_OWNER_ID, name="Other Store")
        session.add_all([store, other])
        session.flush()

        shirts = Category(store_id=store.id, label="Shirts")
        sale = Category(store_id=store.id, label="Sale")
        hats = Category(store_id=store.id, label="Hats")
        foreign_category = Category(store_id=other.id, label="Foreign")
        small = Size(store_id=store.id, name="Small", value="S")
        large = Size(store_id=store.id, name="Large", value="L")
        foreign_size = Size(store_id=other.id, name="Medium", value="M")
        black = Color(store_id=store.id, name="Black", value="#000000")
        white = Color(store_id=store.id, name="White", value="#ffffff")
        session.add_all([shirts, sale, hats, foreign_category, small, large, foreign_size, black, white])
        session.flush()

        return {
            'store_id': store.id,
            'other_store_id': other.id,
            'shirts': shirts.id,
            'sale': sale.id,
            'hats': hats.id,
            'foreign_category': foreign_category.id,
            'small': small.id,
            'large': large.id,
            'foreign_size': foreign_size.id,
            'black': black.id,
            'white': white.id,
        }


@pytest.fixture
def make_product(seed):
    """Factory inserting a product with the given association ids."""
    def _make(name="Tee", price="19.99", category_ids=(), size_ids=(), color_ids=(),
              image_urls=(), is_featured=False, is_archived=False, store_id=None):
        with database.db_session_scope() as session:
            product = Product(
                store_id=store_id or seed['store_id'],
                name=name,
                price=Decimal(price),
                is_featured=is_featured,
                is_archived=is_archived,
            )
            session.add(product)
            session.flush()
            session.add_all(
                [ProductCategory(product_id=product.id, category_id=cid, position=i) for i, cid in enumerate(category_ids)]
                + [ProductSize(product_id=product.id, size_id=sid, position=i) for i, sid in enumerate(size_ids)]
                + [ProductColor(product_id=product.id, color_id=cid, position=i) for i, cid in enumerate(color_ids)]
                + [Image(product_id=product.id, url=url) for url in image_urls]
            )
            return product.id
    return _make


@pytest.fixture
def make_order(seed):
    """Factory inserting an order with one item per product id."""
    def _make(product_ids=(), is_paid=False, store_id=None, phone="", address=""):
        with database.db_session_scope() as session:
            order = Order(store_id=store_id or seed['store_id'], is_paid=is_paid, phone=phone, address=address)
            session.add(order)
            session.flush()
            session.add_all([OrderItem(order_id=order.id, product_id=pid) for pid in product_ids])
            return order.id
    return _make


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    """Build a provider signature header for a raw body."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode('utf-8') + payload
    signature = hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_event(order_id, event_id="evt_1", event_type="checkout.session.completed",
                   address=None, phone="+44 20 7946 0000"):
    """Raw body of a checkout event as the provider sends it."""
    if address is None:
        address = {
            'line1': "221B Baker St",
            'line2': "",
            'city': "London",
            'state': "",
            'postal_code': "NW1",
        }
    body = {
        'id': event_id,
        'type': event_type,
        'data': {
            'object': {
                'metadata': {'orderId': str(order_id) if order_id is not None else None},
                'customer_details': {
                    'address': address,
                    'phone': phone,
                },
            },
        },
    }
    return json.dumps(body).encode('utf-8')
