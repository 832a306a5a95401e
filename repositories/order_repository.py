"""
Order Repository for order listing, revenue and payment bookkeeping.
"""

import logging
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models import Order, OrderItem, Product, ProcessedWebhookEvent
from .base import BaseRepository

logger = logging.getLogger(__name__)

class OrderRepository(BaseRepository):
    """Repository for Order model operations."""

    def __init__(self, session: Session):
        super().__init__(Order, session)

    def list_for_store(self, store_id: int) -> List[Order]:
        """Orders of a store with items and products loaded, newest first."""
        return self.session.query(Order).options(
            selectinload(Order.order_items).selectinload(OrderItem.product)
        ).filter(
            Order.store_id == store_id
        ).order_by(Order.created_at.desc(), Order.id.desc()).all()

    def product_ids(self, order_id: int) -> List[int]:
        """Product ids referenced by the order's items, in item order."""
        rows = self.session.query(OrderItem.product_id)\
            .filter(OrderItem.order_id == order_id)\
            .order_by(OrderItem.id)\
            .all()
        return [row[0] for row in rows]

    def total_revenue(self, store_id: int) -> Decimal:
        """Sum of item product prices over the store's paid orders."""
        total = self.session.query(func.coalesce(func.sum(Product.price), 0))\
            .select_from(Order)\
            .join(OrderItem, OrderItem.order_id == Order.id)\
            .join(Product, Product.id == OrderItem.product_id)\
            .filter(Order.store_id == store_id, Order.is_paid.is_(True))\
            .scalar()
        return Decimal(str(total or 0)).quantize(Decimal('0.01'))

    def paid_count(self, store_id: int) -> int:
        return self.session.query(func.count(Order.id))\
            .filter(Order.store_id == store_id, Order.is_paid.is_(True))\
            .scalar()

class WebhookEventRepository:
    """Ledger of provider event ids that have already been applied."""

    def __init__(self, session: Session):
        self.session = session

    def is_processed(self, event_id: str) -> bool:
        return self.session.get(ProcessedWebhookEvent, event_id) is not None

    def record(self, event_id: str, event_type: str, order_id: Optional[int] = None) -> ProcessedWebhookEvent:
        entry = ProcessedWebhookEvent(event_id=event_id, event_type=event_type, order_id=order_id)
        self.session.add(entry)
        self.session.flush()
        return entry
