"""
Catalog Query Service

Filtered, newest-first product listings in the legacy view shape, so
consumers written against single category/size/color fields keep working.
"""

import logging
from typing import Callable, ContextManager, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import db_session_scope
from product_views import LegacyProductView, ProductWithRelations, to_legacy_view
from repositories import ProductRepository
from services.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)


class CatalogQueryService:
    """Read-only product queries. Takes no locks."""

    def __init__(self, session_scope: Callable[[], ContextManager[Session]] = db_session_scope):
        self.session_scope = session_scope

    def find(self, store_id: int,
             category_id: Optional[int] = None,
             size_id: Optional[int] = None,
             color_id: Optional[int] = None,
             is_featured: Optional[bool] = None,
             is_archived: bool = False) -> List[LegacyProductView]:
        """Products of a store matching every given filter, newest first.

        ``category_id``, ``size_id`` and ``color_id`` match products having at
        least one association with that id. ``is_featured=None`` disables the
        featured filter; ``is_archived`` is always applied.
        """
        try:
            with self.session_scope() as session:
                products = ProductRepository(session).find_with_relations(
                    store_id,
                    category_id=category_id,
                    size_id=size_id,
                    color_id=color_id,
                    is_featured=is_featured,
                    is_archived=is_archived,
                )
                views = [to_legacy_view(ProductWithRelations.from_model(p)) for p in products]
        except SQLAlchemyError as e:
            logger.error(f"Error listing products for store {store_id}: {e}")
            raise StorageError("Failed to fetch products") from e

        logger.debug(f"Found {len(views)} products for store {store_id}")
        return views

    def get(self, product_id: int, store_id: Optional[int] = None) -> LegacyProductView:
        """Single product in the legacy view shape."""
        try:
            with self.session_scope() as session:
                product = ProductRepository(session).get_with_relations(product_id, store_id)
                if product is None:
                    raise NotFoundError(f"Product {product_id} not found")
                return to_legacy_view(ProductWithRelations.from_model(product))
        except SQLAlchemyError as e:
            logger.error(f"Error fetching product {product_id}: {e}")
            raise StorageError("Failed to fetch product") from e
