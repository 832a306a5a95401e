"""
Product Repository for managing product database operations, including the
category, size and color junction rows and the product's images.
"""

import logging
from typing import List, Optional, Sequence
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models import Product, ProductCategory, ProductSize, ProductColor, Image, fits_id_column
from .base import BaseRepository

logger = logging.getLogger(__name__)

# Junction model and the column naming the related entity, per relation kind
LINK_MODELS = {
    'categories': (ProductCategory, 'category_id'),
    'sizes': (ProductSize, 'size_id'),
    'colors': (ProductColor, 'color_id'),
}

RELATION_ATTRIBUTES = ['category_links', 'size_links', 'color_links', 'images']

def unique_in_order(values: Sequence) -> List:
    """Drop repeated values, keeping the first occurrence."""
    return list(dict.fromkeys(values))

class ProductRepository(BaseRepository):
    """Repository for Product model operations."""

    def __init__(self, session: Session):
        super().__init__(Product, session)

    def _with_relations(self):
        return self.session.query(Product).options(
            selectinload(Product.category_links),
            selectinload(Product.size_links),
            selectinload(Product.color_links),
            selectinload(Product.images),
        )

    def get_with_relations(self, product_id: int, store_id: Optional[int] = None) -> Optional[Product]:
        """Get product with junction rows and images eagerly loaded."""
        if not fits_id_column(product_id) or (store_id is not None and not fits_id_column(store_id)):
            return None
        query = self._with_relations().filter(Product.id == product_id)
        if store_id is not None:
            query = query.filter(Product.store_id == store_id)
        return query.first()

    def find_with_relations(self, store_id: int,
                            category_id: Optional[int] = None,
                            size_id: Optional[int] = None,
                            color_id: Optional[int] = None,
                            is_featured: Optional[bool] = None,
                            is_archived: bool = False) -> List[Product]:
        """List a store's products, newest first.

        Relation filters are existential: a product matches when at least one
        of its junction rows points at the given id.
        """
        # An id the column cannot hold matches nothing
        if not all(fits_id_column(v) for v in (store_id, category_id, size_id, color_id) if v is not None):
            return []

        query = self._with_relations().filter(
            Product.store_id == store_id,
            Product.is_archived == is_archived
        )

        if is_featured is not None:
            query = query.filter(Product.is_featured == is_featured)
        if category_id is not None:
            query = query.filter(Product.category_links.any(ProductCategory.category_id == category_id))
        if size_id is not None:
            query = query.filter(Product.size_links.any(ProductSize.size_id == size_id))
        if color_id is not None:
            query = query.filter(Product.color_links.any(ProductColor.color_id == color_id))

        return query.order_by(Product.created_at.desc(), Product.id.desc()).all()

    def replace_links(self, product_id: int, kind: str, related_ids: Sequence[int]) -> int:
        """Delete every junction row of one kind for the product, then insert the new set.

        Must run inside the caller's transaction; nothing is committed here.
        """
        link_model, column = LINK_MODELS[kind]

        removed = self.session.query(link_model)\
            .filter(link_model.product_id == product_id)\
            .delete(synchronize_session='fetch')

        ids = unique_in_order(related_ids)
        self.session.add_all([
            link_model(product_id=product_id, position=position, **{column: related_id})
            for position, related_id in enumerate(ids)
        ])
        self.session.flush()

        logger.debug(f"Replaced {kind} of product {product_id}: removed {removed}, inserted {len(ids)}")
        return len(ids)

    def replace_images(self, product_id: int, urls: Sequence[str]) -> int:
        """Delete all images of the product and insert one per URL."""
        self.session.query(Image)\
            .filter(Image.product_id == product_id)\
            .delete(synchronize_session='fetch')

        self.session.add_all([Image(product_id=product_id, url=url) for url in urls])
        self.session.flush()
        return len(urls)

    def refresh_relations(self, product: Product) -> Product:
        """Drop cached collections so the next access reads the replaced rows."""
        self.session.expire(product, RELATION_ATTRIBUTES)
        return product

    def touch(self, product_ids: Sequence[int]) -> int:
        """Bump updated_at on the given products."""
        if not product_ids:
            return 0
        updated = self.session.query(Product)\
            .filter(Product.id.in_(list(product_ids)))\
            .update({Product.updated_at: func.now()}, synchronize_session=False)
        self.session.flush()
        return updated
