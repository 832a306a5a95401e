"""
Association Replacer

Creates products together with their category, size and color junction rows
and images, and replaces those sets on update. Every operation is a single
unit of work: either all supplied kinds are replaced or nothing is.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Callable, ContextManager, Dict, Generator, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import db_session_scope
from models import MAX_PRICE
from product_views import LegacyProductView, ProductWithRelations, to_legacy_view
from repositories import (
    CategoryRepository, ColorRepository, ProductRepository, SizeRepository, StoreRepository
)
from services.errors import (
    CatalogError, InvalidInputError, NotFoundError, ReferentialIntegrityError, StorageError
)

logger = logging.getLogger(__name__)

# Replacement order is fixed so concurrent writers touch tables in the same order
RELATION_KINDS = ('categories', 'sizes', 'colors')

ATTRIBUTE_REPOSITORIES = {
    'categories': CategoryRepository,
    'sizes': SizeRepository,
    'colors': ColorRepository,
}

PRICE_QUANTUM = Decimal('0.01')


@dataclass
class ProductDraft:
    """Fields and initial association sets of a new product."""
    name: str
    price: Decimal
    category_ids: List[int] = field(default_factory=list)
    size_ids: List[int] = field(default_factory=list)
    color_ids: List[int] = field(default_factory=list)
    image_urls: List[str] = field(default_factory=list)
    is_featured: bool = False
    is_archived: bool = False

    def associations(self) -> Dict[str, List[int]]:
        return {
            'categories': self.category_ids,
            'sizes': self.size_ids,
            'colors': self.color_ids,
        }


@dataclass
class ProductChanges:
    """Partial update. ``None`` leaves a field or relation kind untouched."""
    name: Optional[str] = None
    price: Optional[Decimal] = None
    is_featured: Optional[bool] = None
    is_archived: Optional[bool] = None
    category_ids: Optional[List[int]] = None
    size_ids: Optional[List[int]] = None
    color_ids: Optional[List[int]] = None
    image_urls: Optional[List[str]] = None

    def associations(self) -> Dict[str, List[int]]:
        """Only the relation kinds that were supplied."""
        supplied = {
            'categories': self.category_ids,
            'sizes': self.size_ids,
            'colors': self.color_ids,
        }
        return {kind: ids for kind, ids in supplied.items() if ids is not None}

    def scalar_fields(self) -> Dict[str, object]:
        supplied = {
            'name': self.name,
            'price': self.price,
            'is_featured': self.is_featured,
            'is_archived': self.is_archived,
        }
        return {key: value for key, value in supplied.items() if value is not None}


def normalize_price(value) -> Decimal:
    """Convert to a two-place Decimal without passing through binary float."""
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError("Price must be a decimal number", {'price': str(value)})
    if not price.is_finite() or price < 0:
        raise InvalidInputError("Price must be a non-negative amount", {'price': str(value)})
    if price > MAX_PRICE:
        raise InvalidInputError(f"Price must not exceed {MAX_PRICE}", {'price': str(value)})
    return price.quantize(PRICE_QUANTUM)


def _check_ids(kind: str, ids: Sequence) -> None:
    for related_id in ids:
        if isinstance(related_id, bool) or not isinstance(related_id, int):
            raise InvalidInputError(f"{kind} must be a list of integer ids", {kind: list(ids)})


def _check_image_urls(urls: Sequence) -> None:
    for url in urls:
        if not isinstance(url, str) or not url.strip():
            raise InvalidInputError("Image URLs must be non-empty strings")


class AssociationReplacer:
    """Creates, updates and deletes products with their association sets."""

    def __init__(self, session_scope: Callable[[], ContextManager[Session]] = db_session_scope):
        self.session_scope = session_scope

    def create(self, store_id: int, draft: ProductDraft) -> LegacyProductView:
        """Create a product with its initial categories, sizes, colors and images."""
        if not draft.name or not draft.name.strip():
            raise InvalidInputError("Name is required")
        price = normalize_price(draft.price)
        associations = draft.associations()
        for kind, ids in associations.items():
            _check_ids(kind, ids)
        _check_image_urls(draft.image_urls)

        with self._unit_of_work() as session:
            if StoreRepository(session).get(store_id) is None:
                raise NotFoundError(f"Store {store_id} not found")

            self._validate_references(session, associations, store_id)

            repo = ProductRepository(session)
            product = repo.create(
                store_id=store_id,
                name=draft.name,
                price=price,
                is_featured=draft.is_featured,
                is_archived=draft.is_archived,
            )
            for kind in RELATION_KINDS:
                repo.replace_links(product.id, kind, associations[kind])
            repo.replace_images(product.id, draft.image_urls)

            view = self._view(repo, product)

        logger.info(f"Created product {view.id} in store {store_id}")
        return view

    def replace(self, product_id: int, changes: ProductChanges,
                store_id: Optional[int] = None) -> LegacyProductView:
        """Apply a partial update, replacing every supplied association set.

        With ``store_id`` the product and every referenced id must belong to
        that store; otherwise ids only have to exist.
        """
        associations = changes.associations()
        for kind, ids in associations.items():
            _check_ids(kind, ids)
        if changes.image_urls is not None:
            _check_image_urls(changes.image_urls)
        scalars = changes.scalar_fields()
        if 'name' in scalars and not scalars['name'].strip():
            raise InvalidInputError("Name cannot be empty")
        if 'price' in scalars:
            scalars['price'] = normalize_price(scalars['price'])

        with self._unit_of_work() as session:
            repo = ProductRepository(session)

            # Row lock serializes concurrent replaces of the same product
            product = repo.get_for_update(product_id)
            if product is None or (store_id is not None and product.store_id != store_id):
                raise NotFoundError(f"Product {product_id} not found")

            self._validate_references(session, associations, store_id)

            for key, value in scalars.items():
                setattr(product, key, value)

            for kind in RELATION_KINDS:
                if kind in associations:
                    repo.replace_links(product.id, kind, associations[kind])
            if changes.image_urls is not None:
                repo.replace_images(product.id, changes.image_urls)

            session.flush()
            view = self._view(repo, product)

        replaced = [kind for kind in RELATION_KINDS if kind in associations]
        if changes.image_urls is not None:
            replaced.append('images')
        logger.info(f"Updated product {product_id}; replaced: {', '.join(replaced) or 'none'}")
        return view

    def delete(self, product_id: int, store_id: Optional[int] = None) -> LegacyProductView:
        """Delete a product; its junction rows and images go with it."""
        with self._unit_of_work() as session:
            repo = ProductRepository(session)
            product = repo.get_with_relations(product_id, store_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")

            view = to_legacy_view(ProductWithRelations.from_model(product))
            session.delete(product)
            session.flush()

        logger.info(f"Deleted product {product_id}")
        return view

    def _validate_references(self, session: Session, associations: Dict[str, Sequence[int]],
                             store_id: Optional[int]) -> None:
        for kind in RELATION_KINDS:
            ids = associations.get(kind)
            if not ids:
                continue
            missing = ATTRIBUTE_REPOSITORIES[kind](session).find_missing(ids, store_id)
            if missing:
                scope = f" in store {store_id}" if store_id is not None else ""
                raise ReferentialIntegrityError(
                    f"Unknown {kind}{scope}: {', '.join(str(i) for i in sorted(missing))}",
                    kind=kind,
                    missing_ids=missing,
                )

    def _view(self, repo: ProductRepository, product) -> LegacyProductView:
        repo.refresh_relations(product)
        return to_legacy_view(ProductWithRelations.from_model(product))

    @contextmanager
    def _unit_of_work(self) -> Generator[Session, None, None]:
        """Session scope that maps storage exceptions onto the error taxonomy.

        The inner scope has already rolled back when an exception gets here.
        """
        try:
            with self.session_scope() as session:
                yield session
        except CatalogError:
            raise
        except IntegrityError as e:
            logger.warning(f"Integrity violation, transaction rolled back: {e.orig}")
            raise ReferentialIntegrityError("Referenced rows are missing or still in use") from e
        except SQLAlchemyError as e:
            logger.error(f"Storage failure, transaction rolled back: {e}")
            raise StorageError("Storage failure; no changes were applied") from e
        except ValueError as e:
            raise InvalidInputError(str(e)) from e
