"""
Product views handed to API consumers.

``ProductWithRelations`` is the full many-to-many shape read from the
junction rows. ``LegacyProductView`` additionally carries the single
``category``/``size``/``color`` fields older consumers were written against;
those are always derived from the arrays, never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from models import Product


@dataclass(frozen=True)
class CategoryRef:
    id: int
    label: str
    store_id: int


@dataclass(frozen=True)
class SizeRef:
    id: int
    name: str
    value: str
    store_id: int


@dataclass(frozen=True)
class ColorRef:
    id: int
    name: str
    value: str
    store_id: int


@dataclass(frozen=True)
class ImageRef:
    id: int
    url: str
    product_id: int


@dataclass(frozen=True)
class ProductWithRelations:
    """Product with its full association sets, in association order."""
    id: int
    store_id: int
    name: str
    price: Decimal
    is_featured: bool
    is_archived: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    categories: Tuple[CategoryRef, ...] = ()
    sizes: Tuple[SizeRef, ...] = ()
    colors: Tuple[ColorRef, ...] = ()
    images: Tuple[ImageRef, ...] = ()

    @classmethod
    def from_model(cls, product: Product) -> 'ProductWithRelations':
        """Project an ORM product; must be called while its session is open."""
        return cls(
            id=product.id,
            store_id=product.store_id,
            name=product.name,
            price=Decimal(str(product.price)),
            is_featured=bool(product.is_featured),
            is_archived=bool(product.is_archived),
            created_at=product.created_at,
            updated_at=product.updated_at,
            categories=tuple(
                CategoryRef(id=link.category.id, label=link.category.label, store_id=link.category.store_id)
                for link in product.category_links
            ),
            sizes=tuple(
                SizeRef(id=link.size.id, name=link.size.name, value=link.size.value, store_id=link.size.store_id)
                for link in product.size_links
            ),
            colors=tuple(
                ColorRef(id=link.color.id, name=link.color.name, value=link.color.value, store_id=link.color.store_id)
                for link in product.color_links
            ),
            images=tuple(
                ImageRef(id=image.id, url=image.url, product_id=image.product_id)
                for image in product.images
            ),
        )


@dataclass(frozen=True)
class LegacyProductView:
    """Product shape with both the arrays and the first-of-each single fields."""
    id: int
    store_id: int
    name: str
    price: float
    is_featured: bool
    is_archived: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    category: Optional[CategoryRef]
    size: Optional[SizeRef]
    color: Optional[ColorRef]
    categories: List[CategoryRef] = field(default_factory=list)
    sizes: List[SizeRef] = field(default_factory=list)
    colors: List[ColorRef] = field(default_factory=list)
    images: List[ImageRef] = field(default_factory=list)


def _first(items):
    return items[0] if items else None


def to_legacy_view(product: ProductWithRelations) -> LegacyProductView:
    """Derive the legacy single-valued shape. Pure; the input is not modified."""
    return LegacyProductView(
        id=product.id,
        store_id=product.store_id,
        name=product.name,
        # Two-decimal prices round-trip through float repr unchanged
        price=float(product.price),
        is_featured=product.is_featured,
        is_archived=product.is_archived,
        created_at=product.created_at,
        updated_at=product.updated_at,
        category=_first(product.categories),
        size=_first(product.sizes),
        color=_first(product.colors),
        categories=list(product.categories),
        sizes=list(product.sizes),
        colors=list(product.colors),
        images=list(product.images),
    )


LEGACY_ID_FIELDS = {
    'category_id': 'category_ids',
    'size_id': 'size_ids',
    'color_id': 'color_ids',
}


def legacy_ids_to_lists(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Map legacy single ids (``category_id``...) onto the id-list fields.

    An explicit list always wins over the single id. Returns a new dict
    without the single-id keys.
    """
    result = {key: value for key, value in payload.items() if key not in LEGACY_ID_FIELDS}
    for single, plural in LEGACY_ID_FIELDS.items():
        if result.get(plural) is None and payload.get(single) is not None:
            result[plural] = [payload[single]]
    return result
