"""
Repositories for the catalog attributes a product can be associated with:
categories, sizes and colors.
"""

import logging
from typing import Iterable, Optional, Set
from sqlalchemy.orm import Session

from models import Category, Size, Color, fits_id_column
from .base import BaseRepository

logger = logging.getLogger(__name__)

class AttributeRepository(BaseRepository):
    """Store-scoped lookups shared by category, size and color repositories."""

    def find_missing(self, ids: Iterable[int], store_id: Optional[int] = None) -> Set[int]:
        """Return the ids that do not exist (or, with store_id, are not in that store)."""
        wanted = set(ids)
        if not wanted:
            return set()
        # Ids the column cannot hold are missing by definition
        out_of_range = {i for i in wanted if not fits_id_column(i)}
        wanted -= out_of_range
        if not wanted:
            return out_of_range

        query = self.session.query(self.model.id).filter(self.model.id.in_(wanted))
        if store_id is not None:
            query = query.filter(self.model.store_id == store_id)

        found = {row[0] for row in query.all()}
        return (wanted - found) | out_of_range

class CategoryRepository(AttributeRepository):
    """Repository for Category model operations."""

    def __init__(self, session: Session):
        super().__init__(Category, session)

class SizeRepository(AttributeRepository):
    """Repository for Size model operations."""

    def __init__(self, session: Session):
        super().__init__(Size, session)

class ColorRepository(AttributeRepository):
    """Repository for Color model operations."""

    def __init__(self, session: Session):
        super().__init__(Color, session)
