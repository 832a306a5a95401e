"""
Store Repository for ownership lookups.
"""

from typing import Optional
from sqlalchemy.orm import Session

from models import Store, fits_id_column
from .base import BaseRepository

class StoreRepository(BaseRepository):
    """Repository for Store model operations."""

    def __init__(self, session: Session):
        super().__init__(Store, session)

    def get_owned_by(self, store_id: int, owner_id: str) -> Optional[Store]:
        """Get the store only if it belongs to the given owner."""
        if not fits_id_column(store_id):
            return None
        return self.session.query(Store).filter(
            Store.id == store_id,
            Store.owner_id == str(owner_id)
        ).first()
