"""
Base Repository class with common database operations.
"""

from typing import Type, TypeVar, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from models import Base, fits_id_column

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=Base)

class BaseRepository:
    """Base repository with common CRUD operations."""

    def __init__(self, model: Type[T], session: Session):
        self.model = model
        self.session = session

    def get(self, id: int) -> Optional[T]:
        """Get a single record by ID."""
        # Ids outside the column range cannot exist
        if not fits_id_column(id):
            return None
        try:
            return self.session.query(self.model).filter(self.model.id == id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} with id {id}: {e}")
            raise

    def get_for_update(self, id: int) -> Optional[T]:
        """Get a single record by ID and lock its row until the transaction ends."""
        if not fits_id_column(id):
            return None
        try:
            return self.session.query(self.model).filter(self.model.id == id).with_for_update().first()
        except SQLAlchemyError as e:
            logger.error(f"Error locking {self.model.__name__} with id {id}: {e}")
            raise

    def create(self, **kwargs) -> T:
        """Create a new record."""
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            self.session.flush()  # Flush to get ID without committing
            return instance
        except IntegrityError as e:
            logger.error(f"Integrity error creating {self.model.__name__}: {e}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise
