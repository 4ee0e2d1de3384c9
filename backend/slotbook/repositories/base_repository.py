"""
Base Repository Pattern for the Slotbook engine.

Repositories own every query against the session they are given and
never commit: the service that opened the unit of work decides when it
ends. Driver failures are logged and re-raised as RepositoryException,
except IntegrityError and StaleDataError which callers translate into
booking conflicts and so must see unchanged.
"""

from contextlib import contextmanager
import logging
from typing import Any, Dict, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Common data access helpers shared by the concrete repositories.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize repository with database session and model.

        Args:
            db: SQLAlchemy session (managed by service layer)
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Context manager that commits/rolls back the underlying session."""
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.logger.error("Repository transaction failed: %s", exc)
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            raise

    def get_by_id(self, id: str) -> Optional[T]:
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def add(self, entity: T) -> T:
        """
        Stage a new entity and flush it.

        Note: Does NOT commit - transaction management is handled by service layer.
        IntegrityError propagates so booking code can map it to a conflict.
        """
        try:
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

    def bulk_create(self, entities: List[Dict[str, Any]]) -> int:
        """Insert many rows in one round trip; returns the number inserted."""
        if not entities:
            return 0
        try:
            self.db.bulk_insert_mappings(self.model, entities)
            self.db.flush()
            return len(entities)
        except SQLAlchemyError as e:
            self.logger.error(f"Error bulk creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to bulk create: {str(e)}")
