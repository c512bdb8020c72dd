# studio_booking/repositories/base_repository.py
"""
Base Repository Pattern for the studio booking engine.

Repositories are the only code that reads or writes tables. They never
commit; services own transaction boundaries. Conditional writes return the
number of affected rows so callers can turn "zero rows" into an explicit
conflict instead of a silent lost update.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException
from ..database.session_utils import get_dialect_name

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Concrete base repository with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        return get_dialect_name(self.db)

    def get_by_id(self, id: int, *, for_update: bool = False) -> Optional[T]:
        """Retrieve an entity by its primary key, optionally locking the row."""
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if for_update and self.dialect_name == "postgresql":
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def refresh(self, instance: T) -> None:
        """Refresh an instance from the database."""
        self.db.refresh(instance)

    def create(self, **kwargs) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        IntegrityError is re-raised untouched so callers can map constraint names
        to domain conflicts.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()  # Get ID without committing
            return entity
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

    def count(self, **kwargs) -> int:
        """Count entities matching given criteria."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting records: {str(e)}")
            raise RepositoryException(f"Failed to count records: {str(e)}")

    def find_one_by(self, **kwargs) -> Optional[T]:
        """Find a single entity by exact-match criteria."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding one by criteria: {str(e)}")
            raise RepositoryException(f"Failed to find record: {str(e)}")

    # Protected helper methods for use by subclasses

    def _guarded_update(self, predicates: List[Any], values: Dict[str, Any]) -> int:
        """
        Issue ``UPDATE ... WHERE <predicates>`` and return the affected row count.

        The WHERE clause is the compare-and-swap: callers include the value they
        read (a version, a flag) so a concurrent writer makes this a no-op.
        IntegrityError propagates so callers can map unique-index violations.
        """
        stmt = (
            update(self.model)
            .where(*predicates)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        try:
            result = self.db.execute(stmt)
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Guarded update on {self.model.__name__} failed: {str(e)}")
            raise RepositoryException(f"Failed to update {self.model.__name__}: {str(e)}")
        return int(result.rowcount or 0)

    def _build_query(self) -> Query:
        """Get base query for the model."""
        return self.db.query(self.model)

    def _execute_scalar(self, query: Query) -> Any:
        """Execute scalar query with error handling."""
        try:
            return query.scalar()
        except SQLAlchemyError as e:
            self.logger.error(f"Scalar query error: {str(e)}")
            raise RepositoryException(f"Scalar query failed: {str(e)}")
