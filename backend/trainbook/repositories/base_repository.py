# backend/trainbook/repositories/base_repository.py
"""
Base Repository Pattern for the trainer scheduling platform.

Provides the foundation for all repository classes with:
- Common CRUD operations
- Type safety with generics
- Row locking helpers (SELECT ... FOR UPDATE)
- Dialect-aware idempotent inserts

Repositories never commit. The service layer owns the transaction, so
every write here only flushes.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


def get_dialect_name(session: Session, default: str = "postgresql") -> str:
    """Return the bound engine's dialect name, or ``default`` when unbound."""
    try:
        bind = session.get_bind()
    except SQLAlchemyError:
        return default
    dialect = getattr(bind, "dialect", None)
    return getattr(dialect, "name", default) or default


class BaseRepository(Generic[T]):
    """
    Concrete base repository implementation with common data access patterns.

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

    def get_by_id(self, id: str, for_update: bool = False) -> Optional[T]:
        """
        Retrieve an entity by its primary key.

        With ``for_update`` the row stays locked until the surrounding
        transaction ends.
        """
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if for_update:
                query = query.with_for_update().populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()  # Get ID without committing
            return entity
        except IntegrityError as exc:
            self.logger.error("Integrity error creating %s: %s", self.model.__name__, exc)
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

    def delete(self, id: str) -> bool:
        """Returns False if entity not found, raises for constraint violations."""
        try:
            entity = self.get_by_id(id)
            if not entity:
                return False

            self.db.delete(entity)
            self.db.flush()
            return True
        except IntegrityError as e:
            self.logger.error(
                f"Cannot delete {self.model.__name__} {id} due to constraints: {str(e)}"
            )
            raise RepositoryException(f"Cannot delete due to existing references: {str(e)}")
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting {self.model.__name__} {id}: {str(e)}")
            raise RepositoryException(f"Failed to delete {self.model.__name__}: {str(e)}")

    # Protected helper methods for use by subclasses

    def _insert_if_absent(
        self,
        values: Dict[str, Any],
        conflict_columns: List[str],
        model: Optional[Type[Any]] = None,
    ) -> bool:
        """
        INSERT a row unless a unique key in ``conflict_columns`` already exists.

        ``model`` defaults to the repository's own model; pass it when a
        repository writes to a sibling table.

        PostgreSQL uses ON CONFLICT DO NOTHING, SQLite uses INSERT OR IGNORE.
        Returns True when a new row was written.
        """
        model = model or self.model
        table = model.__table__
        try:
            if self.dialect_name == "postgresql":
                stmt = pg_insert(table).values(**values)
                stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)
            else:
                stmt = insert(table).values(**values)
                if self.dialect_name == "sqlite":
                    stmt = stmt.prefix_with("OR IGNORE")
            result = self.db.execute(stmt)
            return bool(getattr(result, "rowcount", 0))
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting {model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to insert {model.__name__}: {str(e)}")

    def _execute_query(self, query: Query) -> List[T]:
        """Execute query with error handling."""
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Query execution error: {str(e)}")
            raise RepositoryException(f"Query failed: {str(e)}")

    def _execute_scalar(self, query: Query) -> Any:
        try:
            return query.scalar()
        except SQLAlchemyError as e:
            self.logger.error(f"Scalar query error: {str(e)}")
            raise RepositoryException(f"Scalar query failed: {str(e)}")
