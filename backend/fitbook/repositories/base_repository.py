# backend/fitbook/repositories/base_repository.py
"""
Generic data access for FitBook models.

Repositories flush and never commit; the calling service decides when a
unit of work ends. Every driver error leaves this layer as one of:

    StoreUnavailableException     the model's table does not exist
    TransientRepositoryException  timeout or dropped connection
    RepositoryException           anything else, integrity violations included
"""

from contextlib import contextmanager
import logging
from typing import Any, Dict, Generic, Iterator, List, NoReturn, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import (
    RepositoryException,
    StoreUnavailableException,
    TransientRepositoryException,
)
from ..database.session_utils import is_missing_table_error, is_transient_db_error

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """Session-bound CRUD for a single model class."""

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def _raise_translated(self, exc: SQLAlchemyError, action: str) -> NoReturn:
        name = self.model.__name__
        self.logger.error(f"Failed to {action} {name}: {exc}")
        if isinstance(exc, IntegrityError):
            raise RepositoryException(f"Integrity constraint violated: {exc.orig}") from exc
        if is_missing_table_error(exc):
            raise StoreUnavailableException(f"Table for {name} is unavailable: {exc}") from exc
        if is_transient_db_error(exc):
            raise TransientRepositoryException(
                f"Transient failure during {action} of {name}: {exc}"
            ) from exc
        raise RepositoryException(f"Failed to {action} {name}: {exc}") from exc

    @contextmanager
    def _translating(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self._raise_translated(exc, action)

    def get_by_id(self, id: str) -> Optional[T]:
        with self._translating("retrieve"):
            return self.db.get(self.model, id)

    def create(self, **kwargs: Any) -> T:
        """Add a new row and flush so generated columns are populated."""
        entity = self.model(**kwargs)
        with self._translating("create"):
            self.db.add(entity)
            self.db.flush()
        return entity

    def bulk_create(self, rows: List[Dict[str, Any]]) -> List[T]:
        entities = [self.model(**row) for row in rows]
        with self._translating("bulk create"):
            self.db.add_all(entities)
            self.db.flush()
        return entities

    def flush(self) -> None:
        with self._translating("flush"):
            self.db.flush()

    def update(self, id: str, **changes: Any) -> Optional[T]:
        """
        Apply ``changes`` to the row with ``id``.

        Keys that are not attributes of the model are ignored. Returns None
        when the row does not exist.
        """
        entity = self.get_by_id(id)
        if entity is None:
            return None
        for field, value in changes.items():
            if hasattr(entity, field):
                setattr(entity, field, value)
        with self._translating("update"):
            self.db.flush()
        return entity

    def delete(self, id: str) -> bool:
        entity = self.get_by_id(id)
        if entity is None:
            return False
        with self._translating("delete"):
            self.db.delete(entity)
            self.db.flush()
        return True

    def find_by(self, **criteria: Any) -> List[T]:
        """All rows whose columns equal ``criteria``."""
        return self._execute_query(self._build_query().filter_by(**criteria))

    def find_one_by(self, **criteria: Any) -> Optional[T]:
        with self._translating("find"):
            return self._build_query().filter_by(**criteria).first()

    def _build_query(self) -> Query:
        return self.db.query(self.model)

    def _execute_query(self, query: Query) -> List[T]:
        with self._translating("query"):
            return query.all()
