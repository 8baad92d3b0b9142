"""
Base repository with common CRUD operations and utilities.

Repositories never commit. They add, flush and query on the session they
were given; the service layer's transaction manager decides when the
unit of work is committed or rolled back.
"""

from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hostel_allocation.models.base.base_model import BaseModel

T = TypeVar('T', bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Base repository providing common database operations.

    Features:
    - CRUD operations that stage changes on the shared session
    - Batch lookups by id
    - Criteria filtering and counting
    """

    def __init__(self, model: Type[T], session: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Database session
        """
        self.model = model
        self.session = session

    # ============================================================================
    # CREATE OPERATIONS
    # ============================================================================

    def create(self, data: Dict[str, Any], flush: bool = True) -> T:
        """
        Create a new entity.

        Args:
            data: Entity data
            flush: Whether to flush so constraint violations surface immediately

        Returns:
            Created entity

        Raises:
            IntegrityError: If a unique or check constraint is violated on flush
        """
        entity = self.model(**data)
        self.session.add(entity)
        if flush:
            self.session.flush()
        return entity

    def bulk_create(self, data_list: List[Dict[str, Any]], flush: bool = True) -> List[T]:
        """
        Create multiple entities.

        Args:
            data_list: List of entity data
            flush: Whether to flush after adding

        Returns:
            List of created entities
        """
        entities = [self.model(**data) for data in data_list]
        self.session.add_all(entities)
        if flush and entities:
            self.session.flush()
        return entities

    # ============================================================================
    # READ OPERATIONS
    # ============================================================================

    def find_by_id(self, id: str) -> Optional[T]:
        """
        Find entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity or None if not found
        """
        if id is None:
            return None
        return self.session.get(self.model, id)

    def find_by_ids(self, ids: Iterable[str]) -> Dict[str, T]:
        """
        Batch lookup keyed by id.

        Args:
            ids: Entity IDs; duplicates and ``None`` are ignored

        Returns:
            Mapping of id to entity for the ids that exist
        """
        wanted = {i for i in ids if i is not None}
        if not wanted:
            return {}
        query = select(self.model).where(self.model.id.in_(wanted))
        return {entity.id: entity for entity in self.session.execute(query).scalars()}

    def find_all(self, order_by: Optional[str] = None) -> List[T]:
        """
        Find all entities.

        Args:
            order_by: Column to order by

        Returns:
            List of entities
        """
        query = select(self.model)
        if order_by:
            order_column = getattr(self.model, order_by, None)
            if order_column is not None:
                query = query.order_by(order_column)
        return list(self.session.execute(query).scalars().all())

    def find_by_criteria(self, filters: Dict[str, Any], order_by: Optional[str] = None) -> List[T]:
        """
        Find entities matching criteria.

        Args:
            filters: Column name to value; list values become ``IN`` clauses
            order_by: Column to order by

        Returns:
            List of matching entities
        """
        query = select(self.model)
        for key, value in filters.items():
            column = getattr(self.model, key)
            if isinstance(value, (list, tuple, set)):
                query = query.where(column.in_(list(value)))
            else:
                query = query.where(column == value)
        if order_by:
            query = query.order_by(getattr(self.model, order_by))
        return list(self.session.execute(query).scalars().all())

    def find_one_by_criteria(self, filters: Dict[str, Any]) -> Optional[T]:
        results = self.find_by_criteria(filters)
        return results[0] if results else None

    def exists(self, filters: Dict[str, Any]) -> bool:
        """Check whether any entity matches the filters"""
        return self.count(filters) > 0

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """
        Count entities matching filters.

        Args:
            filters: Column name to value

        Returns:
            Number of matching rows
        """
        query = select(func.count()).select_from(self.model)
        for key, value in (filters or {}).items():
            query = query.where(getattr(self.model, key) == value)
        return self.session.execute(query).scalar_one()

    # ============================================================================
    # UPDATE / DELETE OPERATIONS
    # ============================================================================

    def update(self, entity: T, data: Dict[str, Any], flush: bool = True) -> T:
        """
        Update entity attributes.

        Args:
            entity: Entity to update
            data: Attribute values
            flush: Whether to flush after updating

        Returns:
            Updated entity
        """
        for key, value in data.items():
            if not hasattr(entity, key):
                raise AttributeError(f"{self.model.__name__} has no attribute '{key}'")
            setattr(entity, key, value)
        if flush:
            self.session.flush()
        return entity

    def delete(self, entity: T, flush: bool = True) -> None:
        """Hard delete an entity"""
        self.session.delete(entity)
        if flush:
            self.session.flush()

    def flush(self) -> None:
        """Flush pending changes so the database checks them"""
        self.session.flush()
