"""
Base repository pattern implementation.

This module defines the abstract base repository and common patterns.
- Abstract base class defines the interface contract
- Generic type hints for type safety
- Separation of stored rows from domain models
- Repository pattern abstracts data access for testability
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional, List, Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel
from sqlalchemy import select

from songmatch.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=SQLModel)


class BaseRepository(Generic[T], ABC):
    """
    Abstract base repository implementing common read and create operations.

    Type Parameters:
        T: The SQLModel type this repository manages
    """

    def __init__(self, session: AsyncSession, model_class: type[T]):
        """
        Initialize the repository.

        Args:
            session: Async database session
            model_class: The SQLModel class this repository manages
        """
        self.session = session
        self.model_class = model_class
        self.logger = get_logger(f"{__name__}.{model_class.__name__}")

    @abstractmethod
    async def get_by_id(self, id: Any) -> Optional[T]:
        """Get entity by primary key."""
        pass

    @abstractmethod
    async def create(self, entity: T) -> T:
        """Create a new entity."""
        pass


class SQLModelRepository(BaseRepository[T]):
    """
    Concrete implementation of BaseRepository using SQLModel.

    Read errors are logged and re-raised; write errors additionally roll the
    session back so the caller can keep using it.
    """

    async def get_by_id(self, id: Any) -> Optional[T]:
        """
        Get entity by primary key.

        Args:
            id: Primary key value

        Returns:
            Entity instance or None if not found
        """
        try:
            query = (
                select(self.model_class)
                .where(self.model_class.id == id)
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(query)
            entity = result.scalar_one_or_none()

            if entity:
                self.logger.debug("Entity retrieved", entity_id=id, entity_type=self.model_class.__name__)
            else:
                self.logger.debug("Entity not found", entity_id=id, entity_type=self.model_class.__name__)

            return entity

        except Exception as e:
            self.logger.error(
                "Error retrieving entity",
                entity_id=id,
                entity_type=self.model_class.__name__,
                error=str(e),
                exc_info=True
            )
            raise

    async def get_by_ids(self, ids: List[Any]) -> List[T]:
        """
        Get entities by list of IDs in one query.

        Args:
            ids: Primary keys to fetch

        Returns:
            Entities found, in no particular order
        """
        if not ids:
            return []

        try:
            query = (
                select(self.model_class)
                .where(self.model_class.id.in_(ids))
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(query)
            entities = result.scalars().all()

            self.logger.debug(
                "Entities retrieved by IDs",
                requested_ids=len(ids),
                found=len(entities),
                entity_type=self.model_class.__name__
            )

            return list(entities)

        except Exception as e:
            self.logger.error(
                "Error retrieving entities by IDs",
                ids=ids,
                entity_type=self.model_class.__name__,
                error=str(e),
                exc_info=True
            )
            raise

    async def create(self, entity: T, commit: bool = True) -> T:
        """
        Create a new entity.

        Args:
            entity: Entity instance to create
            commit: Whether to commit the transaction immediately

        Returns:
            Created entity with generated ID
        """
        try:
            self.session.add(entity)
            if commit:
                await self.session.commit()
                await self.session.refresh(entity)
            else:
                await self.session.flush()

            self.logger.info(
                "Entity created",
                entity_id=getattr(entity, 'id', None),
                entity_type=self.model_class.__name__
            )

            return entity

        except Exception as e:
            await self.session.rollback()
            self.logger.error(
                "Error creating entity",
                entity_type=self.model_class.__name__,
                error=str(e),
                exc_info=True
            )
            raise

