from typing import Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DatabaseError
from app.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Shared lookups and the commit path for the repositories.

    Every write commits right away, so one failing entity in a deadline
    pass never takes work already persisted for other entities down
    with it.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        self.session = session
        self.model = model

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        """Get a record by its ID, or None if it does not exist."""
        try:
            result = await self.session.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error loading {self.model.__name__} {id}: {str(e)}", exc_info=True)
            raise DatabaseError(f"Could not load {self.model.__name__} {id}", original_error=e)

    async def update(self, id: UUID, **fields) -> Optional[ModelType]:
        """Set fields on an existing record and commit.

        Returns:
            The updated record, or None if it does not exist
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return None

        for key, value in fields.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        await self.commit(f"update {self.model.__name__} {id}")
        return instance

    async def commit(self, action: str) -> None:
        """Flush and commit pending changes; roll back and raise DatabaseError on failure.

        Args:
            action: Short description of the write, used in logs and the error message
        """
        try:
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Could not {action}: {str(e)}", exc_info=True)
            raise DatabaseError(f"Could not {action}", original_error=e)

    async def rollback(self) -> None:
        """Discard the session's open transaction so later statements can run."""
        await self.session.rollback()
