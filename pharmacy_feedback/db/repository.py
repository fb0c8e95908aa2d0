"""Shared repository base helpers."""
import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pharmacy_feedback.db.exceptions import StorageException

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base repository with common DB helpers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _execute(self, stmt, operation: str):
        """Execute a statement, surfacing driver failures as StorageException."""
        try:
            return await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Database error while trying to {operation}: {e}")
            await self.db.rollback()
            raise StorageException(operation) from e

    async def _commit(self, instance, operation: str):
        """Commit pending changes and refresh the given instance."""
        try:
            await self.db.commit()
            if instance is not None:
                await self.db.refresh(instance)
            return instance
        except SQLAlchemyError as e:
            logger.error(f"Database error while trying to {operation}: {e}")
            await self.db.rollback()
            raise StorageException(operation) from e
