"""Base classes and common patterns for the application."""
from abc import ABC
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.shared.exceptions import StorageError
from infra.resources import DatabaseResource

logger = structlog.get_logger("chat.storage")


class BaseRepository(ABC):
    """Repository over a process-lifetime database resource.

    Every operation runs in its own short-lived ``AsyncSession``; database
    failures surface as ``StorageError``.
    """

    def __init__(self, database: DatabaseResource):
        self.database = database

    @asynccontextmanager
    async def session_scope(self, operation: str) -> AsyncIterator[AsyncSession]:
        session = self.database.get_session()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("storage_operation_failed", operation=operation, error=str(e))
            raise StorageError(f"Failed to {operation}", {"reason": str(e)}) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
