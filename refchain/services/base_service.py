"""
Base service class.

Provides common functionality for all service classes: session access and a
logger bound to the service name.
"""

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base service class.

    Services never commit: the caller owns the transaction boundary and
    side effects run only after it closes.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
        """
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    async def refresh(self, obj: Any) -> None:
        """
        Refresh object from database.

        Args:
            obj: SQLAlchemy model instance to refresh
        """
        await self.session.refresh(obj)
