"""
Base Repository

Generic async repository bound to a single SQLAlchemy session.
Subclasses set ``model`` and add entity-specific queries.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from mailsub.models.orm.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Repository base class.

    The repository never commits; transaction boundaries belong to the
    caller that owns the session.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: Any) -> ModelT | None:
        """Get an entity by primary key."""
        return await self.session.get(self.model, id)

