"""
Hypertube API — User Store Adapter
===================================

What:  Access to the `users` collection for the request pipeline.
Who:   SessionMiddleware (identity resolution), MovieService (composed
       responses), AuthService (login) and the picture upload route.
How:   Reads return tagged LookupResults carrying full user documents,
       password hash included. Redaction happens at the edge, in the
       services that build responses, never here.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, update

from hypertube.models.user import User
from hypertube.services.lookup import DocumentStore, LookupResult

logger = logging.getLogger(__name__)


class UserStore(DocumentStore):
    """Identity lookups and the few writes the pipeline performs."""

    async def find_by_id(self, user_id: str) -> LookupResult:
        """Found(document) | NotFound() | StoreError(cause)"""

        async def operation():
            async with self.session_factory() as session:
                user = await session.get(User, user_id)
                return user.to_document() if user is not None else None

        return await self._lookup(operation)

    async def find_by_login(self, login: str) -> LookupResult:
        """Found(document) | NotFound() | StoreError(cause)"""

        async def operation():
            async with self.session_factory() as session:
                result = await session.execute(select(User).where(User.login == login))
                user = result.scalar_one_or_none()
                return user.to_document() if user is not None else None

        return await self._lookup(operation)

    async def insert(self, document: Dict[str, Any]) -> None:
        """Store a user document (used by seeding and tests)."""

        async def operation():
            async with self.session_factory() as session:
                session.add(User(**document))
                await session.commit()

        await self._call(operation)

    async def set_picture(self, user_id: str, picture: Optional[str]) -> bool:
        """
        Update the profile picture URL.

        Returns:
            True if a user row was updated.

        Raises:
            StoreUnavailableError: the write failed
        """

        async def operation():
            async with self.session_factory() as session:
                result = await session.execute(
                    update(User).where(User.id == user_id).values(picture=picture)
                )
                await session.commit()
                return result.rowcount

        updated = await self._call(operation)
        logger.info("Picture updated for user %s (%d row)", user_id, updated)
        return updated > 0
