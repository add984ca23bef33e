"""
Hypertube API — Movie Store Adapter
====================================

What:  Read-only access to the `movies` collection.
How:   Primary key lookup by IMDb id, returned as a tagged LookupResult
       carrying the movie document (a plain dict).
"""

import logging
from typing import Any, Dict

from hypertube.models.movie import Movie
from hypertube.services.lookup import DocumentStore, LookupResult

logger = logging.getLogger(__name__)


class MovieStore(DocumentStore):
    """Movie lookups by external identifier."""

    async def find_by_imdb_id(self, id_imdb: str) -> LookupResult:
        """
        Fetch one movie document.

        Returns:
            Found(document) | NotFound() | StoreError(cause)
        """

        async def operation():
            async with self.session_factory() as session:
                movie = await session.get(Movie, id_imdb)
                return movie.to_document() if movie is not None else None

        result = await self._lookup(operation)
        logger.debug("Movie lookup %s → %s", id_imdb, type(result).__name__)
        return result

    async def insert(self, id_imdb: str, attributes: Dict[str, Any]) -> None:
        """Store a movie document (used by seeding and tests)."""

        async def operation():
            async with self.session_factory() as session:
                session.add(Movie(id_imdb=id_imdb, attributes=attributes))
                await session.commit()

        await self._call(operation)
