"""
Hypertube API — Movie Service
==============================

What:  The movie-info handler logic: movie lookup, caller lookup, redaction,
       composed Envelope.
Who:   Called by GET /api/movie/info/{idImdb}.

Flow:
    ┌──────────────┐  NotFound   ┌──────────────────────────────┐
    │ movie lookup │────────────▶│ {error: [movie/error.noMovie]}│
    └──────┬───────┘             └──────────────────────────────┘
           │ Found
    ┌──────▼───────┐   ┌──────────┐   ┌──────────────────────────┐
    │ user lookup  │──▶│  redact  │──▶│ {error: [], user, movie} │
    └──────────────┘   └──────────┘   └──────────────────────────┘

    Either lookup failing → StoreUnavailableError (fault, 503).
    The movie is looked up first; a missing movie never costs a user lookup.
"""

import logging

from hypertube.exceptions import IdentityNotFoundError
from hypertube.schemas.envelope import Envelope
from hypertube.services.lookup import Found, NotFound, StoreError
from hypertube.services.movie_store import MovieStore
from hypertube.services.redaction import redact_identity
from hypertube.services.user_store import UserStore

logger = logging.getLogger(__name__)


class MovieService:
    """Composes movie responses from the movie and user stores."""

    def __init__(self, movies: MovieStore, users: UserStore):
        self.movies = movies
        self.users = users

    async def get_info(self, id_imdb: str, user_id: str) -> Envelope:
        """
        Build the movie-info Envelope for the calling user.

        Returns:
            Envelope with `user` and `movie`, or a single `movie` error.

        Raises:
            StoreUnavailableError: either lookup failed
            IdentityNotFoundError: the caller's record is gone
        """
        movie = await self.movies.find_by_imdb_id(id_imdb)
        if isinstance(movie, StoreError):
            movie.raise_unavailable({"lookup": "movie", "id_imdb": id_imdb})
        if isinstance(movie, NotFound):
            logger.info("Movie not found: %s", id_imdb)
            return Envelope.failure("movie", "error.noMovie")

        user = await self.users.find_by_id(user_id)
        if isinstance(user, StoreError):
            user.raise_unavailable({"lookup": "user", "user_id": user_id})
        if not isinstance(user, Found):
            raise IdentityNotFoundError(identity_id=user_id)

        return Envelope(error=[], user=redact_identity(user.value), movie=movie.value)
