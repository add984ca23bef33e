"""
Hypertube API — Movie Service Unit Tests
=========================================

What:  Tests for MovieService.get_info with stubbed stores.
How:   The stores are AsyncMocks returning tagged lookup results, so lookup
       order and counts can be asserted exactly.

Test Strategy:
    ✅ Unknown movie → noMovie envelope, single lookup, no user lookup
    ✅ Known movie + user → redacted user and movie
    ✅ Store failures on either lookup → StoreUnavailableError (chained)
    ✅ Vanished user → IdentityNotFoundError
"""

from unittest.mock import AsyncMock

import pytest

from hypertube.exceptions import IdentityNotFoundError, StoreUnavailableError
from hypertube.services.lookup import Found, NotFound, StoreError
from hypertube.services.movie_service import MovieService

USER = {
    "id": "u1",
    "login": "neo",
    "email": "neo@example.com",
    "firstname": "Thomas",
    "lastname": "Anderson",
    "picture": None,
    "lang": "en",
    "password": "$2b$12$hash",
}

MOVIE = {"idImdb": "tt0133093", "title": "The Matrix", "year": 1999}


def make_service(movie_result, user_result=None):
    movies = AsyncMock()
    movies.find_by_imdb_id = AsyncMock(return_value=movie_result)
    users = AsyncMock()
    users.find_by_id = AsyncMock(return_value=user_result)
    return MovieService(movies, users), movies, users


class TestGetInfo:

    @pytest.mark.asyncio
    async def test_unknown_movie_returns_no_movie_error(self):
        """Exactly one store lookup, no user lookup, no payload."""
        service, movies, users = make_service(NotFound())

        envelope = await service.get_info("tt9999999", "u1")

        assert envelope.model_dump() == {
            "error": [{"param": "movie", "msg": "error.noMovie"}]
        }
        movies.find_by_imdb_id.assert_awaited_once_with("tt9999999")
        users.find_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_known_movie_returns_redacted_user_and_movie(self):
        service, movies, users = make_service(Found(MOVIE), Found(dict(USER)))

        envelope = await service.get_info("tt0133093", "u1")
        body = envelope.model_dump()

        assert body["error"] == []
        assert body["movie"] == MOVIE
        assert body["user"]["id"] == "u1"
        assert body["user"]["password"] == ""
        assert body["user"]["login"] == "neo"
        users.find_by_id.assert_awaited_once_with("u1")

    @pytest.mark.asyncio
    async def test_stored_document_is_not_mutated(self):
        stored = dict(USER)
        service, _, _ = make_service(Found(MOVIE), Found(stored))

        await service.get_info("tt0133093", "u1")

        assert stored["password"] == "$2b$12$hash"

    @pytest.mark.asyncio
    async def test_movie_store_failure_is_fatal(self):
        cause = ConnectionError("connection refused")
        service, _, users = make_service(StoreError(cause))

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.get_info("tt0133093", "u1")

        assert exc_info.value.__cause__ is cause
        users.find_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_user_store_failure_is_fatal(self):
        cause = ConnectionError("connection reset")
        service, _, _ = make_service(Found(MOVIE), StoreError(cause))

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.get_info("tt0133093", "u1")

        assert exc_info.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_missing_user_is_fatal(self):
        service, _, _ = make_service(Found(MOVIE), NotFound())

        with pytest.raises(IdentityNotFoundError):
            await service.get_info("tt0133093", "ghost")
