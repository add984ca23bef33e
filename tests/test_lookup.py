"""
Hypertube API — Store Retry Policy Tests
=========================================

What:  DocumentStore._call / _lookup: transient errors retried, permanent
       ones not, exhaustion surfaces as StoreError / StoreUnavailableError.
"""

import warnings
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from hypertube.exceptions import StoreUnavailableError
from hypertube.services.lookup import DocumentStore, Found, NotFound, StoreError, is_transient


@pytest.fixture
def store(settings):
    retrying = settings.model_copy(update={"store_retry_attempts": 3})
    return DocumentStore(MagicMock(), retrying)


def operational_error():
    return OperationalError("SELECT 1", {}, Exception("server closed the connection"))


class TestIsTransient:

    def test_connection_errors(self):
        assert is_transient(ConnectionError("refused"))
        assert is_transient(operational_error())

    def test_query_errors(self):
        assert not is_transient(ProgrammingError("SELECT nope", {}, Exception("syntax error")))
        assert not is_transient(ValueError("bad"))


class TestRetry:

    @pytest.mark.asyncio
    async def test_transient_error_retried_then_found(self, store):
        operation = AsyncMock(side_effect=[operational_error(), operational_error(), {"id": "u1"}])

        result = await store._lookup(operation)

        assert result == Found({"id": "u1"})
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_none_is_not_found(self, store):
        assert await store._lookup(AsyncMock(return_value=None)) == NotFound()

    @pytest.mark.asyncio
    async def test_exhausted_retries_give_store_error(self, store):
        error = operational_error()
        operation = AsyncMock(side_effect=error)

        result = await store._lookup(operation)

        assert isinstance(result, StoreError)
        assert result.cause is error
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self, store):
        error = ProgrammingError("SELECT nope", {}, Exception("syntax error"))
        operation = AsyncMock(side_effect=error)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store._call(operation)

        assert exc_info.value.__cause__ is error
        assert operation.await_count == 1

    def test_store_error_raises_chained(self):
        cause = ConnectionError("down")
        with pytest.raises(StoreUnavailableError) as exc_info:
            StoreError(cause).raise_unavailable({"lookup": "movie"})

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.context["lookup"] == "movie"

    @pytest.mark.asyncio
    async def test_attempts_override(self, store):
        operation = AsyncMock(side_effect=operational_error())

        with pytest.raises(StoreUnavailableError):
            await store._call(operation, attempts=1)

        assert operation.await_count == 1

    def test_policy_builds_without_deprecation_warnings(self, store):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            store._retrying()
