"""
Hypertube API — Store Lookup Results & Retry Policy
====================================================

What:  Tagged result types for store reads and the shared reconnect/retry
       policy of every store adapter.
Why:   Handlers must tell "the store answered: nothing there" apart from
       "the store call itself failed". The first is a domain outcome that
       ends up in the Envelope; the second is a fault that must travel up
       untouched. Returning one of three explicit variants makes that
       distinction impossible to skip:

           Found(value)   → the document exists
           NotFound()     → the store answered, no match
           StoreError(e)  → the store call failed (after retries)

How:   DocumentStore wraps each store call in a tenacity retry loop
       (exponential backoff with jitter) limited to connection-level errors.
       Query errors that will not fix themselves are not retried.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from hypertube.config import Settings
from hypertube.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    value: T


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class StoreError:
    """A failed store call. `cause` is the original driver exception."""

    cause: BaseException

    def raise_unavailable(self, context: Optional[dict] = None) -> None:
        """Re-raise as StoreUnavailableError chained from the original cause."""
        raise StoreUnavailableError(context=context) from self.cause


LookupResult = Union[Found[T], NotFound, StoreError]


def is_transient(exc: BaseException) -> bool:
    """Connection-level failures worth a reconnect attempt."""
    if isinstance(exc, (DisconnectionError, OperationalError, ConnectionError, OSError)):
        return True
    if isinstance(exc, DBAPIError):
        return bool(exc.connection_invalidated)
    return False


class DocumentStore:
    """
    Base class for store adapters.

    Attributes:
        session_factory: async_sessionmaker bound to the shared engine
        settings: retry policy source (attempts, min/max wait)
    """

    def __init__(self, session_factory: async_sessionmaker, settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    def _retrying(self, attempts: Optional[int] = None) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(attempts or self.settings.store_retry_attempts),
            # min_wait * 2^n capped at max_wait, plus up to min_wait of jitter
            wait=wait_exponential(
                multiplier=self.settings.store_retry_min_wait,
                min=self.settings.store_retry_min_wait,
                max=self.settings.store_retry_max_wait,
            )
            + wait_random(0, self.settings.store_retry_min_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def _call(
        self,
        operation: Callable[[], Awaitable[Any]],
        attempts: Optional[int] = None,
    ) -> Any:
        """
        Run one store operation under the retry policy.

        `attempts` overrides the configured attempt count for this call.

        Raises:
            StoreUnavailableError: chained from the last driver error once
            the retry policy gives up or the error is not transient.
        """
        try:
            async for attempt in self._retrying(attempts):
                with attempt:
                    return await operation()
        except (SQLAlchemyError, ConnectionError, OSError) as e:
            logger.error(
                "%s call failed: %s: %s",
                type(self).__name__,
                type(e).__name__,
                str(e),
            )
            raise StoreUnavailableError(
                context={"store": type(self).__name__, "error_type": type(e).__name__},
            ) from e

    async def _lookup(self, operation: Callable[[], Awaitable[Optional[T]]]) -> LookupResult:
        """
        Run a read that yields a document or None, as a tagged result.
        """
        try:
            value = await self._call(operation)
        except StoreUnavailableError as e:
            return StoreError(cause=e.__cause__ or e)
        if value is None:
            return NotFound()
        return Found(value)
