"""
Hypertube API — Session / Identity Middleware
==============================================

What:  Resolves the session cookie to a session record and the identity it
       is bound to, for every request.
How:   Pure ASGI, so it can write Set-Cookie and touch the session when the
       response starts, after the handler ran.

Cookie:
    hypertube.sid=<session id>.<signature>; Path=/; HttpOnly; Max-Age=...
    signature = base64url(HMAC-SHA256(secret, session id)), unpadded

Per request:
    1. Cookie absent, badly signed, unknown or expired → new session record,
       new cookie on the response
    2. Valid → the stored record
    3. identity_ref set → user document loaded; a dangling ref yields None
    4. request.state.session = SessionHandle, request.state.identity = doc
    5. Response start → session re-saved (rolling expiry), or the cookie is
       cleared if the handler destroyed the session

    A store failure in 1-3 is fatal: 503 from here, the handler never runs.
    A failed touch in 5 is only logged; the response is already decided.

    /health bypasses all of this: probes carry no cookie and must reach the
    store check even when the store is down.
"""

import base64
import hashlib
import hmac
import logging
from http.cookies import SimpleCookie
from typing import Any, Dict, Optional, Tuple

from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import cookie_parser
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from hypertube.context import AppContext
from hypertube.exceptions import StoreUnavailableError
from hypertube.schemas.envelope import fault_response
from hypertube.services.lookup import Found, StoreError
from hypertube.services.session_store import SessionRecord, SessionStore

logger = logging.getLogger(__name__)

SESSIONLESS_PATHS = frozenset({"/health"})


def _signature(session_id: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), session_id.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def sign(session_id: str, secret: str) -> str:
    return f"{session_id}.{_signature(session_id, secret)}"


def unsign(value: str, secret: str) -> Optional[str]:
    """The session id if the signature matches, else None."""
    session_id, sep, signature = value.rpartition(".")
    if not sep or not session_id:
        return None
    if not hmac.compare_digest(signature, _signature(session_id, secret)):
        return None
    return session_id


class SessionHandle:
    """
    The current request's session, as seen by handlers.

    Handlers never touch the store for sessions directly; they go through
    bind_identity() (login) and destroy() (logout).
    """

    def __init__(self, record: SessionRecord, store: SessionStore, is_new: bool = False):
        self.record = record
        self.store = store
        self.is_new = is_new
        self.destroyed = False

    @property
    def session_id(self) -> str:
        return self.record.session_id

    @property
    def identity_ref(self) -> Optional[str]:
        return self.record.identity_ref

    @property
    def data(self) -> Dict[str, Any]:
        return self.record.data

    async def bind_identity(self, identity_id: Optional[str]) -> None:
        """
        Attach (or with None, detach) an identity and save immediately.

        Raises:
            StoreUnavailableError
        """
        self.record.identity_ref = identity_id
        await self.store.save(self.record)

    async def destroy(self) -> None:
        """
        Raises:
            StoreUnavailableError
        """
        await self.store.destroy(self.record.session_id)
        self.destroyed = True


class SessionMiddleware:
    def __init__(self, app: ASGIApp, context: AppContext):
        self.app = app
        self.context = context

    @property
    def cookie_name(self) -> str:
        return self.context.settings.session_cookie_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in SESSIONLESS_PATHS:
            await self.app(scope, receive, send)
            return

        try:
            record, is_new = await self._resolve_session(scope)
            identity = await self._resolve_identity(record)
        except StoreUnavailableError as e:
            logger.error(
                "Session resolution failed: %s",
                e.message,
                exc_info=e.__cause__ or e,
            )
            response = fault_response(
                503,
                e.param,
                e.msg,
                e.message,
                headers={"Retry-After": str(e.retry_after)},
            )
            await response(scope, receive, send)
            return

        handle = SessionHandle(record, self.context.sessions, is_new=is_new)
        state = scope.setdefault("state", {})
        state["session"] = handle
        state["identity"] = identity

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                await self._on_response_start(handle, MutableHeaders(scope=message))
            await send(message)

        await self.app(scope, receive, send_wrapper)

    async def _resolve_session(self, scope: Scope) -> Tuple[SessionRecord, bool]:
        sessions = self.context.sessions
        cookies = cookie_parser(Headers(scope=scope).get("cookie", ""))
        raw = cookies.get(self.cookie_name)

        if raw:
            session_id = unsign(raw, self.context.settings.session_secret)
            if session_id is None:
                logger.info("Session cookie with a bad signature ignored")
            else:
                record = await sessions.get(session_id)
                if record is not None:
                    return record, False
                logger.debug("Session %s... unknown or expired", session_id[:8])

        return await sessions.create(), True

    async def _resolve_identity(self, record: SessionRecord) -> Optional[Dict[str, Any]]:
        if not record.identity_ref:
            return None
        result = await self.context.users.find_by_id(record.identity_ref)
        if isinstance(result, StoreError):
            result.raise_unavailable({"lookup": "identity", "identity_ref": record.identity_ref})
        if isinstance(result, Found):
            return result.value
        logger.warning(
            "Session %s... refers to missing user %s",
            record.session_id[:8],
            record.identity_ref,
        )
        return None

    async def _on_response_start(self, handle: SessionHandle, headers: MutableHeaders) -> None:
        if handle.destroyed:
            headers.append("set-cookie", self._cookie_header("", max_age=0))
            return

        if not handle.is_new:
            try:
                await self.context.sessions.touch(handle.record)
            except StoreUnavailableError as e:
                logger.warning("Session touch failed for %s...: %s", handle.session_id[:8], e.message)

        if handle.is_new:
            signed = sign(handle.session_id, self.context.settings.session_secret)
            headers.append(
                "set-cookie",
                self._cookie_header(signed, max_age=self.context.settings.session_max_age),
            )

    def _cookie_header(self, value: str, max_age: int) -> str:
        cookie: SimpleCookie = SimpleCookie()
        cookie[self.cookie_name] = value
        morsel = cookie[self.cookie_name]
        morsel["path"] = "/"
        morsel["httponly"] = True
        morsel["max-age"] = max_age
        return cookie.output(header="").strip()
