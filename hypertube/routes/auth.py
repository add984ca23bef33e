"""
Hypertube API — Authentication Routes
======================================

What:  Session login and logout.

POST /api/auth/login   body {login, password}, JSON or urlencoded
    200 {error: [], user}                           identity bound to session
    200 {error: [{param: "login", msg: ...}, ...]}  validation / bad credentials
    503 store unavailable (lookup or session save)

POST /api/auth/logout
    200 {error: []}, session destroyed and cookie cleared
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from hypertube.context import AppContext
from hypertube.dependencies import get_context, get_session, get_validator
from hypertube.middleware.session import SessionHandle
from hypertube.middleware.validation import RequestValidator
from hypertube.schemas.envelope import Envelope
from hypertube.services.redaction import redact_identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", summary="Log in and bind the user to the session")
async def login(
    validator: RequestValidator = Depends(get_validator),
    session: SessionHandle = Depends(get_session),
    context: AppContext = Depends(get_context),
) -> JSONResponse:
    validator.check("login", "error.noLogin").not_empty()
    validator.check("password", "error.noPassword").not_empty()
    if validator.has_errors:
        return Envelope.from_errors(validator.errors()).to_response()

    validator.sanitize("login").trim()
    user = await context.auth_service.authenticate(
        validator.value("login"),
        str(validator.value("password")),
    )
    if user is None:
        return Envelope.failure("login", "error.badCredentials").to_response()

    await session.bind_identity(user["id"])
    logger.info("User %s logged in", user["id"])
    return Envelope(error=[], user=redact_identity(user)).to_response()


@router.post("/logout", summary="Destroy the current session")
async def logout(session: SessionHandle = Depends(get_session)) -> JSONResponse:
    if session.identity_ref:
        logger.info("User %s logged out", session.identity_ref)
    await session.destroy()
    return Envelope(error=[]).to_response()
