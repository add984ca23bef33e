"""
Hypertube API — Route Dependencies
===================================

What:  FastAPI dependencies giving handlers what the middleware put on the
       request: the AppContext, validator, session and identity, plus the
       upload staging step for multipart routes.
"""

from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import Depends, Request

from hypertube.context import AppContext
from hypertube.exceptions import AuthenticationRequiredError
from hypertube.middleware.session import SessionHandle
from hypertube.middleware.validation import RequestValidator
from hypertube.services.upload_service import StageResult


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_validator(request: Request) -> RequestValidator:
    validator: RequestValidator = request.state.validator
    validator.bind_path_params(request.path_params)
    return validator


def get_session(request: Request) -> SessionHandle:
    return request.state.session


def current_identity(request: Request) -> Optional[Dict[str, Any]]:
    """The logged-in user's document, or None."""
    return getattr(request.state, "identity", None)


def require_identity(
    identity: Optional[Dict[str, Any]] = Depends(current_identity),
) -> Dict[str, Any]:
    """
    Raises:
        AuthenticationRequiredError: no identity on this session (401)
    """
    if identity is None:
        raise AuthenticationRequiredError()
    return identity


def staged_upload(field: str) -> Callable[..., AsyncIterator[StageResult]]:
    """
    Dependency factory: stage the file sent in form field `field`.

    The handler receives Accepted(descriptor) or Rejected(reason). The form
    is closed once the response has been sent.
    """

    async def dependency(
        request: Request,
        context: AppContext = Depends(get_context),
    ) -> AsyncIterator[StageResult]:
        form = await request.form()
        try:
            yield await context.stager.stage(form.get(field))
        finally:
            await form.close()

    return dependency
