"""
Hypertube API — Movie Route Handlers
=====================================

What:  GET /api/movie/info/{idImdb}, the movie document together with the
       calling user's (redacted) record.

Responses:
    200 {error: [], user, movie}
    200 {error: [{param: "movie", msg: "error.noMovie"}]}
    401 no identity on the session
    503 store unavailable
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from hypertube.context import AppContext
from hypertube.dependencies import get_context, require_identity
from hypertube.schemas.envelope import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/movie", tags=["Movies"])


@router.get(
    "/info/{id_imdb}",
    responses={
        401: {"description": "Not logged in", "model": ErrorResponse},
        503: {"description": "Store unavailable", "model": ErrorResponse},
    },
    summary="Movie details for the logged-in user",
)
async def get_info(
    id_imdb: str,
    identity: Dict[str, Any] = Depends(require_identity),
    context: AppContext = Depends(get_context),
) -> JSONResponse:
    envelope = await context.movie_service.get_info(id_imdb, identity["id"])
    return envelope.to_response()
