"""
Hypertube API — User Routes
============================

POST /api/user/picture  multipart, field `picture`, login required

    200 {error: [], picture: "/static/uploads/<name>"}
    200 {error: [{param: "picture", msg: "error.noPicture"}]}
        no file, or a file the stager rejected (both look the same)
    500 the file could not be written or moved, or the user vanished
    503 the store failed while saving the picture; the stored file is removed
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from hypertube.context import AppContext
from hypertube.dependencies import get_context, require_identity, staged_upload
from hypertube.exceptions import IdentityNotFoundError
from hypertube.schemas.envelope import Envelope
from hypertube.services.upload_service import Rejected, StageResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["Users"])

PICTURE_URL_PREFIX = "/static/uploads/"


@router.post("/picture", summary="Replace the profile picture")
async def upload_picture(
    identity: Dict[str, Any] = Depends(require_identity),
    staged: StageResult = Depends(staged_upload("picture")),
    context: AppContext = Depends(get_context),
) -> JSONResponse:
    if isinstance(staged, Rejected):
        logger.info("Picture upload rejected for %s: %s", identity["id"], staged.reason)
        return Envelope.failure("picture", "error.noPicture").to_response()

    descriptor = staged.descriptor
    try:
        stored = context.stager.promote(descriptor, context.settings.uploads_dir)
    except Exception:
        context.stager.discard(descriptor)
        raise

    picture = PICTURE_URL_PREFIX + stored.name
    try:
        if not await context.users.set_picture(identity["id"], picture):
            raise IdentityNotFoundError(identity_id=identity["id"])
    except Exception:
        # no user references the file
        context.stager.remove(stored)
        raise
    return Envelope(error=[], picture=picture).to_response()
