"""
Hypertube API — Upload Staging Service
=======================================

What:  Accepts one multipart file field, validates it, and writes accepted
       files to the staging directory.
Why:   Handlers only ever see a validated, already persisted file, or an
       explicit rejection they can turn into an Envelope error.
How:   Declared MIME type checked against an allow-list, size bounded,
       optional magic-byte sniffing, then an async write with aiofiles.
Who:   The `staged_upload` dependency on multipart routes.

Outcomes:
    Accepted(descriptor)  → file written to staging_dir/<token><ext>
    Rejected(reason)      → nothing written; reasons:
        missing           no such field in the form
        not_a_file        the field is a plain form value
        unsupported_type  declared type is not image/png or image/jpeg
        too_large         over max_file_size
        content_mismatch  magic bytes disagree with the declared type

    A failed write is not a rejection: it raises FileStorageError.

Naming:
    <millisecond token><lower-cased original extension>, e.g. 1718000000123.jpg
    The token never goes backwards within one stager, so sequential stages
    never collide. Two processes staging in the same millisecond can.
"""

import logging
import os
import shutil
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import aiofiles
from starlette.datastructures import UploadFile

from hypertube.exceptions import FileStorageError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {"image/png", "image/jpeg"}

# Rejection reasons
MISSING = "missing"
NOT_A_FILE = "not_a_file"
UNSUPPORTED_TYPE = "unsupported_type"
TOO_LARGE = "too_large"
CONTENT_MISMATCH = "content_mismatch"


@dataclass(frozen=True)
class FileDescriptor:
    """A staged file, owned by the stager until a handler promotes or discards it."""

    temp_path: str
    original_extension: str
    mime_type: str
    size: int

    @property
    def filename(self) -> str:
        return Path(self.temp_path).name


@dataclass(frozen=True)
class Accepted:
    descriptor: FileDescriptor


@dataclass(frozen=True)
class Rejected:
    reason: str


StageResult = Union[Accepted, Rejected]


class UploadStager:
    """
    Validates and stages uploaded files.

    Attributes:
        staging_dir:    where accepted files are written
        max_file_size:  byte limit per file
        sniff_content:  verify magic bytes with python-magic
    """

    def __init__(self, staging_dir: str, max_file_size: int, sniff_content: bool = True):
        self.staging_dir = Path(staging_dir)
        self.max_file_size = max_file_size
        self.sniff_content = sniff_content
        self._last_token = 0
        self._token_lock = threading.Lock()

    def next_filename(self, extension: str) -> str:
        """Monotonic millisecond token plus the lower-cased extension."""
        with self._token_lock:
            token = max(int(time.time() * 1000), self._last_token + 1)
            self._last_token = token
        return f"{token}{extension.lower()}"

    def _sniff(self, content: bytes) -> str:
        import magic

        return magic.from_buffer(content[:2048], mime=True)

    async def stage(self, upload: Any) -> StageResult:
        """
        Validate one form field value and stage it.

        Args:
            upload: the form value, an UploadFile, a plain string, or None

        Raises:
            FileStorageError: the staging write failed
        """
        if upload is None:
            return Rejected(MISSING)
        if not isinstance(upload, UploadFile):
            return Rejected(NOT_A_FILE)

        mime_type = (upload.content_type or "").split(";")[0].strip().lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            logger.info("Upload rejected: unsupported type %r (%s)", mime_type, upload.filename)
            return Rejected(UNSUPPORTED_TYPE)

        # One byte over the limit is enough to know it is too large
        content = await upload.read(self.max_file_size + 1)
        if len(content) > self.max_file_size:
            logger.info("Upload rejected: over %d bytes (%s)", self.max_file_size, upload.filename)
            return Rejected(TOO_LARGE)

        if self.sniff_content:
            detected = self._sniff(content)
            if detected != mime_type:
                logger.info(
                    "Upload rejected: declared %s but content is %s (%s)",
                    mime_type,
                    detected,
                    upload.filename,
                )
                return Rejected(CONTENT_MISMATCH)

        extension = Path(upload.filename or "").suffix.lower()
        temp_path = self.staging_dir / self.next_filename(extension)

        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to stage upload at %s: %s", temp_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": str(temp_path), "os_error": str(e)},
            ) from e

        logger.info("Upload staged: %s (%d bytes, %s)", temp_path.name, len(content), mime_type)
        return Accepted(
            FileDescriptor(
                temp_path=str(temp_path),
                original_extension=extension,
                mime_type=mime_type,
                size=len(content),
            )
        )

    def discard(self, descriptor: Optional[FileDescriptor]) -> None:
        """Remove a staged file. Best effort: failures are logged, not raised."""
        if descriptor is None:
            return
        self.remove(descriptor.temp_path)

    def remove(self, path: Union[str, Path]) -> None:
        """Delete a staged or promoted file. Best effort, like discard()."""
        try:
            os.remove(path)
            logger.debug("Removed file: %s", path)
        except FileNotFoundError:
            logger.debug("Remove: file already gone: %s", path)
        except OSError as e:
            logger.warning("Failed to remove file %s: %s", path, str(e))

    def promote(self, descriptor: FileDescriptor, target_dir: str) -> Path:
        """
        Move a staged file into its permanent directory, keeping its name.

        Raises:
            FileStorageError: the move failed
        """
        target = Path(target_dir) / descriptor.filename
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(descriptor.temp_path, target)
        except OSError as e:
            logger.error("Failed to move %s to %s: %s", descriptor.temp_path, target, str(e))
            raise FileStorageError(
                message="Failed to store uploaded file.",
                context={"source": descriptor.temp_path, "target": str(target)},
            ) from e
        logger.info("Upload stored: %s", target)
        return target
