"""
Hypertube API — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for infrastructure-level failures.
Why:   Expected outcomes (movie not found, bad credentials, rejected upload)
       travel inside the response Envelope and are never raised. Everything
       in this module is a fault: it aborts the request and is turned into a
       non-200 response by the handlers registered in main.py.
How:   Each exception carries a message and optional context dict. The
       message is safe to return; the context is logged only.

Exception Hierarchy:
    HypertubeError (base)                → 500 Internal Server Error
    ├── AuthenticationRequiredError      → 401 Unauthorized
    ├── StoreUnavailableError            → 503 Service Unavailable
    ├── IdentityNotFoundError            → 500 Internal Server Error
    └── FileStorageError                 → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class HypertubeError(Exception):
    """
    Base exception for all Hypertube application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    # Envelope entry used in the fault body
    param = "server"
    msg = "error.internal"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class AuthenticationRequiredError(HypertubeError):
    """
    Raised when a route needs an identity and the session carries none.

    HTTP: 401 Unauthorized
    """

    param = "session"
    msg = "error.notAuthenticated"

    def __init__(
        self,
        message: str = "You must be logged in to access this resource.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreUnavailableError(HypertubeError):
    """
    Raised when the document store cannot be reached or a call to it fails.

    What:    Connection refused, pool exhausted, query failure after the
             retry policy gave up.
    HTTP:    503 Service Unavailable

    The driver error is chained as __cause__ so the fault handler logs the
    original exception unchanged.
    """

    param = "store"
    msg = "error.storeUnavailable"

    def __init__(
        self,
        message: str = "The data store is temporarily unavailable. Please try again later.",
        retry_after: int = 5,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class IdentityNotFoundError(HypertubeError):
    """
    Raised when the calling identity vanished between session resolution
    and the handler's own lookup.
    """

    param = "user"
    msg = "error.noUser"

    def __init__(
        self,
        identity_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if identity_id:
            ctx["identity_id"] = identity_id
        super().__init__(message="The current user could not be loaded.", context=ctx)


class FileStorageError(HypertubeError):
    """
    Raised when file system operations fail.

    What:    Could not write or move a file on the upload volume.
    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    param = "file"
    msg = "error.fileStorage"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
