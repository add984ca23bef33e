"""
Hypertube API — Response Envelope Schemas
==========================================

What:  Pydantic models for the uniform response shape of every handler.
Why:   Clients parse one structure for everything: `error` is always a list
       of {param, msg}, empty on success. Domain failures (movie not found,
       validation, bad credentials) ride in that list with HTTP 200; faults
       reuse the same shape with a non-200 status.

Example success:
    {"error": [], "user": {"id": "u1", "password": "", ...}, "movie": {...}}

Example domain error:
    {"error": [{"param": "movie", "msg": "error.noMovie"}]}

Example fault (503):
    {"error": [{"param": "store", "msg": "error.storeUnavailable"}],
     "message": "The data store is temporarily unavailable...",
     "request_id": "a1b2c3d4"}
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from hypertube.middleware.request_id import request_id_var


class FieldError(BaseModel):
    """One entry of the envelope's error list."""

    param: str = Field(description="Request field or resource the error refers to")
    msg: str = Field(description="Translation key, e.g. 'error.noMovie'")


class Envelope(BaseModel):
    """
    What:  Uniform handler response `{error, ...payload}`.
    How:   Payload fields are pydantic extras, so each handler attaches its
           own keys (`user`, `movie`, `picture`) without a model per route.
    """

    model_config = ConfigDict(extra="allow")

    error: List[FieldError] = Field(default_factory=list)

    @classmethod
    def failure(cls, param: str, msg: str) -> "Envelope":
        return cls(error=[FieldError(param=param, msg=msg)])

    @classmethod
    def from_errors(cls, errors: Iterable[Mapping[str, str]]) -> "Envelope":
        return cls(error=[FieldError(**dict(e)) for e in errors])

    def to_response(self, status_code: int = 200) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=jsonable_encoder(self.model_dump()))


class ErrorResponse(BaseModel):
    """
    What:  Body of every fault response (non-200).
    Why:   Same `error` list as the Envelope, plus a human message and the
           request id for support tickets.
    """

    error: List[FieldError] = Field(description="Single entry naming the failed component")
    message: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and store status."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Store connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


def fault_response(
    status_code: int,
    param: str,
    msg: str,
    message: str,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build a fault response in the ErrorResponse shape."""
    body: Dict[str, Any] = ErrorResponse(
        error=[FieldError(param=param, msg=msg)],
        message=message,
        request_id=request_id_var.get(""),
    ).model_dump()
    return JSONResponse(status_code=status_code, content=body, headers=headers)
