"""
Hypertube API — Body Parser Middleware
=======================================

What:  Parses JSON and urlencoded request bodies into `request.state.body`.
How:   Pure ASGI. The body is read once, bounded by max_body_size, parsed,
       and the raw bytes are replayed to whatever reads the body further
       down (FastAPI body params, request.form()).

Outcomes:
    application/json                    → dict (must be an object)
    application/x-www-form-urlencoded   → dict of the last value per key
    anything else (multipart included)  → {} and the stream is untouched
    over max_body_size                  → 413
    malformed JSON / non-object JSON    → 400
"""

import json
import logging
from typing import Any, Dict
from urllib.parse import parse_qsl

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from hypertube.schemas.envelope import fault_response

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json"
FORM_TYPE = "application/x-www-form-urlencoded"


class BodyTooLarge(Exception):
    pass


class MalformedBody(Exception):
    pass


def parse_body(content_type: str, raw: bytes) -> Dict[str, Any]:
    """
    Raises:
        MalformedBody: the bytes do not parse as the declared type
    """
    if not raw.strip():
        return {}
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedBody("Body is not valid UTF-8") from e

    if content_type == JSON_TYPE:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedBody(f"Invalid JSON: {e.msg}") from e
        if not isinstance(parsed, dict):
            raise MalformedBody("JSON body must be an object")
        return parsed

    return dict(parse_qsl(text, keep_blank_values=True))


class BodyParserMiddleware:
    def __init__(self, app: ASGIApp, max_body_size: int = 102_400):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        state["body"] = {}

        headers = Headers(scope=scope)
        content_type = headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type not in (JSON_TYPE, FORM_TYPE):
            await self.app(scope, receive, send)
            return

        try:
            raw = await self._read_body(headers, receive)
            state["body"] = parse_body(content_type, raw)
        except BodyTooLarge:
            logger.warning("Request body over %d bytes rejected", self.max_body_size)
            response = fault_response(
                413,
                "body",
                "error.bodyTooLarge",
                f"Request body exceeds {self.max_body_size} bytes.",
            )
            await response(scope, receive, send)
            return
        except MalformedBody as e:
            logger.info("Malformed request body: %s", e)
            response = fault_response(400, "body", "error.malformedBody", str(e))
            await response(scope, receive, send)
            return

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": raw, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _read_body(self, headers: Headers, receive: Receive) -> bytes:
        declared = headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_body_size:
            raise BodyTooLarge()

        chunks = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_body_size:
                raise BodyTooLarge()
            chunks.append(chunk)
            more_body = message.get("more_body", False)
        return b"".join(chunks)
