"""
Hypertube API — Input Validation
=================================

What:  An assertion-style validator attached to every request as
       `request.state.validator`.
How:   Checks run immediately and record `{param, msg}` entries on the
       validator. Handlers read `errors()` and return them in an Envelope
       with HTTP 200; nothing here raises.

Usage:
    validator.check("login", "error.noLogin").not_empty()
    validator.check("email", "error.badEmail").is_email()
    validator.sanitize("login").trim().escape()
    if validator.has_errors:
        return Envelope.from_errors(validator.errors())

Values are looked up in path params, then the parsed body, then the query
string. Sanitized values shadow all three.
"""

import html
import re
from typing import Any, Dict, List, Mapping, Optional

from starlette.datastructures import QueryParams
from starlette.types import ASGIApp, Receive, Scope, Send

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
INT_PATTERN = re.compile(r"^[+-]?\d+$")

_MISSING = object()


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class ValidationChain:
    """Checks for one field; every failing check records one error."""

    def __init__(self, validator: "RequestValidator", param: str, msg: str):
        self.validator = validator
        self.param = param
        self.msg = msg

    @property
    def text(self) -> str:
        return _as_text(self.validator.value(self.param))

    def _assert(self, passed: bool) -> "ValidationChain":
        if not passed:
            self.validator.add_error(self.param, self.msg)
        return self

    def not_empty(self) -> "ValidationChain":
        return self._assert(bool(self.text.strip()))

    def is_length(self, min: int = 0, max: Optional[int] = None) -> "ValidationChain":
        length = len(self.text)
        return self._assert(length >= min and (max is None or length <= max))

    def is_email(self) -> "ValidationChain":
        return self._assert(bool(EMAIL_PATTERN.match(self.text)))

    def matches(self, pattern: str, flags: int = 0) -> "ValidationChain":
        return self._assert(re.search(pattern, self.text, flags) is not None)

    def is_int(self) -> "ValidationChain":
        return self._assert(bool(INT_PATTERN.match(self.text)))


class SanitizerChain:
    """Rewrites one field's value in place."""

    def __init__(self, validator: "RequestValidator", param: str):
        self.validator = validator
        self.param = param

    def _apply(self, value: Any) -> "SanitizerChain":
        self.validator.set_value(self.param, value)
        return self

    def trim(self, chars: Optional[str] = None) -> "SanitizerChain":
        return self._apply(_as_text(self.validator.value(self.param)).strip(chars))

    def escape(self) -> "SanitizerChain":
        return self._apply(html.escape(_as_text(self.validator.value(self.param)), quote=True))

    def to_int(self) -> "SanitizerChain":
        """Non-numeric values become None."""
        text = _as_text(self.validator.value(self.param)).strip()
        return self._apply(int(text) if INT_PATTERN.match(text) else None)


class RequestValidator:
    def __init__(
        self,
        body: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
        path_params: Optional[Mapping[str, Any]] = None,
    ):
        self.body = body or {}
        self.query = query or {}
        self.path_params = dict(path_params or {})
        self._sanitized: Dict[str, Any] = {}
        self._errors: List[Dict[str, str]] = []

    def bind_path_params(self, path_params: Mapping[str, Any]) -> None:
        # Path params are only known once the router matched
        self.path_params = dict(path_params)

    def value(self, param: str) -> Any:
        if param in self._sanitized:
            return self._sanitized[param]
        for source in (self.path_params, self.body, self.query):
            found = source.get(param, _MISSING)
            if found is not _MISSING:
                return found
        return None

    def set_value(self, param: str, value: Any) -> None:
        self._sanitized[param] = value

    def add_error(self, param: str, msg: str) -> None:
        self._errors.append({"param": param, "msg": msg})

    def check(self, param: str, msg: str) -> ValidationChain:
        return ValidationChain(self, param, msg)

    def sanitize(self, param: str) -> SanitizerChain:
        return SanitizerChain(self, param)

    def errors(self) -> List[Dict[str, str]]:
        return [dict(e) for e in self._errors]

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)


class ValidationMiddleware:
    """Attaches a fresh RequestValidator over the parsed body and query string."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            state = scope.setdefault("state", {})
            state["validator"] = RequestValidator(
                body=state.get("body", {}),
                query=QueryParams(scope.get("query_string", b"")),
            )
        await self.app(scope, receive, send)
