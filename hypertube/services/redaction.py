"""Outbound redaction of identity documents."""

from typing import Any, Dict

SECRET_FIELDS = ("password",)


def redact_identity(document: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a user document with every secret field blanked to ""."""
    redacted = dict(document)
    for name in SECRET_FIELDS:
        redacted[name] = ""
    return redacted
