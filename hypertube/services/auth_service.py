"""
Hypertube API — Authentication Service
=======================================

What:  Credential check for the login route.
How:   The user document is loaded by login and its bcrypt hash compared in a
       worker thread, so a slow hash never blocks the event loop.
       Unknown login and wrong password give the same Envelope error.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import bcrypt

from hypertube.services.lookup import Found, StoreError
from hypertube.services.user_store import UserStore

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _check_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


class AuthService:
    def __init__(self, users: UserStore):
        self.users = users

    async def authenticate(self, login: str, password: str) -> Optional[Dict[str, Any]]:
        """
        Returns:
            The full user document, or None on bad credentials.

        Raises:
            StoreUnavailableError
        """
        result = await self.users.find_by_login(login)
        if isinstance(result, StoreError):
            result.raise_unavailable({"lookup": "user", "login": login})
        if not isinstance(result, Found):
            logger.info("Login failed: unknown login %r", login)
            return None

        matches = await asyncio.to_thread(_check_password, password, result.value.get("password") or "")
        if not matches:
            logger.info("Login failed: bad password for %r", login)
            return None
        return result.value
