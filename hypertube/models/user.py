"""
Hypertube API — User SQLAlchemy Model
======================================

What:  ORM model for the `users` collection (identities).
Why:   The pipeline reads identities for session resolution and for the
       composed responses of resource handlers.
Who:   Written by the user-management side of the application; read by the
       UserStore.

Sensitive fields:
    `password` holds the bcrypt hash. It is part of the stored document but
    every outbound representation blanks it (see services.redaction).
"""

from typing import Any, Dict, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from hypertube.database import Base


class User(Base):
    """Represents a registered identity."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Unique handle used for local login
    login: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    firstname: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    lastname: Mapped[str] = mapped_column(String(128), nullable=False, default="")

    # Public URL of the profile picture, set by the picture upload route
    picture: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)

    lang: Mapped[str] = mapped_column(String(8), nullable=False, default="en")

    # bcrypt hash; never leaves the process unredacted
    password: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    def to_document(self) -> Dict[str, Any]:
        """Plain mapping of every stored field, sensitive ones included."""
        return {
            "id": self.id,
            "login": self.login,
            "email": self.email,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "picture": self.picture,
            "lang": self.lang,
            "password": self.password,
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, login='{self.login}')>"
