"""
Hypertube API — Movie SQLAlchemy Model
=======================================

What:  ORM model for the `movies` collection.
How:   A movie is keyed by its IMDb identifier; every other attribute
       (title, year, rating, genres, torrents, ...) lives in a JSON document
       column. The pipeline only ever reads it by key.

Query Patterns:
    - Movie info: SELECT ... WHERE id_imdb = :id  → primary key lookup
"""

from typing import Any, Dict

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from hypertube.database import Base


class Movie(Base):
    """A movie document, immutable from the request pipeline's point of view."""

    __tablename__ = "movies"

    # e.g. "tt0133093"
    id_imdb: Mapped[str] = mapped_column(String(16), primary_key=True)

    attributes: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def to_document(self) -> Dict[str, Any]:
        """Attributes merged with the external identifier under `idImdb`."""
        document = dict(self.attributes or {})
        document["idImdb"] = self.id_imdb
        return document

    def __repr__(self) -> str:
        return f"<Movie(id_imdb='{self.id_imdb}')>"
