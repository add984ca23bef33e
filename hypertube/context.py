"""
Hypertube API — Application Context
====================================

What:  The one container of everything a running application shares:
       settings, engine, stores, upload stager and services.
Why:   Nothing is a module-level global. create_app() builds one context,
       hands it to the middleware as a constructor argument and exposes it to
       handlers as `request.app.state.context`. Tests build their own.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from hypertube.config import Settings
from hypertube.database import create_engine_from_settings, create_session_factory
from hypertube.services.auth_service import AuthService
from hypertube.services.movie_service import MovieService
from hypertube.services.movie_store import MovieStore
from hypertube.services.session_store import SessionStore
from hypertube.services.upload_service import UploadStager
from hypertube.services.user_store import UserStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker
    users: UserStore
    movies: MovieStore
    sessions: SessionStore
    stager: UploadStager
    movie_service: MovieService
    auth_service: AuthService

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        engine = create_engine_from_settings(settings)
        session_factory = create_session_factory(engine)
        users = UserStore(session_factory, settings)
        movies = MovieStore(session_factory, settings)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            users=users,
            movies=movies,
            sessions=SessionStore(session_factory, settings),
            stager=UploadStager(
                staging_dir=settings.upload_staging_dir,
                max_file_size=settings.max_file_size,
                sniff_content=settings.upload_sniff_content,
            ),
            movie_service=MovieService(movies, users),
            auth_service=AuthService(users),
        )

    async def close(self) -> None:
        """Dispose the engine, closing every pooled connection."""
        await self.engine.dispose()
        logger.info("Store connections closed")
