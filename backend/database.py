import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool


logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns the engine and session factory for one store connection."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self.engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    def connect(self) -> None:
        if self.engine is not None:
            return

        options: dict = {'echo': self.echo}
        if self.url.startswith('sqlite'):
            options['connect_args'] = {'check_same_thread': False}
            if ':memory:' in self.url or self.url == 'sqlite://':
                options['poolclass'] = StaticPool

        self.engine = create_engine(self.url, **options)
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
        )
        logger.info('Connected to %s', self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self._session_factory = None

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError('Database.connect() must be called before opening a session.')
        return self._session_factory()

    def create_schema(self) -> None:
        # Imported for their side effect of registering tables on Base.metadata.
        from backend.models import request, session, user  # noqa: F401

        if self.engine is None:
            raise RuntimeError('Database.connect() must be called before creating the schema.')
        Base.metadata.create_all(bind=self.engine)
