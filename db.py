# db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from models import Base


class Database:
    """
    Owns the engine and session factory. Built once by the entry point and
    handed to every service that needs storage.
    """

    def __init__(self, url: str, pool_size: int = 5, max_overflow: int = 2, **engine_kwargs):
        # Heroku-style URLs need the SQLAlchemy 1.4+ scheme
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)

        options = {"pool_pre_ping": True}
        if not url.startswith("sqlite"):
            options.update(pool_size=pool_size, max_overflow=max_overflow, pool_recycle=1800)
        options.update(engine_kwargs)

        self.url = url
        self.engine = create_engine(url, **options)
        self.SessionLocal = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    def session(self) -> Session:
        return self.SessionLocal()

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
