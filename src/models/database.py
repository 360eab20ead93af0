from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import settings
from models.sqlite_config import register_sqlite_pragmas, sqlite_connect_args


class Base(DeclarativeBase):
    pass


engine = create_engine(
    settings.database_url,
    connect_args=sqlite_connect_args(settings.database_url),
    echo=settings.debug,
)
register_sqlite_pragmas(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    import models.domain  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)
