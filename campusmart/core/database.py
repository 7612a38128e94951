from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    # Naive UTC everywhere; SQLite drops tzinfo on the way back anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_database_url(db_url: str) -> str:
    # Render/Heroku hand out 'postgres://', but SQLAlchemy requires 'postgresql://'
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    return db_url


def create_db_engine(db_url: str) -> Engine:
    db_url = normalize_database_url(db_url)
    return create_engine(
        db_url,
        # "check_same_thread" is ONLY for SQLite
        connect_args={"check_same_thread": False} if db_url.startswith("sqlite") else {},
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False: repositories hand detached rows back to the workflows
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def init_db(engine: Engine) -> None:
    # Import models so they register on Base.metadata
    from campusmart.models import listing, otp, payment, user  # noqa: F401

    Base.metadata.create_all(bind=engine)
