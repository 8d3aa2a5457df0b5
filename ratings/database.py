"""
Database engine + session factory.

Always initializes — defaults to SQLite for local dev, Postgres in production.
get_session() always returns a real session; unit_of_work() wraps one in a
commit-on-success / rollback-on-error scope.
"""
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from ratings.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Hosted Postgres often hands out postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

# SQLite needs different engine kwargs than Postgres
if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(bind=engine)


def get_session():
    """Return a new DB session."""
    return SessionLocal()


@contextmanager
def unit_of_work(session_factory=None):
    """
    Yield a session that commits only if the block exits normally.

    Any exception (including KeyboardInterrupt / timeouts) rolls the whole
    block back before propagating. The session is always closed.
    """
    session = (session_factory or get_session)()
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


def init_models():
    """Import every model module so Base.metadata knows the full schema."""
    import importlib
    importlib.import_module('ratings.models.catalog')
    importlib.import_module('ratings.models.scoring_run')
    importlib.import_module('ratings.models.scoring_profile')
    importlib.import_module('ratings.models.flashlight_score')
    return Base.metadata
