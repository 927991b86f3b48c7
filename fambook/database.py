import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from fambook.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    options = {"connect_args": {"check_same_thread": False}}

    # In-memory databases live inside one connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool

    return options


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


# --------------------------------------------------
# LIFECYCLE
# --------------------------------------------------
def init_db():
    """
    Registers every model and creates missing tables.
    Called once from the application lifespan.
    """
    # Import models so SQLAlchemy registers tables
    from fambook.models import (  # noqa: F401
        user,
        education,
        work_history,
        life_event,
        family,
        family_member,
        family_root,
        root_node,
        root_relation,
        post,
        album,
        media,
        comment,
        like,
        memory,
        notification,
        special_day,
    )

    Base.metadata.create_all(bind=engine)
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))


def dispose_db():
    engine.dispose()
    logger.info("Database connection pool released")


# --------------------------------------------------
# SESSIONS
# --------------------------------------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Commits everything added inside the block at once.
    Any exception rolls back every statement of the block.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
