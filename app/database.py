import hashlib
import logging

from sqlalchemy import create_engine
from app.core.config import settings
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

# sqlite connections are shared across the request threadpool
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for models
Base = declarative_base()

def init_db():
    """Create tables and, in demo mode, the demo user"""
    # register models on Base.metadata
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    if not settings.demo_mode:
        return
    db = SessionLocal()
    try:
        seed_demo_user(db)
    finally:
        db.close()


def seed_demo_user(db) -> bool:
    """Insert the demo user if the users table is empty. Returns True if created."""
    from app.models.user import User

    if db.query(User).count() > 0:
        return False
    db.add(User(
        username="demo_user",
        password=hashlib.sha256(b"password123").hexdigest(),
    ))
    db.commit()
    logger.info("Created demo user")
    return True
