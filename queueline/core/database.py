"""
Database configuration and session management
"""

from sqlmodel import SQLModel, Session, create_engine
import structlog

from queueline.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # Engine calls may come from worker threads holding different queue locks
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    connect_args=connect_args,
)


def init_db():
    """Create missing tables. Deployed databases are migrated with alembic."""
    # Register table models on the shared metadata
    import queueline.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


def get_session():
    """Yield a database session bound to the application engine"""
    with Session(engine) as session:
        yield session
