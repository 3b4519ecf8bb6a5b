from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import get_settings
from .logging_config import get_logger

logger = get_logger(__name__)

DATABASE_URL = get_settings().resolved_database_url()

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def create_db_and_tables():
    # Importing models registers every table on Base.metadata
    from . import models  # noqa: F401

    logger.info("create_tables", database=engine.url.render_as_string(hide_password=True))
    Base.metadata.create_all(bind=engine)
