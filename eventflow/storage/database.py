import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


def _engine_options(database_url: str) -> dict:
    if database_url in IN_MEMORY_SQLITE_URLS:
        # One shared connection, or each session would see its own empty database
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def create_session_factory(database_url: str, create_tables: bool = False) -> sessionmaker:
    """
    Session factory for the record collections table.

    Args:
        database_url: SQLAlchemy URL
        create_tables: create the schema directly instead of through Alembic
    """
    engine: Engine = create_engine(database_url, **_engine_options(database_url))
    logger.info(f"SQL engine created: dialect={engine.dialect.name}")

    if create_tables:
        Base.metadata.create_all(bind=engine)
        logger.info("record_collections table ensured")

    return sessionmaker(bind=engine, expire_on_commit=False)
