import json
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from agroguard.config import get_settings

logger = logging.getLogger(__name__)


def safe_json_loads(value, default=None):
    """Safely parse JSON from a DB value.

    JSON columns normally come back as dict/list already; rows written by
    older clients may still hold the raw string.
    """
    if value is None:
        return default if default is not None else {}
    if not isinstance(value, str):
        return value
    value = value.strip()
    if not value:
        return default if default is not None else {}
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.warning("Failed to parse JSON from DB value: %.100s...", value)
        return default if default is not None else {}


class Base(DeclarativeBase):
    pass


def build_engine(url: str):
    """Create an engine; SQLite is shared across the request threads."""
    kwargs = {"echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every checkout sees an empty DB
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


settings = get_settings()

sync_engine = build_engine(settings.database_url)
SyncSessionLocal = sessionmaker(bind=sync_engine, expire_on_commit=False)


def init_db(engine=None):
    """Create tables for every registered model."""
    from agroguard.models import crop_record, user_settings  # noqa: F401

    Base.metadata.create_all(bind=engine or sync_engine)
