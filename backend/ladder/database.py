"""
Engine and session wiring for the finals backend.

Configuration comes from the environment (a local ``.env`` is honoured):

- ``DATABASE_URL``: SQLAlchemy URL, defaults to a SQLite file next to the app
- ``SQL_ECHO``: log every statement when truthy
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ladder.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        path = url.replace("sqlite:///", "", 1)
        if path and path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        return {"connect_args": {"check_same_thread": False}}
    # Long-lived Postgres pools outlast server-side idle timeouts
    return {"pool_pre_ping": True}


engine: Engine = create_engine(DATABASE_URL, echo=SQL_ECHO, **_engine_options(DATABASE_URL))


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request"""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create the finals tables that do not exist yet"""
    # Models must be imported so they are registered on SQLModel.metadata
    from ladder.models import FinalBracket, FinalMatch, FinalRoundEntry  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.debug("Finals tables ensured on %s", engine.url)
