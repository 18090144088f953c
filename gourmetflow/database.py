import logging
from collections.abc import Generator

from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .config import get_settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    # in-memory databases live on a single connection
    if make_url(url).database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


database_url = get_settings().database_url
engine = create_engine(database_url, echo=False, **_engine_options(database_url))


def init_db() -> None:
    SQLModel.metadata.create_all(engine)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
