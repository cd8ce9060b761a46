from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine

from ..core.config import settings
from ..db.models import StoredDocument  # noqa: F401  registers the table


def build_engine(db_url: str, echo: bool = False) -> Engine:
    engine_kwargs = {}
    if db_url.startswith("sqlite"):
        # SQLite specific connect args
        engine_kwargs.update({
            "connect_args": {"check_same_thread": False}
        })
    else:
        # Better resiliency for managed Postgres
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
            "pool_size": 5,
            "max_overflow": 10,
        })
    return create_engine(db_url, echo=echo, **engine_kwargs)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def create_db_and_tables(target: Engine = None):
    SQLModel.metadata.create_all(target or engine)


