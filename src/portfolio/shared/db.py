from collections.abc import Iterator
from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from portfolio.models.schema import *  # noqa: F403 # SQLModel subclasses need to be in memory
from portfolio.shared import Logger, load_config

logger = Logger(__name__).get_logger()

config = load_config()


def build_engine(database_uri: str) -> Engine:
    kwargs = {}
    if database_uri.startswith("sqlite"):
        # Request handlers run in the threadpool
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_uri in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_uri, **kwargs)


engine: Engine = build_engine(config.database.path)
SQLModel.metadata.create_all(engine)
logger.debug("Database ready at %s", engine.url)


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
