from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from locallibrary import config


Base = declarative_base()


def make_engine(url: str = None) -> Engine:
    """
    Build the process-wide engine for the given database URL.

    SQLite connections are shared across the worker threads that run store
    operations, so the same-thread check is turned off for that driver.
    """
    url = url or config.database_url()
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
    )


def get_store(request: Request):
    """
    Dependency function that provides the application's document store.

    The store is created once by the application lifespan and kept on
    ``app.state``; every request reuses it. Tests replace this dependency
    through ``app.dependency_overrides``.
    """
    return request.app.state.store
