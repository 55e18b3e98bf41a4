"""Document store over SQLAlchemy.

Every operation runs on its own short-lived session inside the worker
threadpool, so a request handler suspends while the query is in flight
and independent lookups can be awaited together (see
:func:`locallibrary.concurrency.parallel`).
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from starlette.concurrency import run_in_threadpool

from locallibrary import config
from locallibrary.database import Base, make_engine
from locallibrary.errors import NotFoundError
from locallibrary.logging_setup import get_logger

log = get_logger(__name__)


class Store:
    """Process-wide handle on the catalog collections.

    Build one per process, call :meth:`connect` once at startup and
    :meth:`close` at shutdown. Entities returned by the query methods are
    detached from their session; relationships listed in ``populate`` are
    loaded eagerly so templates can walk them afterwards.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine if engine is not None else make_engine()
        self._sessionmaker = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def connect(self, attempts: Optional[int] = None, delay: Optional[float] = None) -> None:
        attempts = attempts or config.connect_attempts()
        delay = config.connect_retry_delay() if delay is None else delay
        for attempt in range(1, attempts + 1):
            try:
                Base.metadata.create_all(bind=self.engine)
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                log.error("Store connection error (attempt %s/%s): %s", attempt, attempts, exc)
                if attempt == attempts:
                    raise
                time.sleep(delay)
            else:
                log.info("Connected to store %s", self.engine.url.render_as_string(hide_password=True))
                return

    def close(self) -> None:
        self.engine.dispose()
        log.info("Store connection closed")

    @contextmanager
    def session(self):
        db = self._sessionmaker()
        try:
            yield db
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Async operations
    # ------------------------------------------------------------------
    async def find_all(
        self,
        model,
        filter: Optional[Mapping[str, Any]] = None,
        order_by: Iterable[str] = (),
        populate: Iterable[str] = (),
    ) -> list:
        return await run_in_threadpool(self._find_all, model, filter, tuple(order_by), tuple(populate))

    async def find_one(self, model, filter: Mapping[str, Any], populate: Iterable[str] = ()):
        return await run_in_threadpool(self._find_one, model, filter, tuple(populate))

    async def find_by_id(self, model, id: str, populate: Iterable[str] = ()):
        return await run_in_threadpool(self._find_one, model, {"id": id}, tuple(populate))

    async def count(self, model, filter: Optional[Mapping[str, Any]] = None) -> int:
        return await run_in_threadpool(self._count, model, filter)

    async def insert(self, model, values: Mapping[str, Any]):
        return await run_in_threadpool(self._insert, model, values)

    async def update_by_id(self, model, id: str, values: Mapping[str, Any]):
        return await run_in_threadpool(self._update_by_id, model, id, values)

    async def delete_by_id(self, model, id: str):
        return await run_in_threadpool(self._delete_by_id, model, id)

    # ------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------
    @staticmethod
    def _query(session: Session, model, filter, populate):
        query = session.query(model)
        for name in populate:
            query = query.options(selectinload(getattr(model, name)))
        if filter:
            # A collection relationship matches when it contains the given id.
            relationships = inspect(model).relationships
            plain = {}
            for key, value in filter.items():
                if key in relationships and relationships[key].uselist:
                    query = query.filter(getattr(model, key).any(id=value))
                else:
                    plain[key] = value
            query = query.filter_by(**plain)
        return query

    @staticmethod
    def _ordering(model, order_by):
        columns = []
        for spec in order_by:
            if spec.startswith("-"):
                columns.append(getattr(model, spec[1:]).desc())
            else:
                columns.append(getattr(model, spec).asc())
        return columns

    @staticmethod
    def _assign(session: Session, entity, values):
        # Collection relationships arrive as identifier lists and are
        # resolved to the referenced entities; every id must resolve.
        relationships = inspect(type(entity)).relationships
        for key, value in values.items():
            if key in relationships and relationships[key].uselist:
                target = relationships[key].mapper.class_
                ids = list(dict.fromkeys(value or []))
                value = session.query(target).filter(target.id.in_(ids)).all() if ids else []
                if len(value) != len(ids):
                    missing = sorted(set(ids) - {item.id for item in value})
                    raise NotFoundError(f"{target.__name__} not found: {', '.join(missing)}")
            setattr(entity, key, value)

    def _find_all(self, model, filter, order_by, populate):
        with self.session() as db:
            query = self._query(db, model, filter, populate)
            if order_by:
                query = query.order_by(*self._ordering(model, order_by))
            return query.all()

    def _find_one(self, model, filter, populate):
        with self.session() as db:
            return self._query(db, model, filter, populate).first()

    def _count(self, model, filter):
        with self.session() as db:
            return self._query(db, model, filter, ()).count()

    def _insert(self, model, values):
        with self.session() as db:
            entity = model()
            self._assign(db, entity, values)
            db.add(entity)
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            return entity

    def _update_by_id(self, model, id, values):
        with self.session() as db:
            entity = db.get(model, id)
            if entity is None:
                return None
            self._assign(db, entity, values)
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            return entity

    def _delete_by_id(self, model, id):
        with self.session() as db:
            entity = db.get(model, id)
            if entity is None:
                return None
            db.delete(entity)
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            return entity


__all__ = ["Store"]
