from locallibrary.main import app
from locallibrary.database import get_store, make_engine
from locallibrary.models import Author, Book, BookInstance, Genre
from locallibrary.store import Store

import pytest
from sqlalchemy.orm import selectinload
from fastapi.testclient import TestClient


class Factory:
    """
    Seeds and inspects the test store directly, bypassing the HTTP layer.

    Entities are committed on their own session and come back detached with
    their columns loaded, so tests can read ``entity.id`` and ``entity.url``.
    """

    def __init__(self, store):
        self.store = store

    def _add(self, entity):
        with self.store.session() as db:
            db.add(entity)
            db.commit()
            return entity

    def author(self, first_name="Jane", family_name="Austen", **fields):
        return self._add(Author(first_name=first_name, family_name=family_name, **fields))

    def genre(self, name="Fiction"):
        return self._add(Genre(name=name))

    def book(self, author, title="Emma", genres=(), **fields):
        fields.setdefault("summary", "A novel about youthful hubris.")
        fields.setdefault("isbn", "9780141439587")
        with self.store.session() as db:
            book = Book(title=title, author_id=author.id, **fields)
            ids = [genre.id for genre in genres]
            book.genre = db.query(Genre).filter(Genre.id.in_(ids)).all() if ids else []
            db.add(book)
            db.commit()
            return book

    def instance(self, book, status="Available", imprint="Penguin Classics, 2003", **fields):
        return self._add(BookInstance(book_id=book.id, status=status, imprint=imprint, **fields))

    def count(self, model, **filter):
        with self.store.session() as db:
            return db.query(model).filter_by(**filter).count()

    def get(self, model, id, *populate):
        with self.store.session() as db:
            query = db.query(model)
            for name in populate:
                query = query.options(selectinload(getattr(model, name)))
            return query.filter(model.id == id).first()


@pytest.fixture
def store(tmp_path):
    """
    Fresh SQLite store for each test.

    Internal Working:
    1. Each test gets its own database file under pytest's tmp_path
    2. connect() creates the schema, exactly as the application lifespan does
    3. After the test the engine is disposed
    """
    store = Store(make_engine(f"sqlite:///{tmp_path / 'test.db'}"))
    store.connect(attempts=1)
    yield store
    store.close()


@pytest.fixture
def factory(store):
    return Factory(store)


@pytest.fixture
def client(store):
    """
    Test client wired to the per-test store.

    The store dependency is overridden the same way a database session
    would be, so the application lifespan (and its real database) is never
    started.
    """
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
