import uuid
from typing import Literal, get_args
from datetime import date

from locallibrary.database import Base
from sqlalchemy.orm import relationship
from sqlalchemy import Column, String, Text, Date, LargeBinary, ForeignKey, Table


BookInstanceStatus = Literal["Available", "Maintenance", "Loaned", "Reserved"]
BOOK_INSTANCE_STATUSES = get_args(BookInstanceStatus)


def new_id():
    return uuid.uuid4().hex


def format_date(value):
    if value is None:
        return ""
    return value.strftime("%B %d, %Y")


book_genre = Table(
    "book_genre",
    Base.metadata,
    Column("book_id", String(32), ForeignKey("books.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", String(32), ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
)


class Author(Base):
    """
    Author document.

    Relationships:
    - One author can have many books (one-to-many)

    There is no delete cascade on ``books``: an author is only removed
    once no book references it any more.
    """

    __tablename__ = "authors"

    id = Column(String(32), primary_key=True, default=new_id)
    first_name = Column(String(100), nullable=False)
    family_name = Column(String(100), nullable=False, index=True)
    date_of_birth = Column(Date, nullable=True)
    date_of_death = Column(Date, nullable=True)

    books = relationship("Book", back_populates="author", passive_deletes=True)

    @property
    def name(self):
        """Full name as "family, first"; empty when either part is missing."""
        if not self.first_name or not self.family_name:
            return ""
        return f"{self.family_name}, {self.first_name}"

    @property
    def date_of_birth_formatted(self):
        return format_date(self.date_of_birth)

    @property
    def date_of_death_formatted(self):
        return format_date(self.date_of_death)

    @property
    def lifespan(self):
        if self.date_of_birth is None and self.date_of_death is None:
            return ""
        return f"{self.date_of_birth_formatted} - {self.date_of_death_formatted}".strip()

    @property
    def url(self):
        return f"/catalog/author/{self.id}"

    def __repr__(self) -> str:
        return f"<Author id={self.id} name={self.name!r}>"


class Genre(Base):
    __tablename__ = "genres"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, index=True)

    books = relationship("Book", secondary=book_genre, back_populates="genre")

    @property
    def url(self):
        return f"/catalog/genre/{self.id}"

    def __repr__(self) -> str:
        return f"<Genre id={self.id} name={self.name!r}>"


class Book(Base):
    """
    Book document.

    Relationships:
    - Many books belong to one author (many-to-one)
    - Many books share many genres (``genre`` is the book's genre set)
    - One book can have many physical copies (BookInstance)

    The cover image is stored inline as bytes next to its MIME type.
    """

    __tablename__ = "books"

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String, nullable=False, index=True)
    author_id = Column(String(32), ForeignKey("authors.id"), nullable=False, index=True)
    summary = Column(Text, nullable=False)
    isbn = Column(String, nullable=False)
    cover = Column(LargeBinary, nullable=True)
    cover_type = Column(String, nullable=True)

    author = relationship("Author", back_populates="books")
    genre = relationship("Genre", secondary=book_genre, back_populates="books")
    instances = relationship("BookInstance", back_populates="book", passive_deletes=True)

    @property
    def has_cover(self):
        return self.cover is not None and bool(self.cover_type)

    @property
    def url(self):
        return f"/catalog/book/{self.id}"

    @property
    def cover_url(self):
        return f"{self.url}/cover"

    def __repr__(self) -> str:
        return f"<Book id={self.id} title={self.title!r}>"


class BookInstance(Base):
    """
    A physical copy of a book that can be borrowed.

    ``status`` holds one of BOOK_INSTANCE_STATUSES; new copies go to
    Maintenance and are due back on the day they were recorded.
    """

    __tablename__ = "book_instances"

    id = Column(String(32), primary_key=True, default=new_id)
    book_id = Column(String(32), ForeignKey("books.id"), nullable=False, index=True)
    imprint = Column(String, nullable=False)
    status = Column(String(20), nullable=False, default="Maintenance", index=True)
    due_back = Column(Date, nullable=True, default=date.today)

    book = relationship("Book", back_populates="instances")

    @property
    def due_back_formatted(self):
        return format_date(self.due_back)

    @property
    def url(self):
        return f"/catalog/bookinstance/{self.id}"

    def __repr__(self) -> str:
        return f"<BookInstance id={self.id} status={self.status!r}>"
