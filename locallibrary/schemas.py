from datetime import date
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from locallibrary.models import BOOK_INSTANCE_STATUSES, BookInstanceStatus
from locallibrary.validation import FormModel, OptionalDate


class AuthorOut(BaseModel):
    """
    Author as exposed by the JSON API.

    Internal Working:
    - from_attributes=True lets pydantic read ORM attributes and properties,
      so the derived ``name`` and ``url`` come straight from the model
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    family_name: str
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = None
    name: str
    url: str


class BookOut(BaseModel):
    """
    Book with its author joined in.

    The cover bytes are never serialized; ``has_cover`` and ``cover_type``
    tell a client whether ``cover_url`` will answer.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    summary: str
    isbn: str
    author: Optional[AuthorOut] = None
    genre: List[str] = Field(default_factory=list)
    has_cover: bool = False
    cover_type: Optional[str] = None
    url: str
    cover_url: str

    @classmethod
    def from_book(cls, book) -> "BookOut":
        return cls.model_validate(
            {
                "id": book.id,
                "title": book.title,
                "summary": book.summary,
                "isbn": book.isbn,
                "author": AuthorOut.model_validate(book.author) if book.author else None,
                "genre": [g.id for g in book.genre],
                "has_cover": book.has_cover,
                "cover_type": book.cover_type,
                "url": book.url,
                "cover_url": book.cover_url,
            }
        )


class AuthorForm(FormModel):
    """
    Author create/update form.

    Names are trimmed before their length is checked, so a name of blanks
    counts as missing. Dates are optional ISO dates.
    """

    first_name: str = Field(..., min_length=1, max_length=100)
    family_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: OptionalDate = None
    date_of_death: OptionalDate = None

    messages = {
        "first_name": "First name must be specified.",
        "first_name:string_too_long": "First name must be at most 100 characters.",
        "family_name": "Family name must be specified.",
        "family_name:string_too_long": "Family name must be at most 100 characters.",
        "date_of_birth": "Invalid date of birth",
        "date_of_death": "Invalid date of death",
    }


class BookForm(FormModel):
    """Book create/update form; ``author`` is the author's id, ``genre`` a list of genre ids."""

    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    isbn: str = Field(..., min_length=1)
    genre: List[str] = Field(default_factory=list)

    messages = {
        "title": "Title must not be empty",
        "author": "Author must not be empty",
        "summary": "Summary must not be empty",
        "isbn": "ISBN must not be empty",
    }


class GenreForm(FormModel):
    name: str = Field(..., min_length=3, max_length=100)

    messages = {"name": "Genre name must be between 3 and 100 characters"}


class BookInstanceForm(FormModel):
    book: str = Field(..., min_length=1)
    imprint: str = Field(..., min_length=1)
    status: BookInstanceStatus
    due_back: OptionalDate = None

    messages = {
        "book": "Book must be specified",
        "imprint": "Imprint must be specified",
        "status": "Status must be one of: " + ", ".join(BOOK_INSTANCE_STATUSES),
        "due_back": "Invalid date",
    }
