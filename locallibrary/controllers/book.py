from typing import List

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.datastructures import UploadFile

from locallibrary import schemas
from locallibrary.concurrency import parallel
from locallibrary.database import get_store
from locallibrary.errors import NotFoundError
from locallibrary.logging_setup import get_logger
from locallibrary.models import Author, Book, BookInstance, Genre
from locallibrary.store import Store
from locallibrary.validation import FormPipeline, as_list, form_to_dict, trim_escape, trim_escape_all
from locallibrary.views import redirect, render


router = APIRouter(prefix="/catalog")
log = get_logger(__name__)

book_create_form = FormPipeline(
    schemas.BookForm,
    normalizers=[as_list("genre")],
    sanitizers=[trim_escape_all()],
)

book_update_form = FormPipeline(
    schemas.BookForm,
    normalizers=[as_list("genre")],
    sanitizers=[trim_escape("title", "author", "summary", "isbn", "genre")],
)


def book_values(data: dict) -> dict:
    return {
        "title": data.get("title"),
        "author_id": data.get("author"),
        "summary": data.get("summary"),
        "isbn": data.get("isbn"),
        "genre": list(data.get("genre") or []),
    }


async def read_cover(form) -> dict:
    """
    Read the uploaded cover, if any, into the stored cover fields.

    Browsers send an empty file part when no file was picked; that counts
    as no upload and yields no cover fields at all.
    """
    upload = form.get("cover")
    if not isinstance(upload, UploadFile) or not upload.filename:
        return {}
    content = await upload.read()
    return {"cover": content, "cover_type": upload.content_type or "application/octet-stream"}


async def render_book_form(request, store, title, book, checked, errors=None):
    results = await parallel(
        authors=store.find_all(Author, order_by=["family_name"]),
        genres=store.find_all(Genre, order_by=["name"]),
    )
    return render(
        request,
        "book_form.html",
        {
            "title": title,
            "authors": results.authors,
            "genres": results.genres,
            "checked_genres": set(checked),
            "book": book,
            "errors": errors,
        },
    )


@router.get("")
@router.get("/")
async def index(request: Request, store: Store = Depends(get_store)):
    """
    Site home page with the catalog counts.

    Internal Working:
    - The five counts are independent and are awaited as one group
    - A store failure does not go to the error page: it is logged and shown
      on the dashboard itself, with no counts
    """
    error = None
    data = {}
    try:
        results = await parallel(
            book_count=store.count(Book),
            book_instance_count=store.count(BookInstance),
            book_instance_available_count=store.count(BookInstance, {"status": "Available"}),
            author_count=store.count(Author),
            genre_count=store.count(Genre),
        )
        data = vars(results)
    except SQLAlchemyError as exc:
        log.error("Could not load catalog counts: %s", exc)
        error = exc

    return render(request, "index.html", {"title": "Local Library Home", "error": error, "data": data})


@router.get("/books")
async def book_list(request: Request, store: Store = Depends(get_store)):
    books = await store.find_all(Book, order_by=["title"], populate=["author"])
    return render(request, "book_list.html", {"title": "Book List", "book_list": books})


@router.get("/books/api", response_model=List[schemas.BookOut])
async def book_list_api(store: Store = Depends(get_store)):
    """
    Same result set as the book list, as JSON.

    Returns:
        List of books, each with its author embedded and genre identifiers
    """
    books = await store.find_all(Book, order_by=["title"], populate=["author", "genre"])
    return [schemas.BookOut.from_book(book) for book in books]


@router.get("/book/create")
async def book_create_get(request: Request, store: Store = Depends(get_store)):
    """Display the book form with every author and genre to choose from."""
    return await render_book_form(request, store, "Create Book", None, ())


@router.post("/book/create")
async def book_create_post(request: Request, store: Store = Depends(get_store)):
    """
    Handle the book create form.

    Internal Working:
    1. ``genre`` is normalized to a list (absent -> [], one value -> [value])
    2. title, author, summary and isbn must be non-empty once trimmed
    3. every field is trimmed and HTML-escaped
    4. an uploaded ``cover`` file is stored as bytes with its MIME type
    5. on errors the form is rendered again with the submitted genres checked;
       otherwise the book is inserted and we redirect to it
    """
    form = await request.form()
    result = book_create_form.run(form_to_dict(form))
    values = book_values(result.data)
    values.update(await read_cover(form))

    if not result.ok:
        fields = {k: v for k, v in values.items() if k != "genre"}
        return await render_book_form(
            request, store, "Create Book", Book(**fields), values["genre"], result.errors
        )

    book = await store.insert(Book, values)
    return redirect(book.url)


@router.get("/book/{id}")
async def book_detail(id: str, request: Request, store: Store = Depends(get_store)):
    """
    Display one book, its genres and its copies.

    Raises:
        NotFoundError: 404 if the book does not exist
    """
    results = await parallel(
        book=store.find_by_id(Book, id, populate=["author", "genre"]),
        book_instances=store.find_all(BookInstance, {"book_id": id}),
    )
    if results.book is None:
        raise NotFoundError("Book not found")

    return render(
        request,
        "book_detail.html",
        {"title": results.book.title, "book": results.book, "book_instances": results.book_instances},
    )


@router.get("/book/{id}/delete")
async def book_delete_get(id: str, request: Request, store: Store = Depends(get_store)):
    results = await parallel(
        book=store.find_by_id(Book, id, populate=["author", "genre"]),
        book_instances=store.find_all(BookInstance, {"book_id": id}),
    )
    if results.book is None:
        return redirect("/catalog/books")

    return render(
        request,
        "book_delete.html",
        {"title": "Delete Book", "book": results.book, "book_instances": results.book_instances},
    )


@router.post("/book/{id}/delete")
async def book_delete_post(id: str, request: Request, store: Store = Depends(get_store)):
    """Delete a book with no copies left; otherwise show the confirmation again."""
    form = await request.form()
    book_id = form.get("bookid") or id

    results = await parallel(
        book=store.find_by_id(Book, book_id, populate=["author", "genre"]),
        book_instances=store.find_all(BookInstance, {"book_id": book_id}),
    )
    if results.book_instances:
        return render(
            request,
            "book_delete.html",
            {"title": "Delete Book", "book": results.book, "book_instances": results.book_instances},
        )

    await store.delete_by_id(Book, book_id)
    return redirect("/catalog/books")


@router.get("/book/{id}/update")
async def book_update_get(id: str, request: Request, store: Store = Depends(get_store)):
    """
    Display the book form filled in with the current values.

    The book's current genres are pre-checked.

    Raises:
        NotFoundError: 404 if the book does not exist
    """
    results = await parallel(
        book=store.find_by_id(Book, id, populate=["author", "genre"]),
        genres=store.find_all(Genre, order_by=["name"]),
        authors=store.find_all(Author, order_by=["family_name"]),
    )
    if results.book is None:
        raise NotFoundError("Book not found")

    book_genres = {genre.id for genre in results.book.genre}
    return render(
        request,
        "book_form.html",
        {
            "title": "Update Book",
            "book": results.book,
            "genres": results.genres,
            "authors": results.authors,
            "checked_genres": book_genres,
        },
    )


@router.post("/book/{id}/update")
async def book_update_post(id: str, request: Request, store: Store = Depends(get_store)):
    """
    Replace a book's fields, genre set included, with the submitted form.

    The stored cover is kept unless a new file is uploaded.

    Raises:
        NotFoundError: 404 if the book disappeared before the update
    """
    form = await request.form()
    result = book_update_form.run(form_to_dict(form))
    values = book_values(result.data)
    values.update(await read_cover(form))

    if not result.ok:
        fields = {k: v for k, v in values.items() if k != "genre"}
        return await render_book_form(
            request, store, "Update Book", Book(id=id, **fields), values["genre"], result.errors
        )

    book = await store.update_by_id(Book, id, values)
    if book is None:
        raise NotFoundError("Book not found")
    return redirect(book.url)


@router.get("/book/{id}/cover")
async def book_cover(id: str, store: Store = Depends(get_store)):
    """
    Serve the stored cover image.

    Raises:
        NotFoundError: 404 if the book does not exist or has no cover
    """
    book = await store.find_by_id(Book, id)
    if book is None or not book.has_cover:
        raise NotFoundError("Book cover not found")
    return Response(content=book.cover, media_type=book.cover_type)
