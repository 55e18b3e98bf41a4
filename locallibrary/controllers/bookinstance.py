from fastapi import APIRouter, Depends, Request

from locallibrary.database import get_store
from locallibrary.errors import NotFoundError
from locallibrary.models import BOOK_INSTANCE_STATUSES, Book, BookInstance
from locallibrary.schemas import BookInstanceForm
from locallibrary.store import Store
from locallibrary.validation import FormPipeline, form_to_dict, trim_escape
from locallibrary.views import redirect, render


router = APIRouter(prefix="/catalog")

bookinstance_form = FormPipeline(BookInstanceForm, sanitizers=[trim_escape("book", "imprint", "status")])


def bookinstance_values(data: dict) -> dict:
    return {
        "book_id": data.get("book"),
        "imprint": data.get("imprint"),
        "status": data.get("status"),
        "due_back": data.get("due_back"),
    }


async def render_bookinstance_form(request, store, bookinstance=None, errors=None):
    books = await store.find_all(Book, order_by=["title"])
    return render(
        request,
        "bookinstance_form.html",
        {
            "title": "Create BookInstance",
            "book_list": books,
            "bookinstance": bookinstance,
            "statuses": BOOK_INSTANCE_STATUSES,
            "errors": errors,
        },
    )


@router.get("/bookinstances")
async def bookinstance_list(request: Request, store: Store = Depends(get_store)):
    """Display every copy together with the book it belongs to."""
    instances = await store.find_all(BookInstance, populate=["book"])
    return render(
        request,
        "bookinstance_list.html",
        {"title": "Book Instance List", "bookinstance_list": instances},
    )


@router.get("/bookinstance/create")
async def bookinstance_create_get(request: Request, store: Store = Depends(get_store)):
    return await render_bookinstance_form(request, store)


@router.post("/bookinstance/create")
async def bookinstance_create_post(request: Request, store: Store = Depends(get_store)):
    """
    Handle the copy create form.

    On errors the form is rendered again with the book list; otherwise the
    copy is inserted and we redirect to its detail page.
    """
    result = bookinstance_form.run(form_to_dict(await request.form()))
    values = bookinstance_values(result.data)

    if not result.ok:
        return await render_bookinstance_form(request, store, BookInstance(**values), result.errors)

    instance = await store.insert(BookInstance, values)
    return redirect(instance.url)


@router.get("/bookinstance/{id}")
async def bookinstance_detail(id: str, request: Request, store: Store = Depends(get_store)):
    instance = await store.find_by_id(BookInstance, id, populate=["book"])
    if instance is None:
        raise NotFoundError("Book copy not found")

    return render(
        request,
        "bookinstance_detail.html",
        {"title": "Book:", "bookinstance": instance},
    )
