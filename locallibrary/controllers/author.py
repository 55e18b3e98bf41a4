from fastapi import APIRouter, Depends, Request

from locallibrary.concurrency import parallel
from locallibrary.database import get_store
from locallibrary.errors import NotFoundError
from locallibrary.models import Author, Book
from locallibrary.schemas import AuthorForm
from locallibrary.store import Store
from locallibrary.validation import FormPipeline, form_to_dict, trim_escape
from locallibrary.views import redirect, render


router = APIRouter(prefix="/catalog")

AUTHOR_FIELDS = ("first_name", "family_name", "date_of_birth", "date_of_death")

author_form = FormPipeline(AuthorForm, sanitizers=[trim_escape("first_name", "family_name")])


def author_values(data: dict) -> dict:
    return {name: data.get(name) for name in AUTHOR_FIELDS}


@router.get("/authors")
async def author_list(request: Request, store: Store = Depends(get_store)):
    """Display all authors sorted by family name."""
    authors = await store.find_all(Author, order_by=["family_name"])
    return render(request, "author_list.html", {"title": "Author List", "author_list": authors})


@router.get("/author/create")
async def author_create_get(request: Request):
    return render(request, "author_form.html", {"title": "Create Author"})


@router.post("/author/create")
async def author_create_post(request: Request, store: Store = Depends(get_store)):
    """
    Handle the author create form.

    Internal Working:
    1. The form runs through validation and sanitization
    2. On errors, the form is rendered again (HTTP 200) with the values
       entered so far and the list of field errors
    3. Otherwise an author with the same first and family name is looked
       up; if one exists we redirect to it instead of inserting a duplicate
    4. Else the author is inserted and we redirect to its detail page

    The lookup and the insert are two separate store calls, so two
    simultaneous submissions can both insert.
    """
    result = author_form.run(form_to_dict(await request.form()))
    values = author_values(result.data)

    if not result.ok:
        return render(
            request,
            "author_form.html",
            {"title": "Create Author", "author": Author(**values), "errors": result.errors},
        )

    found_author = await store.find_one(
        Author, {"first_name": values["first_name"], "family_name": values["family_name"]}
    )
    if found_author is not None:
        return redirect(found_author.url)

    author = await store.insert(Author, values)
    return redirect(author.url)


@router.get("/author/{id}")
async def author_detail(id: str, request: Request, store: Store = Depends(get_store)):
    """
    Display one author with the books they wrote.

    Raises:
        NotFoundError: 404 if the author does not exist
    """
    results = await parallel(
        author=store.find_by_id(Author, id),
        author_books=store.find_all(Book, {"author_id": id}, order_by=["title"]),
    )
    if results.author is None:
        raise NotFoundError("Author not found")

    return render(
        request,
        "author_detail.html",
        {"title": "Author Detail", "author": results.author, "author_books": results.author_books},
    )


@router.get("/author/{id}/delete")
async def author_delete_get(id: str, request: Request, store: Store = Depends(get_store)):
    """
    Ask for confirmation before deleting an author.

    An unknown author sends the user back to the author list. The
    confirmation page lists the author's books, which must be deleted first.
    """
    results = await parallel(
        author=store.find_by_id(Author, id),
        author_books=store.find_all(Book, {"author_id": id}, order_by=["title"]),
    )
    if results.author is None:
        return redirect("/catalog/authors")

    return render(
        request,
        "author_delete.html",
        {"title": "Delete Author", "author": results.author, "author_books": results.author_books},
    )


@router.post("/author/{id}/delete")
async def author_delete_post(id: str, request: Request, store: Store = Depends(get_store)):
    """
    Delete an author that no book references.

    If the author still has books the confirmation page is shown again and
    nothing is deleted.
    """
    form = await request.form()
    author_id = form.get("authorid") or id

    results = await parallel(
        author=store.find_by_id(Author, author_id),
        author_books=store.find_all(Book, {"author_id": author_id}, order_by=["title"]),
    )
    if results.author_books:
        return render(
            request,
            "author_delete.html",
            {"title": "Delete Author", "author": results.author, "author_books": results.author_books},
        )

    await store.delete_by_id(Author, author_id)
    return redirect("/catalog/authors")


@router.get("/author/{id}/update")
async def author_update_get(id: str, request: Request, store: Store = Depends(get_store)):
    author = await store.find_by_id(Author, id)
    if author is None:
        raise NotFoundError("Author not found")

    return render(request, "author_form.html", {"title": "Update Author", "author": author})


@router.post("/author/{id}/update")
async def author_update_post(id: str, request: Request, store: Store = Depends(get_store)):
    """
    Replace an author's fields with the submitted form.

    Uses the same validation as create. On success every field is replaced
    and the user is redirected to the author's detail page.

    Raises:
        NotFoundError: 404 if the author disappeared before the update
    """
    result = author_form.run(form_to_dict(await request.form()))
    values = author_values(result.data)

    if not result.ok:
        return render(
            request,
            "author_form.html",
            {"title": "Update Author", "author": Author(id=id, **values), "errors": result.errors},
        )

    author = await store.update_by_id(Author, id, values)
    if author is None:
        raise NotFoundError("Author not found")
    return redirect(author.url)
