from fastapi import APIRouter, Depends, Request

from locallibrary.concurrency import parallel
from locallibrary.database import get_store
from locallibrary.errors import NotFoundError
from locallibrary.models import Book, Genre
from locallibrary.store import Store
from locallibrary.schemas import GenreForm
from locallibrary.validation import FormPipeline, form_to_dict, trim_escape
from locallibrary.views import redirect, render


router = APIRouter(prefix="/catalog")

genre_form = FormPipeline(GenreForm, sanitizers=[trim_escape("name")])


@router.get("/genres")
async def genre_list(request: Request, store: Store = Depends(get_store)):
    genres = await store.find_all(Genre, order_by=["name"])
    return render(request, "genre_list.html", {"title": "Genre List", "genre_list": genres})


@router.get("/genre/create")
async def genre_create_get(request: Request):
    return render(request, "genre_form.html", {"title": "Create Genre"})


@router.post("/genre/create")
async def genre_create_post(request: Request, store: Store = Depends(get_store)):
    """
    Handle the genre create form.

    A genre whose name already exists is not inserted again; the user is
    sent to the existing one instead.
    """
    result = genre_form.run(form_to_dict(await request.form()))
    name = result.data.get("name") or ""

    if not result.ok:
        return render(
            request,
            "genre_form.html",
            {"title": "Create Genre", "genre": Genre(name=name), "errors": result.errors},
        )

    found_genre = await store.find_one(Genre, {"name": name})
    if found_genre is not None:
        return redirect(found_genre.url)

    genre = await store.insert(Genre, {"name": name})
    return redirect(genre.url)


@router.get("/genre/{id}")
async def genre_detail(id: str, request: Request, store: Store = Depends(get_store)):
    """
    Display a genre and the books filed under it.

    Raises:
        NotFoundError: 404 if the genre does not exist
    """
    results = await parallel(
        genre=store.find_by_id(Genre, id),
        genre_books=store.find_all(Book, {"genre": id}, order_by=["title"]),
    )
    if results.genre is None:
        raise NotFoundError("Genre not found")

    return render(
        request,
        "genre_detail.html",
        {"title": "Genre Detail", "genre": results.genre, "genre_books": results.genre_books},
    )
