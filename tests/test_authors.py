from datetime import date

import pytest

from locallibrary.models import Author, Book


def test_author_list_sorted_by_family_name(client, factory):
    """
    Test the author list is ordered by family name.

    Verifies:
    - 200 OK
    - Authors appear in ascending family-name order
    """
    factory.author("Leo", "Tolstoy")
    factory.author("Jane", "Austen")
    factory.author("Charles", "Dickens")

    response = client.get("/catalog/authors")
    assert response.status_code == 200
    text = response.text
    assert text.index("Austen, Jane") < text.index("Dickens, Charles") < text.index("Tolstoy, Leo")


def test_author_list_empty(client):
    response = client.get("/catalog/authors")
    assert response.status_code == 200
    assert "There are no authors." in response.text


def test_author_detail_shows_books(client, factory):
    """
    Test the detail page shows the author with their books.
    """
    author = factory.author("Jane", "Austen", date_of_birth=date(1775, 12, 16))
    factory.book(author, title="Emma")
    factory.book(author, title="Persuasion")
    other = factory.author("Leo", "Tolstoy")
    factory.book(other, title="War and Peace")

    response = client.get(author.url)
    assert response.status_code == 200
    assert "Author: Austen, Jane" in response.text
    assert "December 16, 1775" in response.text
    assert "Emma" in response.text
    assert "Persuasion" in response.text
    assert "War and Peace" not in response.text


def test_author_detail_not_found(client):
    """
    Test an unknown author id renders the error page with 404.
    """
    response = client.get("/catalog/author/doesnotexist")
    assert response.status_code == 404
    assert "Author not found" in response.text


def test_author_create_get_renders_empty_form(client):
    response = client.get("/catalog/author/create")
    assert response.status_code == 200
    assert "Create Author" in response.text
    assert 'name="first_name"' in response.text


def test_create_author_success(client, factory):
    """
    Test creating "Jane Austen" inserts one author and redirects to it.

    Verifies:
    - 302 redirect to a URL containing the new identifier
    - Exactly one document stored, with the birth date coerced to a date
    """
    response = client.post(
        "/catalog/author/create",
        data={"first_name": "Jane", "family_name": "Austen", "date_of_birth": "1775-12-16"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert factory.count(Author) == 1

    with factory.store.session() as db:
        author = db.query(Author).one()
    assert response.headers["location"] == f"/catalog/author/{author.id}"
    assert author.id in response.headers["location"]
    assert author.first_name == "Jane"
    assert author.date_of_birth == date(1775, 12, 16)
    assert author.date_of_death is None


@pytest.mark.parametrize(
    "form, message",
    [
        ({"first_name": "", "family_name": "Austen"}, "First name must be specified."),
        ({"first_name": "Jane", "family_name": ""}, "Family name must be specified."),
        ({"first_name": "   ", "family_name": "Austen"}, "First name must be specified."),
        ({"family_name": "Austen"}, "First name must be specified."),
    ],
)
def test_create_author_missing_names_rerenders_form(client, factory, form, message):
    """
    Test empty names re-render the form with errors and insert nothing.

    Verifies:
    - 200 OK (no redirect)
    - The error message is listed
    - No author was inserted
    """
    response = client.post("/catalog/author/create", data=form, follow_redirects=False)
    assert response.status_code == 200
    assert message in response.text
    assert factory.count(Author) == 0


def test_create_author_invalid_date_rerenders_form(client, factory):
    response = client.post(
        "/catalog/author/create",
        data={"first_name": "Jane", "family_name": "Austen", "date_of_birth": "16/12/1775"},
        follow_redirects=False,
    )
    assert response.status_code == 200
    assert "Invalid date of birth" in response.text
    # the entered names are kept in the form
    assert 'value="Jane"' in response.text
    assert factory.count(Author) == 0


def test_create_author_duplicate_redirects_to_existing(client, factory):
    """
    Test submitting an existing first/family name pair does not insert.

    Verifies:
    - Redirect goes to the existing author's page
    - Author count unchanged
    """
    existing = factory.author("Jane", "Austen")

    response = client.post(
        "/catalog/author/create",
        data={"first_name": " Jane ", "family_name": "Austen"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["location"] == existing.url
    assert factory.count(Author) == 1


def test_create_author_escapes_markup(client, factory):
    response = client.post(
        "/catalog/author/create",
        data={"first_name": "<b>Jane</b>", "family_name": "Austen"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    with factory.store.session() as db:
        author = db.query(Author).one()
    assert author.first_name == "&lt;b&gt;Jane&lt;/b&gt;"


def test_author_delete_get_lists_dependent_books(client, factory):
    """
    Test the delete confirmation for an author with two books.

    Verifies:
    - The confirmation lists exactly those two books
    - Posting the delete re-renders the same confirmation and deletes nothing
    """
    author = factory.author("Jane", "Austen")
    factory.book(author, title="Emma")
    factory.book(author, title="Persuasion")

    response = client.get(f"{author.url}/delete")
    assert response.status_code == 200
    assert "Delete the following books" in response.text
    assert response.text.count("<dt>") == 2
    assert "Emma" in response.text and "Persuasion" in response.text

    response = client.post(f"{author.url}/delete", data={"authorid": author.id}, follow_redirects=False)
    assert response.status_code == 200
    assert "Delete the following books" in response.text
    assert response.text.count("<dt>") == 2
    assert factory.count(Author) == 1
    assert factory.count(Book) == 2


def test_author_delete_get_unknown_redirects_to_list(client):
    response = client.get("/catalog/author/doesnotexist/delete", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/catalog/authors"


def test_author_delete_post_without_books_deletes(client, factory):
    author = factory.author("Jane", "Austen")
    factory.author("Leo", "Tolstoy")

    response = client.get(f"{author.url}/delete")
    assert "Do you really want to delete this Author?" in response.text

    response = client.post(f"{author.url}/delete", data={"authorid": author.id}, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/catalog/authors"
    assert factory.count(Author) == 1
    assert factory.get(Author, author.id) is None


def test_author_update_get_prefills_form(client, factory):
    author = factory.author("Jane", "Austen", date_of_birth=date(1775, 12, 16))

    response = client.get(f"{author.url}/update")
    assert response.status_code == 200
    assert "Update Author" in response.text
    assert 'value="Jane"' in response.text
    assert 'value="1775-12-16"' in response.text


def test_author_update_get_not_found(client):
    response = client.get("/catalog/author/doesnotexist/update")
    assert response.status_code == 404


def test_author_update_post_replaces_fields(client, factory):
    """
    Test update replaces every field, clearing dates left empty.
    """
    author = factory.author("Jane", "Austen", date_of_birth=date(1775, 12, 16))

    response = client.post(
        f"{author.url}/update",
        data={"first_name": "Charlotte", "family_name": "Bronte", "date_of_birth": "", "date_of_death": "1855-03-31"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["location"] == author.url

    updated = factory.get(Author, author.id)
    assert updated.first_name == "Charlotte"
    assert updated.family_name == "Bronte"
    assert updated.date_of_birth is None
    assert updated.date_of_death == date(1855, 3, 31)
    assert factory.count(Author) == 1


def test_author_update_post_invalid_rerenders_form(client, factory):
    author = factory.author("Jane", "Austen")

    response = client.post(
        f"{author.url}/update",
        data={"first_name": "", "family_name": "Austen"},
        follow_redirects=False,
    )
    assert response.status_code == 200
    assert "Update Author" in response.text
    assert "First name must be specified." in response.text
    assert factory.get(Author, author.id).first_name == "Jane"


def test_author_update_post_unknown_author(client):
    response = client.post(
        "/catalog/author/doesnotexist/update",
        data={"first_name": "Jane", "family_name": "Austen"},
        follow_redirects=False,
    )
    assert response.status_code == 404
