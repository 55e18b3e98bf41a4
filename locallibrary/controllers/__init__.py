from locallibrary.controllers import author, book, bookinstance, genre

routers = [book.router, author.router, genre.router, bookinstance.router]

__all__ = ["routers"]
