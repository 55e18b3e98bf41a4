import traceback

from fastapi import FastAPI, Request, status
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from locallibrary import config
from locallibrary.logging_setup import get_logger
from locallibrary.views import render

log = get_logger(__name__)


class CatalogError(Exception):
    """Base class for errors that carry their own HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND


def error_response(request: Request, status_code: int, message: str, exc: BaseException = None):
    """
    Render the shared error page.

    The error object and its traceback are only exposed outside production;
    in production the page shows the message alone.
    """
    context = {"title": "Error", "message": message, "status_code": status_code, "error": None, "stack": None}
    if exc is not None and not config.is_production():
        context["error"] = exc
        context["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return render(request, "error.html", context, status_code=status_code)


async def handle_catalog_error(request: Request, exc: CatalogError):
    return error_response(request, exc.status_code, exc.message, exc)


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return error_response(request, exc.status_code, str(exc.detail), exc)


async def handle_store_error(request: Request, exc: SQLAlchemyError):
    """
    Render a 500 page for a failed store operation.

    Handled inside the middleware stack: the page carries the security
    headers and the exception is not re-raised to the server.
    """
    log.exception("Store error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), exc)


async def handle_unexpected_error(request: Request, exc: Exception):
    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        log.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(request, status_code, str(exc) or exc.__class__.__name__, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CatalogError, handle_catalog_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(SQLAlchemyError, handle_store_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
