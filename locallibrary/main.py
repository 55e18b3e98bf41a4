from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import MutableHeaders

from locallibrary import config
from locallibrary.controllers import routers
from locallibrary.errors import register_error_handlers
from locallibrary.logging_setup import get_logger
from locallibrary.store import Store
from locallibrary.views import STATIC_DIR, redirect

log = get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the store once for the whole process and close it on shutdown.

    Connection failures are logged and retried by :meth:`Store.connect`,
    which runs in the threadpool so retry delays do not block the loop;
    if every attempt fails the application does not start.
    """
    log.info("Starting %s with %s", config.APP_NAME, config.summarize_runtime_config())
    store = Store()
    await run_in_threadpool(store.connect)
    app.state.store = store
    try:
        yield
    finally:
        store.close()


class SecurityHeadersMiddleware:
    """Add SECURITY_HEADERS to every HTTP response that does not set them."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in SECURITY_HEADERS.items():
                    headers.setdefault(name, value)
            await send(message)

        await self.app(scope, receive, send_with_headers)


app = FastAPI(
    title="Local Library",
    description=config.APP_DESCRIPTION,
    version=config.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(SecurityHeadersMiddleware)

register_error_handlers(app)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

for router in routers:
    app.include_router(router)


@app.get("/")
async def home():
    return redirect("/catalog")


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns:
        Simple status message indicating the service is running
    """
    return {"status": "healthy", "service": config.APP_NAME}
