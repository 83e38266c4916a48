import logging
import os
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import (
    FileResponse,
    HTMLResponse,
    JSONResponse,
    PlainTextResponse,
    RedirectResponse,
)
from fastapi.staticfiles import StaticFiles

from . import __version__, crud, database, fragments, services
from .errors import ShortenerError, StoreUnavailable
from .scheme import SchemePolicy, base_url, get_scheme_policy

load_dotenv(Path(__file__).parent.parent / ".env")

PORT = int(os.getenv("PORT", 8080))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
STATS_LIMIT = 10

# --- Logging ---
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("urlshortener")

app = FastAPI(
    title="URL Shortener",
    description="Shorten long URLs, redirect visitors and count visits.",
    version=__version__,
)

# ---- Pages & assets ----
PACKAGE_DIR = Path(__file__).parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


def wants_partial(request: Request) -> bool:
    """htmx marks its requests with HX-Request: true."""
    return request.headers.get("HX-Request") == "true"


@app.exception_handler(ShortenerError)
async def handle_shortener_error(request: Request, exc: ShortenerError):
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
        )
    return PlainTextResponse(exc.public_message, status_code=exc.status_code)


@app.get("/", include_in_schema=False)
def serve_index():
    return FileResponse(TEMPLATES_DIR / "index.html")

# Health check (useful for uptime monitors & load balancers)
@app.get("/health", include_in_schema=False)
def health(db=Depends(database.get_db)):
    try:
        crud.ping(db)
    except StoreUnavailable:
        logger.exception("Health check could not reach the database")
        return JSONResponse({"status": "unavailable"}, status_code=503)
    return {"status": "ok"}

@app.post("/shorten")
def shorten_url(
    request: Request,
    url: str = Form(""),
    db=Depends(database.get_db),
    policy: SchemePolicy = Depends(get_scheme_policy),
):
    record = services.shorten(db, url)
    logger.info("Created short code %s for %s", record.short_code, record.original_url)

    if wants_partial(request):
        short_url = f"{base_url(request, policy)}/{record.short_code}"
        return HTMLResponse(fragments.result_fragment(short_url))
    return RedirectResponse("/", status_code=303)

@app.get("/stats")
def stats(
    request: Request,
    db=Depends(database.get_db),
    policy: SchemePolicy = Depends(get_scheme_policy),
):
    rows = crud.top_by_visits(db, limit=STATS_LIMIT)
    if wants_partial(request):
        return HTMLResponse(fragments.stats_table(rows, base_url(request, policy)))
    return FileResponse(TEMPLATES_DIR / "stats.html")

# Catch-all, keep last
@app.get("/{short_code}", include_in_schema=False)
def redirect_short_code(short_code: str, db=Depends(database.get_db)):
    target = services.resolve(db, short_code)
    return RedirectResponse(url=target, status_code=301)


def run():
    """Console entry point: check the store, create the schema, serve."""
    try:
        with database.SessionLocal() as db:
            crud.ping(db)
        crud.init_db(database.engine)
    except StoreUnavailable:
        logger.critical("Failed to initialize the database", exc_info=True)
        sys.exit(1)

    logger.info("Server starting on http://localhost:%s", PORT)
    # uvicorn exits non-zero by itself if the port cannot be bound.
    # proxy_headers off: X-Forwarded-Proto is judged by the SchemePolicy alone.
    uvicorn.run(app, host="0.0.0.0", port=PORT, log_config=None, proxy_headers=False)


if __name__ == "__main__":
    run()
