import asyncio
import os

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.exception_handlers import http_exception_handler
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from price_trend.api.pages import not_found_page
from price_trend.api.routes import router as api_router
from price_trend.bootstrap.loader import ensure_initialized
from price_trend.config import get_settings
from price_trend.errors import StoreError
from price_trend.jobs.updater import updater_loop
from price_trend.providers.loader import get_provider
from price_trend.state import get_store

settings = get_settings()
provider = get_provider()
store = get_store()

app = FastAPI(title="Price Trend API", version="0.1.0")
app.include_router(api_router)

if os.path.isdir(settings.static_dir):
    app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")


@app.exception_handler(StarletteHTTPException)
async def _not_found(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return HTMLResponse(not_found_page(), status_code=404)
    return await http_exception_handler(request, exc)


@app.on_event("startup")
async def _startup():
    # Seed the store before anything reads or writes it; never serve an
    # uninitialized database.
    if not ensure_initialized(store, settings.history_file):
        raise RuntimeError("Couldn't initialize database, see log for details.")

    # Keep the series fresh while the app runs.
    app.state.updater_task = asyncio.create_task(
        updater_loop(
            store=store,
            provider=provider,
            interval_seconds=settings.update_interval_seconds,
            freshness_seconds=settings.freshness_seconds,
        )
    )


@app.on_event("shutdown")
async def _shutdown():
    task = getattr(app.state, "updater_task", None)
    if task is not None:
        task.cancel()
    provider.close()
    store.close()


@app.get("/health")
def health():
    try:
        latest = store.latest_sample()
        rows = store.count()
        status = "ok"
    except StoreError:
        latest = None
        rows = None
        status = "database_unavailable"

    return {
        "status": status,
        "app_env": settings.app_env,
        "has_data": latest is not None,
        "row_count": rows,
        "latest_timestamp": latest.timestamp if latest else None,
        "latest_price_cents": latest.price_cents if latest else None,
        "provider_loaded": provider.__class__.__name__,
    }
