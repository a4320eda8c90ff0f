from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Path
from fastapi.responses import HTMLResponse, JSONResponse

from price_trend.api.pages import index_page
from price_trend.errors import InvalidRange, StoreError
from price_trend.models.price import MAX_TIMESTAMP
from price_trend.resampling.engine import resample
from price_trend.state import get_store
from price_trend.storage.store import PriceStore

log = logging.getLogger("api")

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
def index():
    """
    Main page. Always the same document; everything dynamic happens in
    static/main.js, which calls /api/prices.
    """
    return HTMLResponse(index_page())


@router.get("/api/prices/{begin}/{end}")
def prices(
    begin: int = Path(..., ge=0, le=MAX_TIMESTAMP, description="Window start, seconds since epoch"),
    end: int = Path(..., ge=0, le=MAX_TIMESTAMP, description="Window end, seconds since epoch"),
    store: PriceStore = Depends(get_store),
):
    """
    Resampled prices for [begin, end] as [[bucket_start, avg_price_cents], ...].

    Errors come back as a bare JSON string:
    - 400 when begin > end
    - 500 when the database can't be queried
    """
    try:
        buckets = resample(store, begin, end)
    except InvalidRange as e:
        return JSONResponse(status_code=400, content=str(e))
    except StoreError as e:
        log.error("Range query failed begin=%d end=%d error=%s", begin, end, e)
        return JSONResponse(status_code=500, content=f"Database error: {e}")

    return [b.as_pair() for b in buckets]
