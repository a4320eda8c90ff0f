from __future__ import annotations

import asyncio
import logging
import time
import traceback
from typing import Awaitable, Callable

from price_trend.errors import (
    StoreError,
    UpstreamError,
    UpstreamMalformed,
    UpstreamSetupError,
)
from price_trend.providers.base import PriceSource
from price_trend.storage.store import PriceStore

log = logging.getLogger("updater")

HOUR_SECONDS = 60 * 60
HALF_HOUR_SECONDS = 60 * 30

# Cycle outcomes (returned by run_cycle, mostly for logs and tests)
FRESH = "fresh"
STORE_UNAVAILABLE = "store_unavailable"
FETCH_FAILED = "fetch_failed"
MALFORMED = "malformed"
RECORDED = "recorded"
DUPLICATE = "duplicate"
PERSIST_FAILED = "persist_failed"


async def run_cycle(
    store: PriceStore,
    provider: PriceSource,
    freshness_seconds: int = HALF_HOUR_SECONDS,
    clock: Callable[[], float] = time.time,
) -> str:
    """
    One update attempt:
    1) skip if the newest stored sample is younger than freshness_seconds
    2) fetch the current ticker
    3) parse vwap/timestamp into a sample
    4) append it

    Blocking store and HTTP calls run in worker threads so a slow upstream
    never stalls request handling.

    Raises UpstreamSetupError if the request could not even be built; every
    other failure is logged and reported through the returned outcome.
    """
    # Check that the data isn't already fresh so we don't hammer the upstream API.
    try:
        latest_ts = await asyncio.to_thread(store.max_timestamp)
    except StoreError as e:
        log.warning("Couldn't check freshness, skipping this cycle: %s", e)
        return STORE_UNAVAILABLE

    if latest_ts is not None:
        age = int(clock()) - latest_ts
        if age < freshness_seconds:
            log.info(
                "Database is less than %ds old (age=%ds); waiting till next cycle before calling out to external API.",
                freshness_seconds,
                age,
            )
            return FRESH

    try:
        snapshot = await asyncio.to_thread(provider.fetch_ticker)
    except UpstreamSetupError:
        raise
    except UpstreamMalformed as e:
        log.warning("Updater couldn't parse response from price API: %s", e)
        return MALFORMED
    except UpstreamError as e:
        log.warning("API call to price source failed: %s", e)
        return FETCH_FAILED

    try:
        sample = snapshot.to_sample()
    except UpstreamMalformed as e:
        log.warning("Updater %s", e)
        return MALFORMED

    try:
        inserted = await asyncio.to_thread(store.insert_if_absent, sample.timestamp, sample.price_cents)
    except StoreError as e:
        log.error(
            "Parsed API value when=%d price_cents=%d, but couldn't store it: %s",
            sample.timestamp,
            sample.price_cents,
            e,
        )
        return PERSIST_FAILED

    if not inserted:
        log.info("Sample when=%d already stored", sample.timestamp)
        return DUPLICATE

    log.info("Recorded sample when=%d price_cents=%d", sample.timestamp, sample.price_cents)
    return RECORDED


async def updater_loop(
    store: PriceStore,
    provider: PriceSource,
    interval_seconds: int = HOUR_SECONDS,
    freshness_seconds: int = HALF_HOUR_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.time,
) -> None:
    """
    Background loop:
    runs one cycle immediately, then one cycle after every interval_seconds wait.

    Only a request-setup defect (UpstreamSetupError) ends the loop; everything
    else is retried on the next cycle.
    """
    first_iter = True

    while True:
        # Wait at the top of the loop so an aborted cycle still waits.
        if first_iter:
            first_iter = False
        else:
            await sleep(interval_seconds)

        log.debug("Iterating hourly update loop")

        try:
            await run_cycle(store, provider, freshness_seconds=freshness_seconds, clock=clock)
        except UpstreamSetupError as e:
            log.error("Updater can't build the API request; bailing! Reason: %s", e)
            return
        except Exception as e:
            # Keep loop alive on unexpected failures, but log the error.
            log.error("Update cycle failed error=%s", repr(e))
            log.error(traceback.format_exc())
