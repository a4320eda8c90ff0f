from __future__ import annotations

import logging
import traceback
from typing import Iterator, List, Tuple

from price_trend.errors import (
    BootstrapFileUnreadable,
    BootstrapLineMalformed,
    StoreError,
)
from price_trend.models.price import Sample, parse_timestamp, to_cents
from price_trend.storage.store import PriceStore

log = logging.getLogger("bootstrap")


def parse_history_line(line_no: int, line: str) -> Sample:
    """
    Parses one `<timestamp>,<decimal price>` line, e.g. "1325317920,4.39".
    Raises BootstrapLineMalformed on anything else.
    """
    text = line.strip()
    ts_raw, sep, price_raw = text.partition(",")
    if not sep:
        raise BootstrapLineMalformed(line_no, line, "no separator")

    try:
        timestamp = parse_timestamp(ts_raw)
    except ValueError:
        raise BootstrapLineMalformed(line_no, line, "timestamp is not numeric")

    try:
        price_cents = to_cents(float(price_raw))
    except ValueError:
        raise BootstrapLineMalformed(line_no, line, "price is not numeric")

    return Sample(timestamp=timestamp, price_cents=price_cents)


def _read_history(path: str) -> Iterator[Tuple[int, str]]:
    try:
        f = open(path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise BootstrapFileUnreadable(f"couldn't open history file {path}: {e}")

    with f:
        for line_no, line in enumerate(f, start=1):
            yield line_no, line


def _parse_history(path: str, malformed: List[BootstrapLineMalformed]) -> Iterator[Sample]:
    for line_no, line in _read_history(path):
        if not line.strip():
            continue

        try:
            yield parse_history_line(line_no, line)
        except BootstrapLineMalformed as e:
            log.warning("Skipping malformed history line: %s", e)
            malformed.append(e)


def load_history(store: PriceStore, path: str) -> Tuple[int, int]:
    """
    Inserts every valid line of the history file in a single transaction.
    Malformed lines and per-row insert failures are logged and skipped.

    Returns (inserted, skipped). Raises BootstrapFileUnreadable if the file
    can't be opened, and StoreError if the connection is lost mid-load.
    """
    malformed: List[BootstrapLineMalformed] = []
    inserted, failed = store.insert_many_if_absent(_parse_history(path, malformed))

    for sample, e in failed:
        log.warning(
            "Failed to insert line [%d,%d], skipping -- %s",
            sample.timestamp,
            sample.price_cents,
            e,
        )

    return inserted, len(malformed) + len(failed)


def ensure_initialized(store: PriceStore, history_file: str) -> bool:
    """
    Makes sure price_history exists, and seeds it from the history file when
    (and only when) it holds no samples yet.

    Returns False on failures that can't be recovered here: store unreachable,
    schema creation failed, or history file unreadable while the store is empty.
    """
    try:
        store.ensure_schema()
        if store.exists_any():
            log.info("price_history already has data; skipping bootstrap")
            return True
    except StoreError as e:
        log.error("Couldn't initialize database: %s", e)
        return False

    log.info("price_history is empty; populating from %s", history_file)
    try:
        inserted, skipped = load_history(store, history_file)
    except BootstrapFileUnreadable as e:
        log.error("Bootstrap failed: %s", e)
        return False
    except StoreError as e:
        log.error("Bootstrap lost the database while loading history: %s", e)
        return False
    except Exception:
        log.error("Bootstrap crashed while loading history")
        log.error(traceback.format_exc())
        return False

    log.info(
        "Finished populating history table with base data inserted=%d skipped=%d",
        inserted,
        skipped,
    )
    return True
