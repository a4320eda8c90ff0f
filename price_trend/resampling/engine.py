from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Tuple

from price_trend.errors import InvalidRange
from price_trend.models.price import (
    MAX_TIMESTAMP,
    MIN_TIMESTAMP,
    Bucket,
    ResampleRequest,
    Sample,
    WindowSnapshot,
)

if TYPE_CHECKING:
    from price_trend.storage.store import PriceStore

log = logging.getLogger("resampler")

# Price carried by the virtual sample at the start of time.
FALLBACK_PRICE_CENTS = 439


def bucket_width_for(begin: int, end: int) -> int:
    return ResampleRequest(begin=begin, end=end).bucket_width


def _padded_samples(snapshot: WindowSnapshot) -> List[Sample]:
    """
    Real samples of the window plus whichever virtual edge samples fall inside
    the clamped bounds.

    Lower bound: latest real sample at/before begin, else the virtual minimum.
    Upper bound: earliest real sample at/after end, else the virtual maximum.
    The virtual maximum repeats the latest real price, so it only exists when
    the series has at least one sample.
    """
    lower = snapshot.lower if snapshot.lower is not None else MIN_TIMESTAMP
    upper = snapshot.upper if snapshot.upper is not None else MAX_TIMESTAMP

    points = [s for s in snapshot.samples if lower <= s.timestamp <= upper]
    present = set(points)

    virtual = [Sample(MIN_TIMESTAMP, FALLBACK_PRICE_CENTS)]
    if snapshot.latest_price_cents is not None:
        virtual.append(Sample(MAX_TIMESTAMP, snapshot.latest_price_cents))

    for v in virtual:
        if lower <= v.timestamp <= upper and v not in present:
            points.append(v)

    return points


def aggregate_window(snapshot: WindowSnapshot, bucket_width: int) -> List[Bucket]:
    """
    Groups the padded window into buckets of `bucket_width` seconds.

    Bucket key = floor(ts / width) * width; value = floored mean of its prices.
    Empty buckets are omitted. Output is ordered by key.
    """
    if bucket_width < 1:
        raise ValueError(f"bucket_width must be >= 1, got {bucket_width}")

    acc: Dict[int, Tuple[int, int]] = {}
    for s in _padded_samples(snapshot):
        n = s.timestamp // bucket_width
        total, count = acc.get(n, (0, 0))
        acc[n] = (total + s.price_cents, count + 1)

    return [
        Bucket(start=n * bucket_width, avg_price_cents=total // count)
        for n, (total, count) in sorted(acc.items())
    ]


def resample(store: "PriceStore", begin: int, end: int) -> List[Bucket]:
    """
    Condenses [begin, end] into at most ~100 averaged buckets.

    Raises InvalidRange (without touching the store) when end < begin, and lets
    StoreUnavailable / StoreQueryFailed from the store propagate.
    """
    if end < begin:
        raise InvalidRange(begin, end)

    width = bucket_width_for(begin, end)
    buckets = store.select_window_aggregated(begin, end, width)
    log.debug("Resampled begin=%d end=%d width=%d buckets=%d", begin, end, width, len(buckets))
    return buckets
