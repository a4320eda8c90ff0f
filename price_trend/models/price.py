from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional

from price_trend.errors import UpstreamMalformed

# Bounds of the `when` column (unsigned 64-bit); used for the virtual samples.
MIN_TIMESTAMP = 0
MAX_TIMESTAMP = 2**64 - 1

# Largest value the `price_cents` column can hold (unsigned 32-bit).
MAX_PRICE_CENTS = 2**32 - 1

# Number of buckets a range query is condensed into.
BUCKET_DIVISOR = 100


def to_cents(major: float) -> int:
    """
    Converts a major-unit price (e.g. 123.45) to integer minor units, truncating.
    Raises ValueError for values the price column cannot hold.
    """
    if math.isnan(major) or math.isinf(major):
        raise ValueError(f"price is not finite: {major}")
    cents = int(major * 100)
    if cents < 0 or cents > MAX_PRICE_CENTS:
        raise ValueError(f"price out of range: {major}")
    return cents


def parse_timestamp(raw: str) -> int:
    """Strict unsigned integer parse ("12", not "12.0", "-1" or "")."""
    text = raw.strip()
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"timestamp is not an unsigned integer: {raw!r}")
    ts = int(text)
    if ts > MAX_TIMESTAMP:
        raise ValueError(f"timestamp out of range: {raw!r}")
    return ts


@dataclass(frozen=True)
class Sample:
    """
    Sample = one point of the tracked series.

    timestamp: seconds since epoch (primary key in the store)
    price_cents: price in minor currency units
    """
    timestamp: int
    price_cents: int


@dataclass(frozen=True)
class ResampleRequest:
    begin: int
    end: int

    @property
    def bucket_width(self) -> int:
        return max((self.end - self.begin) // BUCKET_DIVISOR, 1)


@dataclass(frozen=True)
class Bucket:
    """One resampled output point: bucket start and floored mean price."""
    start: int
    avg_price_cents: int

    def as_pair(self) -> list[int]:
        return [self.start, self.avg_price_cents]


@dataclass
class WindowSnapshot:
    """
    Everything the resampler needs about the store for one (begin, end) query,
    read in a single transaction.

    lower: latest real timestamp <= begin (None if there is none)
    upper: earliest real timestamp >= end (None if there is none)
    latest_price_cents: price of the most recent real sample (None on empty store)
    samples: real samples with lower' <= timestamp <= upper', where the primes
      are the clamped bounds (virtual extremes substituted for None)
    """
    lower: Optional[int]
    upper: Optional[int]
    latest_price_cents: Optional[int]
    samples: List[Sample] = field(default_factory=list)


@dataclass(frozen=True)
class TickerSnapshot:
    """
    Raw hourly ticker payload from Bitstamp.

    Every numeric field except `open` arrives as a quoted string; they are kept
    as strings here and parsed explicitly by to_sample().
    """
    high: str
    last: str
    timestamp: str
    bid: str
    vwap: str
    volume: str
    low: str
    ask: str
    open: float

    @classmethod
    def from_payload(cls, payload: object) -> "TickerSnapshot":
        if not isinstance(payload, dict):
            raise UpstreamMalformed(f"expected a JSON object, got {type(payload).__name__}")

        missing = [name for name in cls.__dataclass_fields__ if name not in payload]
        if missing:
            raise UpstreamMalformed(f"ticker payload missing field(s): {', '.join(missing)}")

        try:
            open_ = float(payload["open"])
        except (TypeError, ValueError) as e:
            raise UpstreamMalformed(f"couldn't parse open: {e}")

        return cls(
            high=str(payload["high"]),
            last=str(payload["last"]),
            timestamp=str(payload["timestamp"]),
            bid=str(payload["bid"]),
            vwap=str(payload["vwap"]),
            volume=str(payload["volume"]),
            low=str(payload["low"]),
            ask=str(payload["ask"]),
            open=open_,
        )

    def to_sample(self) -> Sample:
        try:
            price_cents = to_cents(float(self.vwap))
        except ValueError as e:
            raise UpstreamMalformed(f"couldn't parse price received from API: {e}")

        try:
            timestamp = parse_timestamp(self.timestamp)
        except ValueError as e:
            raise UpstreamMalformed(f"couldn't parse timestamp received from API: {e}")

        return Sample(timestamp=timestamp, price_cents=price_cents)
