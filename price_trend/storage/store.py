from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import func, insert, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    SQLAlchemyError,
)

from price_trend.errors import StoreError, StoreQueryFailed, StoreUnavailable
from price_trend.models.price import Bucket, Sample, WindowSnapshot
from price_trend.resampling.engine import aggregate_window
from price_trend.storage.engine import Base
from price_trend.storage.models import PriceHistory

log = logging.getLogger("price_store")

# Nothing above signed BIGINT is stored on any backend; query bounds are clamped to it.
MAX_STORED_TIMESTAMP = 2**63 - 1

_table = PriceHistory.__table__


def _clamp(ts: int) -> int:
    return min(ts, MAX_STORED_TIMESTAMP)


def _translate(e: SQLAlchemyError, purpose: str) -> Exception:
    if isinstance(e, (InterfaceError, DisconnectionError)):
        return StoreUnavailable(f"{purpose}: {e}")
    if isinstance(e, DBAPIError) and e.connection_invalidated:
        return StoreUnavailable(f"{purpose}: {e}")
    return StoreQueryFailed(f"{purpose}: {e}")


class PriceStore:
    """
    Ordered, durable timestamp -> price mapping backed by the price_history table.

    Every public method checks out its own connection and runs in its own
    transaction, so the store can be shared by the updater task and any number
    of concurrent range queries without in-process locking.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -------------------------
    # Connection handling
    # -------------------------
    @contextmanager
    def _transaction(self, purpose: str) -> Iterator[Connection]:
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            log.error("Couldn't get database connection (%s): %s", purpose, e)
            raise StoreUnavailable(f"{purpose}: couldn't connect: {e}") from e

        try:
            with conn.begin():
                yield conn
        except IntegrityError:
            # Left to insert_if_absent, where a duplicate key is not an error.
            raise
        except SQLAlchemyError as e:
            log.error("SQL error - %s: %s", purpose, e)
            raise _translate(e, purpose) from e
        finally:
            conn.close()

    def close(self) -> None:
        self.engine.dispose()

    # -------------------------
    # Schema
    # -------------------------
    def ensure_schema(self) -> None:
        """Create price_history if it does not exist yet (idempotent)."""
        with self._transaction("making sure price_history table exists") as conn:
            Base.metadata.create_all(conn, tables=[_table], checkfirst=True)

    # -------------------------
    # Writes
    # -------------------------
    def insert_if_absent(self, timestamp: int, price_cents: int) -> bool:
        """
        Append one sample. A timestamp that is already present is left untouched.

        Returns True if a row was written, False if the timestamp already existed.
        """
        if timestamp < 0 or timestamp > MAX_STORED_TIMESTAMP:
            raise StoreQueryFailed(f"timestamp out of range for storage: {timestamp}")

        try:
            with self._transaction("inserting sample") as conn:
                conn.execute(insert(_table).values(when=timestamp, price_cents=price_cents))
        except IntegrityError:
            # Primary key already present.
            log.debug("Sample already present when=%d", timestamp)
            return False
        return True

    def insert_many_if_absent(
        self, samples: Iterable[Sample]
    ) -> Tuple[int, List[Tuple[Sample, StoreError]]]:
        """
        Bulk append with insert_if_absent semantics per row, in one transaction.

        Each row gets its own savepoint: a duplicate timestamp or a rejected
        row is rolled back alone and the rest of the batch still commits.
        Losing the connection aborts the whole batch with StoreUnavailable.

        Returns (inserted, failed) where failed holds (sample, error) pairs.
        """
        inserted = 0
        failed: List[Tuple[Sample, StoreError]] = []

        with self._transaction("inserting samples") as conn:
            for s in samples:
                if s.timestamp < 0 or s.timestamp > MAX_STORED_TIMESTAMP:
                    failed.append(
                        (s, StoreQueryFailed(f"timestamp out of range for storage: {s.timestamp}"))
                    )
                    continue

                try:
                    with conn.begin_nested():
                        conn.execute(
                            insert(_table).values(when=s.timestamp, price_cents=s.price_cents)
                        )
                except IntegrityError:
                    continue
                except SQLAlchemyError as e:
                    err = _translate(e, "inserting sample")
                    if isinstance(err, StoreUnavailable):
                        raise
                    failed.append((s, err))
                else:
                    inserted += 1

        return inserted, failed

    # -------------------------
    # Reads
    # -------------------------
    def exists_any(self) -> bool:
        with self._transaction("checking for existing samples") as conn:
            row = conn.execute(select(_table.c.when).limit(1)).first()
        return row is not None

    def count(self) -> int:
        with self._transaction("counting samples") as conn:
            return int(conn.execute(select(func.count()).select_from(_table)).scalar_one())

    def max_timestamp(self) -> Optional[int]:
        with self._transaction("checking freshness") as conn:
            value = conn.execute(select(func.max(_table.c.when))).scalar()
        return int(value) if value is not None else None

    def latest_sample(self) -> Optional[Sample]:
        with self._transaction("reading latest sample") as conn:
            row = conn.execute(
                select(_table.c.when, _table.c.price_cents)
                .order_by(_table.c.when.desc())
                .limit(1)
            ).first()
        if row is None:
            return None
        return Sample(timestamp=int(row[0]), price_cents=int(row[1]))

    def read_window(self, begin: int, end: int) -> WindowSnapshot:
        """
        Reads the clamp bounds for [begin, end] and the real samples between
        them, all inside one transaction so the bounds and the samples agree.
        """
        c = _table.c
        with self._transaction("getting price data for range") as conn:
            lower = conn.execute(select(func.max(c.when)).where(c.when <= _clamp(begin))).scalar()
            upper = None
            if end <= MAX_STORED_TIMESTAMP:
                upper = conn.execute(select(func.min(c.when)).where(c.when >= end)).scalar()
            latest = conn.execute(
                select(c.price_cents).order_by(c.when.desc()).limit(1)
            ).scalar()

            q = select(c.when, c.price_cents).order_by(c.when)
            if lower is not None:
                q = q.where(c.when >= lower)
            if upper is not None:
                q = q.where(c.when <= upper)
            rows = conn.execute(q).all()

        return WindowSnapshot(
            lower=int(lower) if lower is not None else None,
            upper=int(upper) if upper is not None else None,
            latest_price_cents=int(latest) if latest is not None else None,
            samples=[Sample(timestamp=int(w), price_cents=int(p)) for w, p in rows],
        )

    def select_window_aggregated(self, begin: int, end: int, bucket_width: int) -> List[Bucket]:
        """Clamp [begin, end] against the stored series and bucket it (see resampling.engine)."""
        return aggregate_window(self.read_window(begin, end), bucket_width)
