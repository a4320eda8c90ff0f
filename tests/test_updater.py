import unittest

from price_trend.errors import (
    StoreUnavailable,
    UpstreamMalformed,
    UpstreamSetupError,
    UpstreamUnreachable,
)
from price_trend.jobs import updater
from price_trend.models.price import TickerSnapshot
from price_trend.providers.base import PriceSource
from price_trend.storage.engine import create_database_engine
from price_trend.storage.store import PriceStore

NOW = 1_600_000_000


def payload(vwap="10000.50", timestamp=str(NOW)):
    return {
        "high": "10100.00",
        "last": "10050.00",
        "timestamp": timestamp,
        "bid": "10049.00",
        "vwap": vwap,
        "volume": "123.45",
        "low": "9900.00",
        "ask": "10051.00",
        "open": 9950.0,
    }


class FakeProvider(PriceSource):
    """Counts fetches; returns a canned payload or raises a canned error."""

    def __init__(self, body=None, error=None):
        self.calls = 0
        self.body = body if body is not None else payload()
        self.error = error

    def fetch_ticker(self) -> TickerSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return TickerSnapshot.from_payload(self.body)


class DownStore:
    def __init__(self):
        self.inserts = 0

    def max_timestamp(self):
        raise StoreUnavailable("checking freshness: couldn't connect")

    def insert_if_absent(self, timestamp, price_cents):
        self.inserts += 1
        return True


class WriteFailingStore:
    def max_timestamp(self):
        return None

    def insert_if_absent(self, timestamp, price_cents):
        raise StoreUnavailable("inserting sample: couldn't connect")


class StopLoop(Exception):
    pass


class FakeSleep:
    """Records waits and stops the loop after `limit` of them."""

    def __init__(self, limit):
        self.limit = limit
        self.waits = []

    async def __call__(self, seconds):
        self.waits.append(seconds)
        if len(self.waits) >= self.limit:
            raise StopLoop()


def make_store(rows=()) -> PriceStore:
    store = PriceStore(create_database_engine("sqlite://"))
    store.ensure_schema()
    for ts, price in rows:
        store.insert_if_absent(ts, price)
    return store


def clock():
    return float(NOW)


class TestRunCycle(unittest.IsolatedAsyncioTestCase):
    async def test_fresh_store_skips_fetch(self):
        store = make_store([(NOW - 100, 500)])
        provider = FakeProvider()

        outcome = await updater.run_cycle(store, provider, clock=clock)

        self.assertEqual(outcome, updater.FRESH)
        self.assertEqual(provider.calls, 0)
        self.assertEqual(store.count(), 1)

    async def test_just_under_threshold_is_fresh(self):
        store = make_store([(NOW - 1799, 500)])
        provider = FakeProvider()

        self.assertEqual(await updater.run_cycle(store, provider, clock=clock), updater.FRESH)
        self.assertEqual(provider.calls, 0)

    async def test_stale_store_fetches_and_records(self):
        store = make_store([(NOW - 1800, 500)])
        provider = FakeProvider()

        outcome = await updater.run_cycle(store, provider, clock=clock)

        self.assertEqual(outcome, updater.RECORDED)
        self.assertEqual(provider.calls, 1)
        self.assertEqual(store.max_timestamp(), NOW)
        self.assertEqual(store.latest_sample().price_cents, 1000050)

    async def test_empty_store_fetches(self):
        store = make_store()
        provider = FakeProvider()

        self.assertEqual(await updater.run_cycle(store, provider, clock=clock), updater.RECORDED)
        self.assertEqual(store.count(), 1)

    async def test_duplicate_sample(self):
        store = make_store([(NOW, 1000050)])
        provider = FakeProvider()

        outcome = await updater.run_cycle(store, provider, clock=lambda: NOW + 3600.0)

        self.assertEqual(outcome, updater.DUPLICATE)
        self.assertEqual(store.count(), 1)

    async def test_bad_vwap_writes_nothing(self):
        store = make_store()
        provider = FakeProvider(body=payload(vwap="not-a-number"))

        outcome = await updater.run_cycle(store, provider, clock=clock)

        self.assertEqual(outcome, updater.MALFORMED)
        self.assertEqual(store.count(), 0)

    async def test_bad_timestamp_writes_nothing(self):
        store = make_store()
        provider = FakeProvider(body=payload(timestamp="soon"))

        self.assertEqual(await updater.run_cycle(store, provider, clock=clock), updater.MALFORMED)
        self.assertEqual(store.count(), 0)

    async def test_unreachable_upstream(self):
        store = make_store()
        provider = FakeProvider(error=UpstreamUnreachable("timeout"))

        self.assertEqual(await updater.run_cycle(store, provider, clock=clock), updater.FETCH_FAILED)
        self.assertEqual(store.count(), 0)

    async def test_malformed_upstream(self):
        store = make_store()
        provider = FakeProvider(error=UpstreamMalformed("not json"))

        self.assertEqual(await updater.run_cycle(store, provider, clock=clock), updater.MALFORMED)

    async def test_store_down_skips_fetch(self):
        store = DownStore()
        provider = FakeProvider()

        outcome = await updater.run_cycle(store, provider, clock=clock)

        self.assertEqual(outcome, updater.STORE_UNAVAILABLE)
        self.assertEqual(provider.calls, 0)
        self.assertEqual(store.inserts, 0)

    async def test_write_failure_is_not_fatal(self):
        provider = FakeProvider()
        outcome = await updater.run_cycle(WriteFailingStore(), provider, clock=clock)
        self.assertEqual(outcome, updater.PERSIST_FAILED)

    async def test_setup_error_propagates(self):
        with self.assertRaises(UpstreamSetupError):
            await updater.run_cycle(make_store(), FakeProvider(error=UpstreamSetupError("bad url")), clock=clock)


class TestUpdaterLoop(unittest.IsolatedAsyncioTestCase):
    async def test_first_cycle_runs_without_waiting(self):
        store = make_store()
        provider = FakeProvider()
        sleep = FakeSleep(limit=1)

        with self.assertRaises(StopLoop):
            await updater.updater_loop(store, provider, sleep=sleep, clock=clock)

        self.assertEqual(provider.calls, 1)
        self.assertEqual(sleep.waits, [3600])

    async def test_parse_failure_keeps_loop_running(self):
        store = make_store()
        provider = FakeProvider(body=payload(vwap="??"))
        sleep = FakeSleep(limit=3)

        with self.assertRaises(StopLoop):
            await updater.updater_loop(store, provider, sleep=sleep, clock=clock)

        self.assertEqual(provider.calls, 3)
        self.assertEqual(store.count(), 0)
        self.assertEqual(sleep.waits, [3600, 3600, 3600])

    async def test_network_failure_keeps_loop_running(self):
        provider = FakeProvider(error=UpstreamUnreachable("connection refused"))
        sleep = FakeSleep(limit=2)

        with self.assertRaises(StopLoop):
            await updater.updater_loop(make_store(), provider, sleep=sleep, clock=clock)

        self.assertEqual(provider.calls, 2)

    async def test_setup_error_stops_loop(self):
        provider = FakeProvider(error=UpstreamSetupError("bad url"))
        sleep = FakeSleep(limit=5)

        await updater.updater_loop(make_store(), provider, sleep=sleep, clock=clock)

        self.assertEqual(provider.calls, 1)
        self.assertEqual(sleep.waits, [])

    async def test_fresh_store_never_calls_upstream(self):
        store = make_store([(NOW - 60, 500)])
        provider = FakeProvider()
        sleep = FakeSleep(limit=2)

        with self.assertRaises(StopLoop):
            await updater.updater_loop(
                store, provider, interval_seconds=10, sleep=sleep, clock=clock
            )

        self.assertEqual(provider.calls, 0)
        self.assertEqual(sleep.waits, [10, 10])


if __name__ == "__main__":
    unittest.main()
