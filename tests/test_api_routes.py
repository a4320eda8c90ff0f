import unittest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from price_trend.api.routes import router
from price_trend.errors import StoreUnavailable
from price_trend.state import get_store
from price_trend.storage.engine import create_database_engine
from price_trend.storage.store import PriceStore


class DownStore:
    def select_window_aggregated(self, begin, end, bucket_width):
        raise StoreUnavailable("getting price data for range: couldn't connect")


def make_client(store) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


class TestPricesRoute(unittest.TestCase):
    def setUp(self):
        self.store = PriceStore(create_database_engine("sqlite://"))
        self.store.ensure_schema()
        for ts, price in [(1000, 100), (2000, 200), (3000, 300)]:
            self.store.insert_if_absent(ts, price)
        self.client = make_client(self.store)

    def tearDown(self):
        self.store.close()

    def test_range(self):
        resp = self.client.get("/api/prices/1000/3000")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), [[1000, 100], [2000, 200], [3000, 300]])

    def test_single_point(self):
        resp = self.client.get("/api/prices/2000/2000")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), [[2000, 200]])

    def test_begin_after_end(self):
        resp = self.client.get("/api/prices/3000/1000")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), "begin (first value) must be <= end (second value)")

    def test_negative_param_rejected(self):
        resp = self.client.get("/api/prices/-1/1000")
        self.assertEqual(resp.status_code, 422)

    def test_database_error(self):
        client = make_client(DownStore())
        resp = client.get("/api/prices/0/1000")
        self.assertEqual(resp.status_code, 500)
        self.assertTrue(resp.json().startswith("Database error:"))

    def test_index_page(self):
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("text/html", resp.headers["content-type"])
        self.assertTrue(resp.text.startswith("<!DOCTYPE html>"))
        self.assertIn("price_chart", resp.text)


if __name__ == "__main__":
    unittest.main()
