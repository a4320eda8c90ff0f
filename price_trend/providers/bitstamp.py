from __future__ import annotations

import logging
from typing import Optional

import httpx

from price_trend.errors import UpstreamMalformed, UpstreamSetupError, UpstreamUnreachable
from price_trend.models.price import TickerSnapshot
from price_trend.providers.base import PriceSource

log = logging.getLogger("bitstamp_provider")

DEFAULT_TICKER_URL = "https://www.bitstamp.net/api/ticker_hour/"


class BitstampProvider(PriceSource):
    """
    Bitstamp hourly ticker (REST).

    GET {ticker_url} returns a single JSON object:
      {"high": "...", "last": "...", "timestamp": "...", "bid": "...",
       "vwap": "...", "volume": "...", "low": "...", "ask": "...", "open": 123.4}

    No timeout is configured beyond the httpx defaults.
    """

    def __init__(self, ticker_url: str = DEFAULT_TICKER_URL, client: Optional[httpx.Client] = None) -> None:
        self.ticker_url = ticker_url
        self._client = client or httpx.Client()

    def close(self) -> None:
        self._client.close()

    # -------------------------
    # Request construction (failures here are configuration/code defects)
    # -------------------------
    def _build_request(self) -> httpx.Request:
        try:
            request = self._client.build_request("GET", self.ticker_url)
        except httpx.InvalidURL as e:
            raise UpstreamSetupError(f"couldn't parse API URL {self.ticker_url!r}: {e}")

        if request.url.scheme not in ("http", "https") or not request.url.host:
            raise UpstreamSetupError(f"API URL is not an http(s) URL: {self.ticker_url!r}")
        return request

    # -------------------------
    # Public interface used by the updater
    # -------------------------
    def fetch_ticker(self) -> TickerSnapshot:
        request = self._build_request()

        try:
            resp = self._client.send(request)
            resp.raise_for_status()
        except httpx.UnsupportedProtocol as e:
            raise UpstreamSetupError(f"no transport for API URL {self.ticker_url!r}: {e}")
        except httpx.HTTPError as e:
            raise UpstreamUnreachable(f"API call to Bitstamp failed: {e}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise UpstreamMalformed(f"couldn't parse JSON from Bitstamp API: {e}")

        return TickerSnapshot.from_payload(payload)
