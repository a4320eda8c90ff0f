from __future__ import annotations

from abc import ABC, abstractmethod

from price_trend.models.price import TickerSnapshot


class PriceSource(ABC):
    """
    Price source contract (interface).

    Any source must implement:
    - fetch_ticker(): one current-price snapshot via REST

    Errors are reported with the UpstreamError family:
    - UpstreamSetupError: the request could not be built/dispatched (fatal)
    - UpstreamUnreachable: the request was issued but failed (transient)
    - UpstreamMalformed: the response could not be decoded (transient)
    """

    @abstractmethod
    def fetch_ticker(self) -> TickerSnapshot:
        raise NotImplementedError

    def close(self) -> None:
        pass
