from price_trend.config import get_settings
from price_trend.providers.base import PriceSource
from price_trend.providers.bitstamp import BitstampProvider


def get_provider() -> PriceSource:
    """
    Provider loader / factory.

    Returns the price source configured for the updater.
    This is the single place that knows about concrete providers.
    """
    settings = get_settings()
    return BitstampProvider(ticker_url=settings.ticker_url)
