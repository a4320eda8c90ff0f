from functools import lru_cache

from price_trend.config import get_settings
from price_trend.storage.engine import create_database_engine
from price_trend.storage.store import PriceStore


@lru_cache(maxsize=1)
def get_store() -> PriceStore:
    """Process-wide store; the engine behind it owns the connection pool."""
    settings = get_settings()
    return PriceStore(create_database_engine(settings.database_url))
