# price_trend/config.py
import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Loads variables from a local .env file into environment variables (dev only).
load_dotenv()


@dataclass(frozen=True)
class Settings:
    # App config
    app_env: str
    log_level: str
    log_file: str
    working_dir: str
    listen_host: str
    listen_port: int

    # Store config
    database_url: str
    history_file: str

    # Updater config (Bitstamp)
    ticker_url: str
    update_interval_seconds: int
    freshness_seconds: int

    @property
    def static_dir(self) -> str:
        return os.path.join(self.working_dir, "static")


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _split_listen_addr(raw: str) -> tuple[str, int]:
    host, sep, port = raw.strip().rpartition(":")
    if not sep or not host or not port.isdigit():
        raise RuntimeError(f"LISTEN_ADDR must look like host:port, got {raw!r}")
    return host, int(port)


def get_settings() -> Settings:
    """
    Reads env vars and returns a Settings object.
    """
    working_dir = os.getenv("WORKING_DIR", "data").strip() or "data"
    listen_host, listen_port = _split_listen_addr(os.getenv("LISTEN_ADDR", "0.0.0.0:80"))

    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url:
        database_url = "sqlite:///" + os.path.join(working_dir, "price_history.db")

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE", "").strip(),
        working_dir=working_dir,
        listen_host=listen_host,
        listen_port=listen_port,
        database_url=database_url,
        history_file=os.getenv("HISTORY_FILE", "").strip()
        or os.path.join(working_dir, "history", "bitstamp.csv"),
        ticker_url=os.getenv("TICKER_URL", "https://www.bitstamp.net/api/ticker_hour/"),
        update_interval_seconds=_int_env("UPDATE_INTERVAL_SECONDS", "3600"),
        freshness_seconds=_int_env("FRESHNESS_SECONDS", "1800"),
    )
