# environment driven settings, read once at startup and passed down explicitly

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()  # in production, environment variables are injected by the host

DEFAULT_CITIES_PATH = Path(__file__).parent / "data" / "cities.json"
DEFAULT_STORE_PATH = Path.home() / ".weatherdash" / "storage.json"
DEFAULT_REFRESH_SECONDS = 300  # five minutes between automatic refreshes

class ConfigError(ValueError):
    pass

@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    cities_path: Path = DEFAULT_CITIES_PATH
    store_path: Path = DEFAULT_STORE_PATH
    refresh_seconds: int = DEFAULT_REFRESH_SECONDS
    max_workers: Optional[int] = None
    units: str = "metric"
    log_level: str = "INFO"

def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer (got {raw!r})") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive (got {value})")
    return value

def load_settings() -> Settings:
    cities = os.getenv("WEATHERDASH_CITIES_FILE")
    store = os.getenv("WEATHERDASH_STORE_FILE")
    return Settings(
        api_key=os.getenv("OPENWEATHER_API_KEY") or None,
        cities_path=Path(cities).expanduser() if cities else DEFAULT_CITIES_PATH,
        store_path=Path(store).expanduser() if store else DEFAULT_STORE_PATH,
        refresh_seconds=_int_env("WEATHERDASH_REFRESH_SECONDS", DEFAULT_REFRESH_SECONDS),
        max_workers=_int_env("WEATHERDASH_MAX_WORKERS", None),
        units=os.getenv("WEATHERDASH_UNITS", "metric"),
        log_level=os.getenv("WEATHERDASH_LOG_LEVEL", "INFO").upper(),
    )
