# orchestration of the fetch pipeline
# pure normalization of provider payloads plus a fetch_all coordinator that fans out
# one ThreadPoolExecutor task per city

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from .client import OpenWeatherClient, WeatherAPIError
from .models import CityRef, CityWeather, placeholder

logger = logging.getLogger(__name__)

def _iso_utc(ts) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).isoformat()

def _opt(value, kind):
    return None if value is None else kind(value)

# transform raw provider payload into our normalized record and check shape
def normalize_current(data: Dict[str, Any], city: CityRef | None = None, is_user_added: bool = False) -> CityWeather:
    # openweather shape: data["main"]["temp"], data["weather"][0]["description"], data["sys"]["country"]
    try:
        main = data["main"]
        conditions = (data.get("weather") or [{}])[0]
        sys_block = data.get("sys") or {}
        wind = data.get("wind") or {}
        code = city.code if city else str(data["id"])
        name = city.name if city else str(data["name"])
        return CityWeather(
            city_code=code,
            city_name=name,
            temperature=_opt(main.get("temp"), float),
            feels_like=_opt(main.get("feels_like"), float),
            weather_description=conditions.get("description"),
            weather_icon=conditions.get("icon"),
            country=sys_block.get("country"),
            pressure=_opt(main.get("pressure"), int),
            humidity=_opt(main.get("humidity"), int),
            visibility=_opt(data.get("visibility"), int),
            wind_speed=_opt(wind.get("speed"), float),
            sunrise=_iso_utc(sys_block.get("sunrise")),
            sunset=_iso_utc(sys_block.get("sunset")),
            is_user_added=is_user_added,
        )
    except (KeyError, IndexError, TypeError, ValueError, AttributeError, OverflowError, OSError) as exc:
        raise ValueError(f"Unsupported payload shape for normalize_current(): {exc!r}") from exc

# single city path: fetch -> normalize, never raises for per-city failures
def fetch_city_weather(client: OpenWeatherClient, city: CityRef, is_user_added: bool = False) -> CityWeather:
    try:
        payload = client.get_current_by_id(city.code)
        return normalize_current(payload, city, is_user_added=is_user_added)
    except (WeatherAPIError, ValueError) as exc:
        logger.warning("Weather fetch failed for %s (%s): %s", city.name, city.code, exc)
        return placeholder(city, str(exc), is_user_added=is_user_added)

def fetch_all(
    client: OpenWeatherClient,
    cities: Sequence[CityRef],
    max_workers: int | None = None,
    user_added: Sequence[str] = (),
) -> List[CityWeather]:
    # exactly one call per city; results keep the input order
    if not cities:
        return []
    flagged = set(user_added)
    workers = max_workers or len(cities)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="weatherdash") as pool:
        futures = [
            pool.submit(fetch_city_weather, client, city, city.code in flagged)
            for city in cities
        ]
        results = [fut.result() for fut in futures]

    failed = sum(1 for r in results if r.errored)
    logger.info("Fetched weather for %d cities (%d failed)", len(results), failed)
    return results

def fetch_by_name(client: OpenWeatherClient, name: str) -> Optional[CityWeather]:
    # lookup used when the user adds a city; None when the provider has no match
    payload = client.get_current_by_name(name)
    if payload is None:
        return None
    return normalize_current(payload, is_user_added=True)
