# merge/cache layer: combines the fetched default cities with the user's own list
# and mirrors the merged result into the key-value store for offline display

from __future__ import annotations
import json
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union
from .cities import load_cities
from .client import OpenWeatherClient, WeatherAPIError
from .config import Settings
from .models import CityWeather
from .service import fetch_all, fetch_by_name
from .storage import (
    FileStore,
    KeyValueStore,
    USER_CITIES_KEY,
    WEATHER_DATA_KEY,
    city_detail_key,
    read_city_records,
    select_user_cities,
    write_city_records,
)

logger = logging.getLogger(__name__)

class DashboardError(RuntimeError):
    pass

class DuplicateCityError(DashboardError):
    pass

class CityNotFoundError(DashboardError):
    pass

class Dashboard:
    # in-memory merged list: defaults in city-list order, then user-added cities.
    # every mutation writes weatherData; add and remove also rewrite userAddedCities.
    # one lock serializes public operations against the background poller

    def __init__(
        self,
        client: OpenWeatherClient,
        store: KeyValueStore,
        cities_path: Optional[Union[str, Path]] = None,
        max_workers: Optional[int] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.client = client
        self.store = store
        self.cities_path = cities_path
        self.max_workers = max_workers
        self.on_change = on_change
        self.cities: List[CityWeather] = []
        self._loaded = False
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "Dashboard":
        client = OpenWeatherClient(api_key=settings.api_key, units=settings.units)
        return cls(
            client,
            FileStore(settings.store_path),
            cities_path=settings.cities_path,
            max_workers=settings.max_workers,
            **kwargs,
        )

    # storage helpers

    def _read_list(self, key: str) -> Optional[List[CityWeather]]:
        return read_city_records(self.store, key)

    def _write_list(self, key: str, cities: List[CityWeather]) -> None:
        write_city_records(self.store, key, cities)

    def user_cities(self) -> List[CityWeather]:
        return self._read_list(USER_CITIES_KEY) or []

    # pipeline

    def refresh(self) -> List[CityWeather]:
        with self._lock:
            defaults = load_cities(self.cities_path)
            default_codes = {c.code for c in defaults}

            stored_user = self.user_cities()
            saved = select_user_cities(stored_user, default_codes)

            refs = list(defaults) + [c.ref for c in saved]
            merged = fetch_all(
                self.client,
                refs,
                max_workers=self.max_workers,
                user_added=[c.city_code for c in saved],
            )

            self.cities = merged
            self._loaded = True
            self._write_list(WEATHER_DATA_KEY, merged)
            if saved or saved != stored_user:
                # keep the last good record for user cities whose refresh failed
                fresh = {c.city_code: c for c in merged if c.is_user_added and not c.errored}
                self._write_list(USER_CITIES_KEY, [fresh.get(c.city_code, c) for c in saved])
            return list(merged)

    def load(self) -> List[CityWeather]:
        # cache first: only go to the network when nothing usable is stored
        with self._lock:
            cached = self._read_list(WEATHER_DATA_KEY)
            if cached is None:
                return self.refresh()
            logger.debug("Loaded %d cities from cache", len(cached))
            self.cities = cached
            self._loaded = True
            return list(cached)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _find(self, candidates: List[CityWeather], code: Optional[str] = None, name: Optional[str] = None) -> Optional[CityWeather]:
        lowered = name.lower() if name else None
        for city in candidates:
            if code is not None and city.city_code == code:
                return city
            if lowered is not None and city.city_name.lower() == lowered:
                return city
        return None

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def add_city(self, name: str) -> CityWeather:
        name = (name or "").strip()
        if not name:
            raise ValueError("city name must not be blank")

        with self._lock:
            self._ensure_loaded()
            saved = self.user_cities()

            existing = self._find(self.cities + saved, name=name)
            if existing is not None:
                raise DuplicateCityError(f'"{existing.city_name}" is already added.')

            try:
                fetched = fetch_by_name(self.client, name)
            except (WeatherAPIError, ValueError) as exc:
                logger.warning("Adding city %r failed: %s", name, exc)
                raise DashboardError("Failed to add city. Please try again later.") from exc

            if fetched is None:
                raise CityNotFoundError(f'City "{name}" not found. Please check the spelling and try again.')

            existing = self._find(self.cities + saved, code=fetched.city_code, name=fetched.city_name)
            if existing is not None:
                raise DuplicateCityError(f'"{fetched.city_name}" is already added.')

            self.cities = self.cities + [fetched]
            self._write_list(USER_CITIES_KEY, saved + [fetched])
            self._write_list(WEATHER_DATA_KEY, self.cities)
            logger.info("Added city %s (%s)", fetched.city_name, fetched.city_code)

        self._changed()
        return fetched

    def remove_city(self, city_code: str) -> CityWeather:
        code = str(city_code)
        with self._lock:
            self._ensure_loaded()
            saved = self.user_cities()
            target = self._find(self.cities, code=code) or self._find(saved, code=code)
            if target is None:
                raise CityNotFoundError(f"City {code} is not on the dashboard.")

            self.cities = [c for c in self.cities if c.city_code != code]
            self._write_list(USER_CITIES_KEY, [c for c in saved if c.city_code != code])
            self._write_list(WEATHER_DATA_KEY, self.cities)
            self.store.remove_item(city_detail_key(code))
            logger.info("Removed city %s (%s)", target.city_name, code)

        self._changed()
        return target

    def get_city(self, city_code: str, use_cache: bool = True) -> CityWeather:
        code = str(city_code)
        key = city_detail_key(code)
        with self._lock:
            if use_cache:
                raw = self.store.get_item(key)
                if raw is not None:
                    try:
                        return CityWeather.from_dict(json.loads(raw))
                    except ValueError as exc:
                        logger.warning("Discarding unreadable %s entry: %s", key, exc)

            city = self._find(self.refresh(), code=code)
            if city is None:
                raise CityNotFoundError("City not found")
            self.store.set_item(key, json.dumps(city.to_dict()))
            return city
