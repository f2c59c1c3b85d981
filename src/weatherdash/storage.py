# key-value persistence with local storage semantics: string keys, string values
# FileStore keeps every key in one json document so offline display survives restarts

from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union
from .models import CityWeather

logger = logging.getLogger(__name__)

WEATHER_DATA_KEY = "weatherData"
USER_CITIES_KEY = "userAddedCities"

def city_detail_key(city_code: str) -> str:
    return f"cityData_{city_code}"

def read_city_records(store: "KeyValueStore", key: str) -> Optional[List[CityWeather]]:
    # None when the key is absent or unreadable; a corrupt entry is logged, never raised
    raw = store.get_item(key)
    if raw is None:
        return None
    try:
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError("expected a JSON array")
        return [CityWeather.from_dict(item) for item in items]
    except ValueError as exc:
        logger.warning("Discarding unreadable %s entry: %s", key, exc)
        return None

def write_city_records(store: "KeyValueStore", key: str, cities: Iterable[CityWeather]) -> None:
    store.set_item(key, json.dumps([c.to_dict() for c in cities]))

def select_user_cities(user: Iterable[CityWeather], default_codes: Iterable[str]) -> List[CityWeather]:
    # drops user entries that shadow a default city or repeat an earlier user code
    seen = set(default_codes)
    kept: List[CityWeather] = []
    for city in user:
        if city.city_code in seen:
            logger.info("Dropping user city %s, already in the list", city.city_name)
            continue
        seen.add(city.city_code)
        kept.append(city)
    return kept

class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...
    def clear(self) -> None: ...

class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._items)

class FileStore:
    # local storage as one json object on disk; every write goes through a temp file
    # and os.replace so readers never see a partial document. a corrupt file reads as empty

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()

    def _read(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.warning("Ignoring corrupt store file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring store file %s: top level is not an object", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".storage-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._read()
            items[key] = str(value)
            self._write(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read()
            if key in items:
                del items[key]
                self._write(items)

    def clear(self) -> None:
        with self._lock:
            self._write({})
