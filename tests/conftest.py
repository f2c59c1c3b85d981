# shared fixtures: a fake weather client and a small city list so tests never hit the network

import copy
import json
import threading
from pathlib import Path

import pytest

from weatherdash.client import WeatherAPIError
from weatherdash.storage import MemoryStore

DATA_DIR = Path(__file__).parent / "data"

CITY_LIST = {
    "List": [
        {"CityCode": "1248991", "CityName": "Colombo"},
        {"CityCode": "1850147", "CityName": "Tokyo"},
        {"CityCode": "2644210", "CityName": "Liverpool"},
    ]
}

@pytest.fixture
def colombo_payload():
    return json.loads((DATA_DIR / "current_colombo.json").read_text())

@pytest.fixture
def make_payload(colombo_payload):
    def _make(code, name, temp=20.0):
        payload = copy.deepcopy(colombo_payload)
        payload["id"] = int(code)
        payload["name"] = name
        payload["main"]["temp"] = temp
        return payload
    return _make

class FakeClient:
    # records every call; ids in `failing` raise like a provider 500
    def __init__(self, make_payload, failing=(), by_name=None, barrier=None):
        self._make = make_payload
        self.failing = set(failing)
        self.by_name = {k.lower(): v for k, v in (by_name or {}).items()}
        self.barrier = barrier
        self.calls = []
        self.name_calls = []
        self.threads = set()
        self._lock = threading.Lock()

    def get_current_by_id(self, city_code):
        with self._lock:
            self.calls.append(city_code)
            self.threads.add(threading.get_ident())
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        if city_code in self.failing:
            raise WeatherAPIError(f"HTTP 500 for city id {city_code}")
        return self._make(city_code, f"City {city_code}")

    def get_current_by_name(self, name):
        self.name_calls.append(name)
        found = self.by_name.get(name.lower())
        if found is None:
            return None
        code, canonical = found
        return self._make(code, canonical)

@pytest.fixture
def fake_client(make_payload):
    def _build(**kwargs):
        return FakeClient(make_payload, **kwargs)
    return _build

@pytest.fixture
def cities_file(tmp_path):
    path = tmp_path / "cities.json"
    path.write_text(json.dumps(CITY_LIST))
    return path

@pytest.fixture
def default_codes():
    return [c["CityCode"] for c in CITY_LIST["List"]]

@pytest.fixture
def store():
    return MemoryStore()
