# OOP boundary for external i/o
# all http/keys/status handling lives here, so the pipeline above it stays pure and testable
# one requests session per ThreadPoolExecutor worker thread

from __future__ import annotations
import logging
import os
import threading
from typing import Any, Dict, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from dotenv import load_dotenv

load_dotenv()  # in production, environment variables are injected by the host

logger = logging.getLogger(__name__)

class WeatherAPIError(RuntimeError):
    # single error type used to propagate clear messages from this layer
    pass

class OpenWeatherClient:
    # provider details like base URL, params, auth and units are encapsulated here
    BASE_URL = "https://api.openweathermap.org/data/2.5/weather"
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        units: str = "metric",
        max_retries: int = 0,
        user_agent: str = "weatherdash/0.1",
    ):
        self.api_key = api_key or os.getenv("OPENWEATHER_API_KEY")
        if not self.api_key:
            # fail when key is missing to avoid confusing downstream errors
            raise WeatherAPIError("OPENWEATHER_API_KEY not set")

        self.timeout = timeout
        self.units = units
        self.user_agent = user_agent

        # each worker thread lazily obtains its own session through _session()
        self._local = threading.local()

        # plain fetch by default, retries only when a caller opts in
        self._retry = Retry(
            total=max_retries,
            allowed_methods=("GET",),
            raise_on_status=False,
        )

    def _build_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update({"User-Agent": self.user_agent})
        adapter = HTTPAdapter(max_retries=self._retry)
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        return s

    def _session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = self._build_session()
            self._local.session = sess
        return sess

    def get_current_by_id(self, city_code: str) -> Dict[str, Any]:
        data = self._get({"id": city_code}, label=f"city id {city_code}")
        if data is None:
            raise WeatherAPIError(f"Unknown city id {city_code!r}")
        return data

    def get_current_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        # None means the provider does not know the city
        return self._get({"q": name}, label=repr(name))

    def _get(self, query: Dict[str, Any], label: str) -> Optional[Dict[str, Any]]:
        params = dict(query, appid=self.api_key, units=self.units)

        try:
            resp = self._session().get(self.BASE_URL, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise WeatherAPIError(f"Request error for {label}: {exc}") from exc

        if resp.status_code == 404:
            logger.info("Weather provider has no match for %s", label)
            return None

        if resp.status_code >= 400:
            # include a short response snippet to speed up triage
            snippet = (resp.text or "")[:300]
            raise WeatherAPIError(f"HTTP {resp.status_code} for {label}. Body: {snippet}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise WeatherAPIError(f"Invalid JSON for {label}: {exc}") from exc

        # ensure the data meets the basic requirements expected by the service layer
        try:
            _ = data["main"]
            _ = data["weather"]
        except (KeyError, TypeError) as exc:
            raise WeatherAPIError(f"Unexpected API shape for {label}: missing main/weather") from exc

        return data
