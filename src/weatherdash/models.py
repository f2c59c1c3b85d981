# models to keep data shapes explicit and reusable across the app

from __future__ import annotations
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict, Optional

@dataclass(frozen=True)
class CityRef:
    # one entry of the monitored city list
    code: str
    name: str

@dataclass(frozen=True)
class CityWeather:
    # normalized current-weather record, the unit the dashboard caches and renders
    city_code: str
    city_name: str
    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    weather_description: Optional[str] = None
    weather_icon: Optional[str] = None
    country: Optional[str] = None
    pressure: Optional[int] = None
    humidity: Optional[int] = None
    visibility: Optional[int] = None
    wind_speed: Optional[float] = None
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    is_user_added: bool = False
    error: Optional[str] = None

    @property
    def ref(self) -> CityRef:
        return CityRef(code=self.city_code, name=self.city_name)

    @property
    def errored(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CityWeather":
        # unknown keys are ignored so older caches still load
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        try:
            kwargs = {k: v for k, v in data.items() if k in known}
            kwargs["city_code"] = str(kwargs["city_code"])
            kwargs["city_name"] = str(kwargs["city_name"])
        except KeyError as exc:
            raise ValueError(f"cached city is missing {exc.args[0]!r}") from exc
        return cls(**kwargs)

    def as_user_added(self) -> "CityWeather":
        return replace(self, is_user_added=True)

def placeholder(city: CityRef, error: str, is_user_added: bool = False) -> CityWeather:
    # errored stand-in so a single failed city never sinks the whole batch
    return CityWeather(
        city_code=city.code,
        city_name=city.name,
        is_user_added=is_user_added,
        error=error,
    )
