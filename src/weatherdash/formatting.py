# text rendering helpers for cards and the per-city detail view

from __future__ import annotations
import math
from datetime import datetime
from typing import List, Optional
from .models import CityWeather

MISSING = "—"

# country codes for the bundled cities, used when the provider omits one
COUNTRY_FALLBACKS = {
    "Colombo": "LK",
    "Tokyo": "JP",
    "Liverpool": "GB",
    "Paris": "FR",
    "Sydney": "AU",
    "Boston": "US",
    "Shanghai": "CN",
    "Oslo": "NO",
}

def format_temperature(value: Optional[float], unit: str = "°C") -> str:
    if value is None or not math.isfinite(value):
        return MISSING
    # half-up, so 22.5 shows as 23
    return f"{math.floor(value + 0.5)}{unit}"

def format_visibility(meters: Optional[int]) -> str:
    if meters is None:
        return MISSING
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{meters} m"

def format_wind(speed) -> str:
    if speed is None:
        return MISSING
    try:
        n = float(speed)
    except (TypeError, ValueError):
        return MISSING
    if n != n:  # NaN
        return MISSING
    return f"{n:.1f} m/s"

def format_time(iso: Optional[str]) -> str:
    if not iso:
        return MISSING
    try:
        return datetime.fromisoformat(iso).strftime("%I:%M %p")
    except (TypeError, ValueError):
        return MISSING

def display_country(city: Optional[CityWeather]) -> str:
    if city is None:
        return ""
    if city.country:
        return str(city.country).upper()
    return COUNTRY_FALLBACKS.get(city.city_name, "")

def _title(city: CityWeather) -> str:
    country = display_country(city)
    return f"{city.city_name}, {country}" if country else city.city_name

def render_card(city: CityWeather) -> List[str]:
    marker = " [user]" if city.is_user_added else ""
    lines = [f"{_title(city)} ({city.city_code}){marker}"]
    if city.errored:
        lines.append("  No data")
        return lines
    lines.append(
        f"  {format_temperature(city.temperature)}  {city.weather_description or MISSING}"
        f"  (feels like {format_temperature(city.feels_like)})"
    )
    return lines

def render_detail(city: CityWeather) -> List[str]:
    lines = [_title(city), "=" * len(_title(city))]
    if city.errored:
        lines.append("No data")
        lines.append(f"Error: {city.error}")
        return lines
    pressure = f"{city.pressure} hPa" if city.pressure is not None else MISSING
    humidity = f"{city.humidity}%" if city.humidity is not None else MISSING
    lines.extend([
        f"Conditions:  {city.weather_description or MISSING}",
        f"Temperature: {format_temperature(city.temperature)}",
        f"Feels like:  {format_temperature(city.feels_like)}",
        f"Pressure:    {pressure}",
        f"Humidity:    {humidity}",
        f"Visibility:  {format_visibility(city.visibility)}",
        f"Wind:        {format_wind(city.wind_speed)}",
        f"Sunrise:     {format_time(city.sunrise)}",
        f"Sunset:      {format_time(city.sunset)}",
    ])
    return lines
