# dags/weather_dashboard_dag.py
from __future__ import annotations
import os
from datetime import datetime, timedelta
from typing import List
from airflow.decorators import dag, task
from airflow.exceptions import AirflowFailException
from weatherdash.cities import CityListError, load_cities
from weatherdash.client import OpenWeatherClient, WeatherAPIError
from weatherdash.config import load_settings
from weatherdash.models import CityRef, CityWeather
from weatherdash.service import fetch_city_weather
from weatherdash.storage import (
    FileStore,
    USER_CITIES_KEY,
    WEATHER_DATA_KEY,
    read_city_records,
    select_user_cities,
    write_city_records,
)

@dag(
    dag_id="weather_dashboard_refresh",
    start_date=datetime(2025, 1, 1),
    schedule="*/5 * * * *",
    catchup=False,
    max_active_runs=1,
    default_args={"owner": "weatherdash", "retries": 0},
    tags=["weather", "dashboard"],
)
def weather_dashboard_refresh():
    @task
    def city_list() -> List[dict]:
        settings = load_settings()
        try:
            defaults = load_cities(settings.cities_path)
        except CityListError as e:
            raise AirflowFailException(f"city list unavailable: {e}")

        # user-added cities ride along so their cards stay current too
        store = FileStore(settings.store_path)
        # an unreadable user list is logged and treated as empty
        stored = read_city_records(store, USER_CITIES_KEY) or []
        user = select_user_cities(stored, [c.code for c in defaults])
        rows = [{"code": c.code, "name": c.name, "user": False} for c in defaults]
        rows += [
            {"code": c.city_code, "name": c.city_name, "user": True}
            for c in user
        ]
        return rows

    @task(pool="openweather", execution_timeout=timedelta(seconds=30))
    def fetch_city(row: dict) -> dict:
        api_key = os.getenv("OPENWEATHER_API_KEY")
        if not api_key:
            raise AirflowFailException("OPENWEATHER_API_KEY not set in task environment")
        try:
            client = OpenWeatherClient(api_key=api_key)
        except WeatherAPIError as e:
            raise AirflowFailException(str(e))

        # per-city failures come back as errored placeholders, not task failures
        city = fetch_city_weather(client, CityRef(code=row["code"], name=row["name"]), is_user_added=row["user"])
        return city.to_dict()

    @task
    def publish(rows: List[dict]) -> None:
        merged = [CityWeather.from_dict(r) for r in rows]
        store = FileStore(load_settings().store_path)
        write_city_records(store, WEATHER_DATA_KEY, merged)
        failed = [c.city_name for c in merged if c.errored]
        print(f"Published {len(merged)} cities ({len(failed)} without data: {', '.join(failed) or '-'})")

    publish(fetch_city.expand(row=city_list()))

dag = weather_dashboard_refresh()
