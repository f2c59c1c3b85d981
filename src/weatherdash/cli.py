# connects the command line to the dashboard and prints cards / detail views

from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional
from .cities import CityListError
from .client import WeatherAPIError
from .config import ConfigError, load_settings
from .dashboard import Dashboard, DashboardError
from .formatting import render_card, render_detail
from .models import CityWeather
from .poller import Poller

logger = logging.getLogger(__name__)

def _print_cards(cities: List[CityWeather]) -> None:
    if not cities:
        print("No cities to show.")
        return
    for city in cities:
        for line in render_card(city):
            print(line)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="weatherdash", description="Current weather for your cities.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="show every city as a card")
    p_list.add_argument("--refresh", action="store_true", help="ignore the cache and fetch now")

    p_show = sub.add_parser("show", help="detail view for one city")
    p_show.add_argument("code", help="city code, e.g. 1248991")
    p_show.add_argument("--refresh", action="store_true", help="ignore the cached detail")

    p_add = sub.add_parser("add", help="add a city by name")
    p_add.add_argument("name", nargs="+")

    p_remove = sub.add_parser("remove", help="remove a city by code")
    p_remove.add_argument("code")

    p_watch = sub.add_parser("watch", help="refresh periodically and reprint the cards")
    p_watch.add_argument("--interval", type=float, default=None, help="seconds between refreshes")
    return parser

def _watch(dashboard: Dashboard, interval: float) -> int:
    def reprint(cities):
        print()
        _print_cards(cities)

    poller = Poller(dashboard.refresh, interval=interval, on_refresh=reprint)
    dashboard.on_change = poller.trigger
    poller.start()
    try:
        # idle on the main thread until Ctrl-C
        while not poller.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        poller.stop(timeout=5.0)
    return 0

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        dashboard = Dashboard.from_settings(settings)
        if args.command == "list":
            _print_cards(dashboard.refresh() if args.refresh else dashboard.load())
        elif args.command == "show":
            for line in render_detail(dashboard.get_city(args.code, use_cache=not args.refresh)):
                print(line)
        elif args.command == "add":
            city = dashboard.add_city(" ".join(args.name))
            print(f"Added {city.city_name} ({city.city_code}).")
        elif args.command == "remove":
            city = dashboard.remove_city(args.code)
            print(f"Removed {city.city_name} ({city.city_code}).")
        elif args.command == "watch":
            return _watch(dashboard, args.interval or settings.refresh_seconds)
    except (DashboardError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except (CityListError, WeatherAPIError) as exc:
        logger.error("Weather data unavailable: %s", exc)
        print("Failed to fetch weather data. Please try again later.", file=sys.stderr)
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
