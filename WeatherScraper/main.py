"""Command line entry point for scraping and caching city weather."""
import argparse
import json
import logging
import os
import signal
import sys
from typing import List, Optional, Tuple

from city_resolver import CityResolver
from config import Settings, load_settings
from page_fetcher import PageFetcher
from weather_cache import WeatherCache
from weather_data import Reading
from weather_provider import ValidationError
from weather_service import WeatherService
from weather_session import WeatherComSession
from weather_store import WeatherStore
from weathercom_provider import WeatherComProvider

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "weather-scraper.log")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("weather.com scraper with cache")
    parser.add_argument("--log-file", default=None, help=f"Also log to a file (e.g. {DEFAULT_LOG_FILE})")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument("--no-login", action="store_true", help="Skip the login handshake")
    parser.add_argument("--verbose", action="store_true")

    commands = parser.add_subparsers(dest="command", required=True)

    city = commands.add_parser("city", help="Weather for one city")
    city.add_argument("name")

    cities = commands.add_parser("cities", help="Weather for several cities (default: UK cities)")
    cities.add_argument("names", nargs="*")

    favorites = commands.add_parser("favorites", help="Weather for a user's favorite cities")
    favorites.add_argument("user_id", type=int)
    favorites.add_argument("--set", dest="set_names", nargs="+", metavar="CITY",
                           help="Replace the favorite set before reading it")

    names = commands.add_parser("favorite-names", help="List a user's favorite cities")
    names.add_argument("user_id", type=int)

    cached = commands.add_parser("cached", help="Recent stored readings for a user's favorites")
    cached.add_argument("user_id", type=int)
    cached.add_argument("--max-age", type=float, default=3600, help="Seconds")

    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def build_weather_service(settings: Settings) -> Tuple[WeatherService, WeatherComSession, WeatherStore]:
    session = WeatherComSession(
        credentials=settings.credentials,
        login_url=settings.login_url,
        timeout=settings.http_timeout,
    )
    fetcher = PageFetcher(session, base_url=settings.base_url, timeout=settings.http_timeout)
    provider = WeatherComProvider(
        fetcher,
        resolver=CityResolver(region_suffix=settings.region_suffix),
        delay_seconds=settings.scrape_delay,
    )
    store = WeatherStore(settings.db_path)
    cache = WeatherCache(store, freshness_seconds=settings.cache_seconds)
    service = WeatherService(provider, store, cache, max_favorites=settings.max_favorites)
    logging.info("Weather service ready (cache window=%smin)", settings.cache_minutes)
    return service, session, store


def run_command(service: WeatherService, args: argparse.Namespace):
    if args.command == "city":
        return service.get_city_weather(args.name).to_dict()
    if args.command == "cities":
        return [r.to_dict() for r in service.get_cities_weather(args.names)]
    if args.command == "favorites":
        if args.set_names:
            service.set_favorites(args.user_id, args.set_names)
        return [r.to_dict() for r in service.get_favorites_weather(args.user_id)]
    if args.command == "favorite-names":
        return {"cities": service.get_favorite_city_names(args.user_id)}
    if args.command == "cached":
        readings: List[Reading] = service.get_cached_weather(args.user_id, args.max_age)
        return [r.to_dict() for r in readings]
    raise ValueError(f"Unknown command: {args.command}")


def signal_handler(signum, frame):
    logging.info("Received signal %s, shutting down", signum)
    raise KeyboardInterrupt()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    settings = load_settings(args.env_file)

    service, session, store = build_weather_service(settings)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if not args.no_login and not session.login():
            logging.info("Continuing with anonymous scraping")
        result = run_command(service, args)
        print(json.dumps({"success": True, "data": result}, indent=2))
        return 0
    except ValidationError as err:
        logging.error("Invalid request: %s", err)
        print(json.dumps({"success": False, "message": str(err)}, indent=2))
        return 2
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    finally:
        session.close()
        store.close()


if __name__ == "__main__":
    sys.exit(main())
