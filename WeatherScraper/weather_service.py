"""Weather service with cache-aside reads and user favorites."""
import logging
import sqlite3
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

from city_resolver import DEFAULT_CITIES
from weather_cache import WeatherCache
from weather_data import City, Reading
from weather_provider import ValidationError, WeatherProviderBase
from weather_store import WeatherStore


def clean_city_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"Invalid city name: {name!r}")
    return name.strip()


class WeatherService:
    """
    Service that wraps a weather provider with a persistent cache.

    For each requested city a fresh cached reading is served when one
    exists; the remaining cities are scraped in a single batch and the
    results written back to the cache.
    """

    def __init__(
        self,
        provider: WeatherProviderBase,
        store: WeatherStore,
        cache: Optional[WeatherCache] = None,
        max_favorites: int = 10,
    ):
        """
        Initialize weather service.

        Args:
            provider: Weather provider used on cache misses
            store: City, reading and favorite tables
            cache: Freshness cache (defaults to a 30 minute window over store)
            max_favorites: Largest favorite set a user may save
        """
        self.provider = provider
        self.store = store
        self.cache = cache or WeatherCache(store)
        self.max_favorites = max_favorites

    def get_city_weather(self, city_name: str) -> Reading:
        return self.get_cities_weather([city_name])[0]

    def get_cities_weather(self, city_names: Optional[Sequence[str]] = None) -> List[Reading]:
        """
        Readings for the named cities, in the order given.

        Unknown cities are created on first reference. With no names, the
        default UK cities are used.

        Raises:
            ValidationError: If any name is blank or not a string
        """
        names = [clean_city_name(name) for name in city_names] if city_names else list(DEFAULT_CITIES)
        cities = [self.store.find_or_create_city(name) for name in names]
        return self._reconcile(cities)

    def get_favorites_weather(self, user_id: int) -> List[Reading]:
        """
        One reading per favorite city, in city name order.

        Returns:
            List[Reading]: Empty if the user has no favorites
        """
        cities = self.store.favorite_cities(user_id)
        if not cities:
            logging.info(f"User {user_id} has no favorite cities")
            return []
        return self._reconcile(cities)

    def get_favorite_city_names(self, user_id: int) -> List[str]:
        return [city.name for city in self.store.favorite_cities(user_id)]

    def get_cached_weather(self, user_id: int, max_age_seconds: float = 3600) -> List[Reading]:
        """Every stored reading for the user's favorites within max_age_seconds, newest first."""
        since = self.cache.clock() - timedelta(seconds=max_age_seconds)
        return self.store.readings_for_favorites(user_id, since)

    def set_favorites(self, user_id: int, city_names: Sequence[str]) -> None:
        """
        Replace a user's favorite cities.

        Raises:
            ValidationError: If the list is empty, too long, contains blank
                names, or the replacement could not be committed (in which
                case the previous favorites are kept)
        """
        if not city_names:
            raise ValidationError("Cities list is required and cannot be empty")
        if len(city_names) > self.max_favorites:
            raise ValidationError(
                f"At most {self.max_favorites} favorite cities allowed, got {len(city_names)}"
            )

        names: List[str] = []
        seen = set()
        for name in city_names:
            name = clean_city_name(name)
            key = name.casefold()
            if key not in seen:
                seen.add(key)
                names.append(name)

        try:
            self.store.replace_favorites(user_id, names)
        except sqlite3.Error as e:
            logging.error(f"Error setting favorite cities for user {user_id}: {e}")
            raise ValidationError(f"Failed to set favorite cities: {e}") from e

        logging.info(f"Set {len(names)} favorite cities for user {user_id}")

    def _reconcile(self, cities: Sequence[City]) -> List[Reading]:
        fresh: Dict[int, Reading] = {}
        stale: Dict[int, City] = {}
        for city in cities:
            if city.id in fresh or city.id in stale:
                continue
            cached = self.cache.get(city.id)
            if cached is not None:
                fresh[city.id] = cached
            else:
                stale[city.id] = city

        if stale:
            logging.info(
                f"Scraping fresh weather for {len(stale)} cities ({len(fresh)} served from cache)"
            )
            pending = list(stale.values())
            scraped = self.provider.scrape_many([city.name for city in pending])
            if len(scraped) != len(pending):
                logging.error(
                    f"Provider returned {len(scraped)} readings for {len(pending)} cities"
                )
            for index, city in enumerate(pending):
                if index < len(scraped):
                    reading = scraped[index].with_city_id(city.id)
                else:
                    reading = Reading.error(city.name).with_city_id(city.id)
                self.cache.put(city.id, reading)
                fresh[city.id] = reading

        return [fresh[city.id] for city in cities]
