"""Freshness-window cache over the reading store."""
import logging
from datetime import datetime
from typing import Callable, Optional

from weather_data import Reading, utcnow
from weather_provider import CacheWriteFailed
from weather_store import WeatherStore


class WeatherCache:
    """
    Serves stored readings that are still fresh and records new ones.

    A reading is fresh while now - observed_at < freshness window. Read
    errors propagate; write errors are logged and dropped, since a failed
    write only costs a future re-scrape.
    """

    def __init__(
        self,
        store: WeatherStore,
        freshness_seconds: float = 30 * 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize weather cache.

        Args:
            store: Backing reading store
            freshness_seconds: Maximum age of a reading that may be served
            clock: Source of "now"
        """
        self.store = store
        self.freshness_seconds = freshness_seconds
        self.clock = clock

    def get(self, city_id: int) -> Optional[Reading]:
        """
        Most recent fresh reading for a city.

        Returns:
            Reading, or None when the newest stored reading is missing or stale
        """
        reading = self.store.latest_reading(city_id)
        if reading is None:
            logging.debug(f"Cache miss for city {city_id}: no readings")
            return None

        now = self.clock()
        age = reading.age_seconds(now)
        if not reading.is_stale(self.freshness_seconds, now):
            logging.debug(f"Cache hit for city {city_id} (age: {age:.1f}s, TTL: {self.freshness_seconds}s)")
            return reading

        logging.info(f"Cache expired for {reading.city} (age: {age:.1f}s >= TTL: {self.freshness_seconds}s)")
        return None

    def put(self, city_id: int, reading: Reading) -> None:
        """Append a reading; failures are logged, never raised."""
        try:
            self.store.add_reading(city_id, reading)
        except CacheWriteFailed as e:
            logging.warning(f"Cache write failed, continuing without caching: {e}")
