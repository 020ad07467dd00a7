"""weather.com scraping provider implementation."""
import logging
import time
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from city_resolver import CityResolver
from page_fetcher import PageFetcher
from weather_data import Reading, utcnow
from weather_provider import FetchFailed, WeatherProviderBase


class WeatherComProvider(WeatherProviderBase):
    """
    Weather provider that scrapes weather.com city pages.

    Each city is tried over the authenticated path first (when the session is
    logged in) and then over the anonymous path. A city whose every path
    fails yields an "unavailable" reading; scrape_many never aborts a batch
    because of one city.

    Batches run sequentially with a politeness delay between cities, since
    parallel fetches trip the site's abuse defenses. There is exactly one
    attempt per path per city and no aggregate timeout.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        resolver: Optional[CityResolver] = None,
        delay_seconds: float = 1.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize weather.com provider.

        Args:
            fetcher: Page fetcher bound to the shared session
            resolver: City name to provider code lookup
            delay_seconds: Pause between successive cities in a batch
            clock: Source of observation timestamps
        """
        self.fetcher = fetcher
        self.session = fetcher.session
        self.resolver = resolver or CityResolver()
        self.delay_seconds = delay_seconds
        self.clock = clock

    def login(self) -> bool:
        return self.session.login()

    def reauthenticate(self) -> bool:
        """Explicit re-login hook; not invoked automatically on fetch failures."""
        return self.session.reauthenticate()

    def scrape_one(self, city_name: str) -> Reading:
        """
        Scrape current weather for one city.

        Returns:
            Reading: The scraped reading, or an "unavailable" sentinel if
            both fetch paths failed
        """
        code = self.resolver.resolve(city_name)
        logging.debug(f"Resolved {city_name!r} to provider code {code}")

        if self.session.is_authenticated():
            try:
                return self._fetch_reading(city_name, code, use_session=True)
            except FetchFailed as e:
                logging.warning(
                    f"Authenticated fetch failed for {city_name}: {e}; falling back to anonymous"
                )
            except Exception as e:
                logging.warning(
                    f"Unexpected error on authenticated fetch for {city_name}: {e!r}; falling back to anonymous"
                )

        try:
            return self._fetch_reading(city_name, code, use_session=False)
        except FetchFailed as e:
            logging.error(f"Failed to scrape weather for {city_name}: {e}")
            return Reading.unavailable(city_name, self.clock())
        except Exception as e:
            logging.exception(f"Unexpected error scraping {city_name}: {e}")
            return Reading.unavailable(city_name, self.clock())

    def scrape_many(self, city_names: Sequence[str]) -> List[Reading]:
        """
        Scrape several cities one after another.

        Returns:
            List[Reading]: Same length and order as city_names
        """
        results: List[Reading] = []
        for index, city_name in enumerate(city_names):
            if index and self.delay_seconds > 0:
                time.sleep(self.delay_seconds)
            try:
                results.append(self.scrape_one(city_name))
            except Exception as e:
                logging.exception(f"Unexpected error scraping {city_name}: {e}")
                results.append(Reading.error(city_name, self.clock()))

        succeeded = sum(1 for reading in results if reading.ok)
        logging.info(f"Scraped {succeeded}/{len(results)} cities with a temperature")
        return results

    def _fetch_reading(self, city_name: str, code: str, use_session: bool) -> Reading:
        temperature, condition = self.fetcher.fetch_weather(code, use_session=use_session)
        logging.info(f"Scraped {city_name}: {temperature}°, {condition}")
        return Reading(
            city=city_name,
            temperature=temperature,
            condition=condition,
            observed_at=self.clock(),
        )
