"""Weather provider abstraction - allows swapping different scraping backends."""
from abc import ABC, abstractmethod
from typing import List, Sequence
from weather_data import Reading


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def scrape_one(self, city_name: str) -> Reading:
        """
        Fetch the current reading for one city.

        Returns:
            Reading: Current weather, or an "unavailable" sentinel reading.
            Implementations never raise for per-city failures.
        """
        pass

    @abstractmethod
    def scrape_many(self, city_names: Sequence[str]) -> List[Reading]:
        """
        Fetch readings for several cities.

        Returns:
            List[Reading]: One reading per requested city, in input order.
        """
        pass


class WeatherProviderError(Exception):
    """Exception raised when a weather provider fails."""
    pass


class FetchFailed(WeatherProviderError):
    """Page retrieval failed: timeout, network, HTTP status, or markup not found."""
    pass


class LoginFailed(WeatherProviderError):
    """The login handshake did not produce an authenticated session."""
    pass


class CacheWriteFailed(Exception):
    """A reading could not be written to the store."""
    pass


class ValidationError(Exception):
    """A favorites request was malformed or could not be applied."""
    pass
