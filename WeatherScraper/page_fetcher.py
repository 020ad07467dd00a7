"""Retrieves weather.com city pages over the authenticated or anonymous path."""
import logging
from typing import Optional, Tuple

import requests

from weather_extract import extract_weather
from weather_provider import FetchFailed
from weather_session import DEFAULT_USER_AGENT, WeatherComSession


class PageFetcher:
    """
    Fetches the "today" page for a provider code and extracts the reading.

    Every failure (timeout, network error, HTTP error status, rejected
    session, or a page with no recognizable temperature) surfaces as
    FetchFailed.
    """

    PAGE_PATH = "/weather/today/l/{code}"

    def __init__(
        self,
        session: WeatherComSession,
        base_url: str = "https://weather.com",
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

    def page_url(self, provider_code: str) -> str:
        return self.base_url + self.PAGE_PATH.format(code=provider_code)

    def fetch(self, provider_code: str, use_session: bool) -> str:
        """
        Retrieve the raw page.

        Args:
            provider_code: weather.com location code
            use_session: Send the session cookies (authenticated path)

        Returns:
            str: Page HTML

        Raises:
            FetchFailed: On any retrieval failure
        """
        url = self.page_url(provider_code)
        cookies: Optional[dict] = None
        if use_session:
            authenticated, cookies = self.session.snapshot()
            if not authenticated:
                raise FetchFailed("no authenticated session available")

        path = "authenticated" if use_session else "anonymous"
        try:
            logging.info(f"Fetching {url} ({path})")
            response = requests.get(
                url,
                headers={"User-Agent": self.user_agent},
                cookies=cookies,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise FetchFailed(f"Timed out after {self.timeout}s fetching {url}") from e
        except requests.exceptions.RequestException as e:
            raise FetchFailed(f"Network error fetching {url}: {e}") from e

        logging.debug(f"Response status for {url}: {response.status_code}")

        if use_session and (
            response.status_code in (401, 403) or self.session.is_login_url(response.url)
        ):
            raise FetchFailed(f"Session rejected fetching {url} (HTTP {response.status_code})")

        if not response.ok:
            raise FetchFailed(f"HTTP {response.status_code} fetching {url}")

        return response.text

    def fetch_weather(self, provider_code: str, use_session: bool) -> Tuple[int, str]:
        """Fetch a page and extract (temperature, condition) from it."""
        content = self.fetch(provider_code, use_session)
        temperature, condition = extract_weather(content)
        if temperature is None:
            raise FetchFailed(f"No temperature found in page for {provider_code}")
        return temperature, condition
