"""Environment-driven settings for the weather scraper."""
import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from city_resolver import DEFAULT_REGION_SUFFIX


@dataclass
class Settings:
    username: Optional[str] = None
    password: Optional[str] = None
    base_url: str = "https://weather.com"
    login_path: str = "/signin"
    http_timeout: float = 30.0
    scrape_delay: float = 1.0
    cache_minutes: float = 30.0
    max_favorites: int = 10
    db_path: str = "weather.sqlite3"
    region_suffix: str = DEFAULT_REGION_SUFFIX

    @property
    def credentials(self) -> Optional[Tuple[str, str]]:
        """(username, password), or None unless both are set."""
        if self.username and self.password:
            return self.username, self.password
        return None

    @property
    def login_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.login_path.lstrip("/")

    @property
    def cache_seconds(self) -> float:
        return self.cache_minutes * 60


def _number(name: str, default, cast=float):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid {name}: {raw!r}") from exc
    if value < 0:
        raise SystemExit(f"Invalid {name}: must not be negative")
    return value


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Load .env (if present) and build Settings from the environment."""
    load_dotenv(env_file)
    defaults = Settings()
    settings = Settings(
        username=os.getenv("WEATHER_COM_USERNAME") or None,
        password=os.getenv("WEATHER_COM_PASSWORD") or None,
        base_url=os.getenv("WEATHER_BASE_URL", defaults.base_url),
        login_path=os.getenv("WEATHER_LOGIN_PATH", defaults.login_path),
        http_timeout=_number("WEATHER_HTTP_TIMEOUT", defaults.http_timeout),
        scrape_delay=_number("WEATHER_SCRAPE_DELAY", defaults.scrape_delay),
        cache_minutes=_number("WEATHER_CACHE_MINUTES", defaults.cache_minutes),
        max_favorites=_number("WEATHER_MAX_FAVORITES", defaults.max_favorites, cast=int),
        db_path=os.getenv("WEATHER_DB_PATH", defaults.db_path),
        region_suffix=os.getenv("WEATHER_REGION_SUFFIX", defaults.region_suffix),
    )

    logging.info(
        "Configuration loaded: base_url=%s timeout=%ss delay=%ss cache=%smin login=%s",
        settings.base_url,
        settings.http_timeout,
        settings.scrape_delay,
        settings.cache_minutes,
        "yes" if settings.credentials else "no",
    )
    return settings
