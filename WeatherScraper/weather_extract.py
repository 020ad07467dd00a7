"""Extraction of temperature and condition from weather.com pages - pure functions for testability.

The upstream markup changes often, so each value is pulled out by an ordered
chain of matchers. A matcher takes the parsed page and returns the raw text it
found (or None); the first matcher yielding non-empty text wins. Running out
of matchers is not an error: temperature falls back to None and condition to
"unknown".
"""
import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup

from weather_data import CONDITION_UNKNOWN

Matcher = Callable[[BeautifulSoup], Optional[str]]

TEMPERATURE_SELECTORS = [
    '[data-testid="TemperatureValue"]',
    ".CurrentConditions--tempValue--MHmYY",
    ".today-daypart-temp",
    '[data-testid="wxTempLabel"]',
]

CONDITION_SELECTORS = [
    '[data-testid="WeatherConditions"]',
    ".CurrentConditions--phraseValue--mZC_p",
    ".today-daypart-wxphrase",
    '[data-testid="wxPhrase"]',
]

# Inline page state, e.g. "temperature":15 or "wxPhraseLong":"Partly Cloudy"
_JSON_TEMPERATURE = re.compile(r'"temperature"\s*:\s*(-?\d+)')
_JSON_CONDITION = re.compile(r'"wxPhraseLong"\s*:\s*"([^"]+)"')

_NON_NUMERIC = re.compile(r"[^\d-]")


def css_matcher(selector: str) -> Matcher:
    """Matcher returning the text of the first element matching a CSS selector."""
    def match(soup: BeautifulSoup) -> Optional[str]:
        element = soup.select_one(selector)
        if element is None:
            return None
        return element.get_text(strip=True) or None
    match.__name__ = f"css({selector})"
    return match


def script_matcher(pattern: "re.Pattern[str]") -> Matcher:
    """Matcher searching inline <script> bodies with a regex (first group wins)."""
    def match(soup: BeautifulSoup) -> Optional[str]:
        for script in soup.find_all("script"):
            body = script.string
            if not body:
                continue
            found = pattern.search(body)
            if found and found.group(1).strip():
                return found.group(1).strip()
        return None
    match.__name__ = f"script({pattern.pattern})"
    return match


TEMPERATURE_CHAIN: List[Matcher] = [css_matcher(s) for s in TEMPERATURE_SELECTORS] + [
    script_matcher(_JSON_TEMPERATURE),
]

CONDITION_CHAIN: List[Matcher] = [css_matcher(s) for s in CONDITION_SELECTORS] + [
    script_matcher(_JSON_CONDITION),
]


def first_match(soup: BeautifulSoup, chain: Sequence[Matcher]) -> Optional[str]:
    """Run matchers in priority order and return the first non-empty text."""
    for matcher in chain:
        text = matcher(soup)
        if text:
            logging.debug(f"Matcher {matcher.__name__} yielded {text!r}")
            return text
    return None


def parse_temperature(text: Optional[str]) -> Optional[int]:
    """
    Normalize temperature text to an integer.

    Everything except digits and minus signs is stripped first, so "15°C"
    becomes 15 and "-3°" becomes -3. Decimal points are stripped too, which
    matches how the site renders whole degrees.

    Returns:
        The parsed temperature, or None if nothing numeric remains.
    """
    if not text:
        return None
    cleaned = _NON_NUMERIC.sub("", text)
    try:
        return int(cleaned)
    except ValueError:
        return None


def normalize_condition(text: Optional[str]) -> str:
    if not text or not text.strip():
        return CONDITION_UNKNOWN
    return text.strip().lower()


def _as_soup(content: Union[str, bytes, BeautifulSoup]) -> BeautifulSoup:
    if isinstance(content, BeautifulSoup):
        return content
    return BeautifulSoup(content, "html.parser")


def extract_temperature(
    content: Union[str, bytes, BeautifulSoup],
    chain: Sequence[Matcher] = TEMPERATURE_CHAIN,
) -> Optional[int]:
    return parse_temperature(first_match(_as_soup(content), chain))


def extract_condition(
    content: Union[str, bytes, BeautifulSoup],
    chain: Sequence[Matcher] = CONDITION_CHAIN,
) -> str:
    return normalize_condition(first_match(_as_soup(content), chain))


def extract_weather(content: Union[str, bytes, BeautifulSoup]) -> Tuple[Optional[int], str]:
    """Parse a page once and run both chains over it."""
    soup = _as_soup(content)
    return extract_temperature(soup), extract_condition(soup)
