"""Authenticated weather.com session: login handshake and cookie snapshot."""
import logging
import re
import threading
from typing import Dict, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from weather_provider import LoginFailed

Credentials = Tuple[str, str]

DEFAULT_LOGIN_URL = "https://weather.com/signin"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Exact attribute matches, tried before the permissive hint scan
EMAIL_LOCATORS = [
    "input#email",
    'input[name="email"]',
    'input[type="email"]',
    'input[name="username"]',
    "input#username",
]
PASSWORD_LOCATORS = [
    "input#password",
    'input[name="password"]',
    'input[type="password"]',
]
EMAIL_HINTS = ("email", "user", "login")
PASSWORD_HINTS = ("pass",)

AUTHENTICATED_SELECTORS = [
    '[data-testid="AccountMenu"]',
    '[data-testid="userMenu"]',
    'a[href*="logout"]',
    'a[href*="signout"]',
    'a[href*="sign-out"]',
]
POST_LOGIN_URL_PATTERNS = [
    re.compile(r"/(account|profile|member|welcome|dashboard)(/|\?|$)", re.IGNORECASE),
    re.compile(r"[?&](login|signin)=success", re.IGNORECASE),
]
ERROR_BANNER_SELECTORS = [
    '[role="alert"]',
    '[data-testid="errorMessage"]',
    ".error-message",
    ".form-error",
]


def locate_input(
    soup: BeautifulSoup,
    locators: Sequence[str],
    hints: Sequence[str],
    exclude_types: Sequence[str] = ("hidden", "submit", "button"),
):
    """
    Find a form input using exact locators first, then a permissive scan.

    The permissive scan accepts any input whose type, name, or placeholder
    contains one of the hints (case-insensitive).
    """
    for locator in locators:
        element = soup.select_one(locator)
        if element is not None:
            return element

    for element in soup.find_all("input"):
        input_type = (element.get("type") or "text").lower()
        if input_type in exclude_types:
            continue
        haystack = " ".join(
            (element.get(attr) or "").lower() for attr in ("type", "name", "placeholder")
        )
        if any(hint in haystack for hint in hints):
            return element
    return None


class WeatherComSession:
    """
    Owns the single authenticated session for the process.

    Two states: Anonymous (initial) and Authenticated. Only login() and
    reauthenticate() write the cookie blob; readers get a copy through
    snapshot(). Expiry is never detected here: callers fall back to the
    anonymous path when an authenticated fetch fails.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        login_url: str = DEFAULT_LOGIN_URL,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        http: Optional[requests.Session] = None,
    ):
        """
        Initialize the session manager.

        Args:
            credentials: (username, password), or None to stay anonymous
            login_url: URL of the sign-in page
            timeout: HTTP timeout in seconds for each handshake request
            user_agent: Client identity sent with every request
            http: requests.Session to use (a new one is created if omitted)
        """
        self.credentials = credentials if credentials and all(credentials) else None
        self.login_url = login_url
        self.timeout = timeout
        self.user_agent = user_agent
        self._http = http or requests.Session()
        self._lock = threading.RLock()
        self._cookies: Dict[str, str] = {}
        self._authenticated = False

    def login(self) -> bool:
        """
        Perform the login handshake.

        Returns:
            bool: True if the session is now authenticated. False means
            "proceed anonymously" and is never an error for the caller.
        """
        if self.credentials is None:
            logging.warning("weather.com credentials not provided, scraping without login")
            return False

        with self._lock:
            try:
                cookies = self._handshake()
            except LoginFailed as e:
                logging.warning(f"Login to weather.com failed: {e}")
                self._cookies = {}
                self._authenticated = False
                return False
            except Exception as e:
                logging.exception(f"Unexpected error during weather.com login: {e}")
                self._cookies = {}
                self._authenticated = False
                return False
            self._cookies = cookies
            self._authenticated = True

        logging.info(f"Logged into weather.com ({len(cookies)} session cookies)")
        return True

    def reauthenticate(self) -> bool:
        """Drop the current session and log in again."""
        with self._lock:
            logging.info("Re-authenticating weather.com session")
            self._http.cookies.clear()
            self._cookies = {}
            self._authenticated = False
            return self.login()

    def is_authenticated(self) -> bool:
        with self._lock:
            return self._authenticated

    def snapshot(self) -> Tuple[bool, Dict[str, str]]:
        """Consistent (authenticated, cookies) pair; the dict is a copy."""
        with self._lock:
            return self._authenticated, dict(self._cookies)

    def is_login_url(self, url: str) -> bool:
        login_path = urlparse(self.login_url).path.rstrip("/")
        return urlparse(url).path.rstrip("/") == login_path

    def close(self) -> None:
        with self._lock:
            self._http.close()
            self._cookies = {}
            self._authenticated = False
        logging.info("weather.com session closed")

    def _handshake(self) -> Dict[str, str]:
        username, password = self.credentials
        headers = {"User-Agent": self.user_agent}

        try:
            logging.info(f"Opening login page: {self.login_url}")
            page = self._http.get(self.login_url, headers=headers, timeout=self.timeout)
            page.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise LoginFailed(f"login page unavailable: {e}") from e

        soup = BeautifulSoup(page.text, "html.parser")
        email_input = locate_input(
            soup, EMAIL_LOCATORS, EMAIL_HINTS, exclude_types=("hidden", "submit", "button", "password")
        )
        password_input = locate_input(soup, PASSWORD_LOCATORS, PASSWORD_HINTS)
        if email_input is None or password_input is None:
            raise LoginFailed("login form fields not found")

        form = password_input.find_parent("form")
        payload = {}
        for hidden in (form or soup).find_all("input", type="hidden"):
            if hidden.get("name"):
                payload[hidden["name"]] = hidden.get("value", "")
        payload[email_input.get("name") or "email"] = username
        payload[password_input.get("name") or "password"] = password

        action = page.url
        if form is not None and form.get("action"):
            action = urljoin(page.url, form["action"])

        try:
            logging.debug(f"Submitting login form to {action}")
            result = self._http.post(
                action, data=payload, headers=headers, timeout=self.timeout, allow_redirects=True
            )
        except requests.exceptions.RequestException as e:
            raise LoginFailed(f"login submit failed: {e}") from e

        if not result.ok:
            raise LoginFailed(f"login submit returned HTTP {result.status_code}")

        signal = self._success_signal(result)
        logging.debug(f"Login verified by {signal}")
        return requests.utils.dict_from_cookiejar(self._http.cookies)

    def _success_signal(self, response: requests.Response) -> str:
        """Name the first signal proving the login worked, or raise LoginFailed."""
        soup = BeautifulSoup(response.text, "html.parser")

        for selector in AUTHENTICATED_SELECTORS:
            if soup.select_one(selector) is not None:
                return f"element {selector}"

        for pattern in POST_LOGIN_URL_PATTERNS:
            if pattern.search(response.url):
                return f"redirect to {response.url}"

        for selector in ERROR_BANNER_SELECTORS:
            banner = soup.select_one(selector)
            if banner is not None:
                raise LoginFailed(f"login rejected: {banner.get_text(strip=True)[:200]}")

        if not self.is_login_url(response.url):
            return f"left login page for {response.url}"

        raise LoginFailed("still on login page with no success signal")
