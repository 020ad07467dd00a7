"""Tests for page retrieval over the authenticated and anonymous paths."""
import pytest
import requests
from unittest.mock import Mock, patch
from page_fetcher import PageFetcher
from weather_provider import FetchFailed

CITY_PAGE = '<span data-testid="TemperatureValue">15°</span><div data-testid="WeatherConditions">Sunny</div>'
LONDON_URL = "https://weather.com/weather/today/l/UKXX0085:1:UK"


def make_response(text=CITY_PAGE, url=LONDON_URL, status_code=200):
    response = Mock()
    response.text = text
    response.url = url
    response.status_code = status_code
    response.ok = status_code < 400
    return response


@pytest.fixture
def session():
    mock_session = Mock()
    mock_session.snapshot.return_value = (True, {"sid": "abc"})
    mock_session.is_login_url.side_effect = lambda url: url.rstrip("/").endswith("/signin")
    return mock_session


@pytest.fixture
def fetcher(session):
    return PageFetcher(session, base_url="https://weather.com/", timeout=12)


def test_page_url(fetcher):
    assert fetcher.page_url("UKXX0085:1:UK") == LONDON_URL


def test_anonymous_fetch(fetcher, session):
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.return_value = make_response()

        assert fetcher.fetch("UKXX0085:1:UK", use_session=False) == CITY_PAGE

        args, kwargs = mock_get.call_args
        assert args[0] == LONDON_URL
        assert kwargs["cookies"] is None
        assert kwargs["timeout"] == 12
        assert "Mozilla" in kwargs["headers"]["User-Agent"]
        session.snapshot.assert_not_called()


def test_authenticated_fetch_sends_cookies(fetcher):
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.return_value = make_response()

        fetcher.fetch("UKXX0085:1:UK", use_session=True)

        assert mock_get.call_args[1]["cookies"] == {"sid": "abc"}


def test_authenticated_fetch_without_session_fails(fetcher, session):
    session.snapshot.return_value = (False, {})
    with patch("page_fetcher.requests.get") as mock_get:
        with pytest.raises(FetchFailed):
            fetcher.fetch("UKXX0085:1:UK", use_session=True)
        mock_get.assert_not_called()


def test_redirect_to_login_means_session_rejected(fetcher):
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.return_value = make_response(url="https://weather.com/signin")

        with pytest.raises(FetchFailed, match="Session rejected"):
            fetcher.fetch("UKXX0085:1:UK", use_session=True)


def test_forbidden_on_authenticated_path(fetcher):
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.return_value = make_response(status_code=403)

        with pytest.raises(FetchFailed, match="Session rejected"):
            fetcher.fetch("UKXX0085:1:UK", use_session=True)


def test_http_error_status(fetcher):
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.return_value = make_response(status_code=503)

        with pytest.raises(FetchFailed, match="HTTP 503"):
            fetcher.fetch("UKXX0085:1:UK", use_session=False)


def test_timeout_is_fetch_failed(fetcher):
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.side_effect = requests.exceptions.Timeout("read timed out")

        with pytest.raises(FetchFailed, match="Timed out"):
            fetcher.fetch("UKXX0085:1:UK", use_session=False)


def test_network_error_is_fetch_failed(fetcher):
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.side_effect = requests.exceptions.ConnectionError("DNS failure")

        with pytest.raises(FetchFailed, match="Network error"):
            fetcher.fetch("UKXX0085:1:UK", use_session=False)


def test_fetch_weather_extracts_values(fetcher):
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.return_value = make_response()

        assert fetcher.fetch_weather("UKXX0085:1:UK", use_session=False) == (15, "sunny")


def test_fetch_weather_without_temperature_fails(fetcher):
    """A page with no recognizable temperature counts as markup-not-found."""
    with patch("page_fetcher.requests.get") as mock_get:
        mock_get.return_value = make_response(text="<html><body>Redesigned!</body></html>")

        with pytest.raises(FetchFailed, match="No temperature"):
            fetcher.fetch_weather("UKXX0085:1:UK", use_session=False)
