"""Tests for the weather.com login session."""
import pytest
import requests
from bs4.exceptions import ParserRejectedMarkup
from unittest.mock import Mock, patch
from weather_session import WeatherComSession

LOGIN_URL = "https://weather.com/signin"

LOGIN_PAGE = """
<html><body>
  <form action="/api/login" method="post">
    <input type="hidden" name="csrf" value="tok123">
    <input id="email" name="email" type="email">
    <input id="password" name="password" type="password">
    <button type="submit">Sign in</button>
  </form>
</body></html>
"""


def make_response(text="", url=LOGIN_URL, status_code=200):
    response = Mock()
    response.text = text
    response.url = url
    response.status_code = status_code
    response.ok = status_code < 400
    return response


@pytest.fixture
def http():
    """Mock requests.Session with a real cookie jar."""
    mock_http = Mock()
    mock_http.cookies = requests.cookies.RequestsCookieJar()
    mock_http.cookies.set("sid", "abc")
    mock_http.get.return_value = make_response(LOGIN_PAGE)
    return mock_http


def make_session(http, credentials=("user@example.com", "hunter2")):
    return WeatherComSession(credentials=credentials, login_url=LOGIN_URL, timeout=5, http=http)


def test_login_without_credentials_skips_network(http):
    """No credentials is a valid configuration: False, and no I/O."""
    session = make_session(http, credentials=None)

    assert session.login() is False
    assert session.is_authenticated() is False
    http.get.assert_not_called()
    http.post.assert_not_called()


def test_login_with_partial_credentials_is_anonymous(http):
    session = make_session(http, credentials=("user@example.com", ""))
    assert session.login() is False
    http.get.assert_not_called()


def test_login_success_via_account_element(http):
    http.post.return_value = make_response(
        '<div data-testid="AccountMenu">My account</div>', url="https://weather.com/"
    )
    session = make_session(http)

    assert session.login() is True
    assert session.is_authenticated() is True
    assert session.snapshot() == (True, {"sid": "abc"})

    args, kwargs = http.post.call_args
    assert args[0] == "https://weather.com/api/login"
    assert kwargs["data"] == {"csrf": "tok123", "email": "user@example.com", "password": "hunter2"}
    assert kwargs["timeout"] == 5


def test_login_success_via_redirect_url(http):
    http.post.return_value = make_response("<html></html>", url="https://weather.com/account/profile")
    session = make_session(http)

    assert session.login() is True


def test_login_success_when_leaving_login_page(http):
    http.post.return_value = make_response("<html><body>Home</body></html>", url="https://weather.com/")
    session = make_session(http)

    assert session.login() is True


def test_login_error_banner_fails(http):
    http.post.return_value = make_response(
        '<div role="alert">Invalid email or password</div>' + LOGIN_PAGE, url=LOGIN_URL
    )
    session = make_session(http)

    assert session.login() is False
    assert session.is_authenticated() is False
    assert session.snapshot() == (False, {})


def test_login_still_on_login_page_fails(http):
    http.post.return_value = make_response(LOGIN_PAGE, url=LOGIN_URL)
    session = make_session(http)

    assert session.login() is False


def test_login_missing_fields_fails_before_submit(http):
    http.get.return_value = make_response('<form><input name="q" type="search"></form>')
    session = make_session(http)

    assert session.login() is False
    http.post.assert_not_called()


def test_login_permissive_locators(http):
    """Inputs without exact id/name/type matches are found by substring hints."""
    http.get.return_value = make_response("""
    <form action="https://auth.weather.com/submit">
      <input name="login_identifier" type="text" placeholder="Your email address">
      <input name="user_pass" type="text">
    </form>
    """)
    http.post.return_value = make_response("<html></html>", url="https://weather.com/")
    session = make_session(http)

    assert session.login() is True
    args, kwargs = http.post.call_args
    assert args[0] == "https://auth.weather.com/submit"
    assert kwargs["data"] == {"login_identifier": "user@example.com", "user_pass": "hunter2"}


def test_login_network_error_is_non_fatal(http):
    http.get.side_effect = requests.exceptions.ConnectionError("connection refused")
    session = make_session(http)

    assert session.login() is False
    assert session.is_authenticated() is False


def test_login_parser_error_is_non_fatal(http):
    """Unexpected errors inside the handshake still mean "proceed anonymously"."""
    session = make_session(http)

    with patch("weather_session.BeautifulSoup", side_effect=ParserRejectedMarkup("bad")):
        assert session.login() is False

    assert session.is_authenticated() is False
    assert session.snapshot() == (False, {})
    http.post.assert_not_called()


def test_login_submit_http_error_fails(http):
    http.post.return_value = make_response("Server error", url="https://weather.com/api/login", status_code=500)
    session = make_session(http)

    assert session.login() is False


def test_reauthenticate_logs_in_again(http):
    http.post.return_value = make_response("<html></html>", url="https://weather.com/")
    session = make_session(http)
    session.login()

    assert session.reauthenticate() is True
    assert http.get.call_count == 2
    # old cookies are dropped before the new handshake
    assert session.snapshot() == (True, {})


def test_snapshot_returns_copy(http):
    http.post.return_value = make_response("<html></html>", url="https://weather.com/")
    session = make_session(http)
    session.login()

    _, cookies = session.snapshot()
    cookies["sid"] = "tampered"
    assert session.snapshot()[1] == {"sid": "abc"}


def test_close_returns_to_anonymous(http):
    http.post.return_value = make_response("<html></html>", url="https://weather.com/")
    session = make_session(http)
    session.login()

    session.close()

    assert session.is_authenticated() is False
    http.close.assert_called_once()


def test_is_login_url():
    session = WeatherComSession(login_url=LOGIN_URL, http=Mock())

    assert session.is_login_url("https://weather.com/signin/") is True
    assert session.is_login_url("https://weather.com/signin?next=/") is True
    assert session.is_login_url("https://weather.com/weather/today") is False
