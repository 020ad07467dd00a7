"""Tests for city name resolution."""
import pytest
from city_resolver import CityResolver


@pytest.fixture
def resolver():
    return CityResolver()


def test_known_city_codes(resolver):
    assert resolver.resolve("London") == "UKXX0085:1:UK"
    assert resolver.resolve("Leeds") == "UKXX0084:1:UK"


def test_resolve_is_case_insensitive(resolver):
    """Every casing of a city resolves to the identical code."""
    assert resolver.resolve("LONDON") == resolver.resolve("London") == resolver.resolve("london")


def test_unknown_city_synthesizes_code(resolver):
    assert resolver.resolve("Nowhereville") == "NOWHEREVILLE:1:UK"
    assert resolver.resolve("nowhereville") == "NOWHEREVILLE:1:UK"


def test_whitespace_is_ignored(resolver):
    assert resolver.resolve("  london ") == "UKXX0085:1:UK"


def test_custom_table_and_suffix():
    resolver = CityResolver({"Paris": "FRXX0076:1:FR"}, region_suffix=":1:FR")

    assert resolver.resolve("paris") == "FRXX0076:1:FR"
    assert resolver.resolve("Lyon") == "LYON:1:FR"
    assert resolver.resolve("London") == "LONDON:1:FR"
