"""SQLite persistence for cities, readings and user favorites."""
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, List, Optional

from city_resolver import DEFAULT_CITIES, KNOWN_CITY_CODES
from weather_data import City, Reading
from weather_provider import CacheWriteFailed

# Fixed-width UTC format so stored timestamps sort lexically
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

SCHEMA = """
CREATE TABLE IF NOT EXISTS cities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    name_key TEXT NOT NULL UNIQUE,
    country_code TEXT NOT NULL DEFAULT 'UK',
    provider_code TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS readings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    city_id INTEGER NOT NULL REFERENCES cities(id) ON DELETE CASCADE,
    temperature NUMERIC,
    condition TEXT NOT NULL,
    observed_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_readings_city_observed
    ON readings (city_id, observed_at);

CREATE TABLE IF NOT EXISTS favorites (
    user_id INTEGER NOT NULL,
    city_id INTEGER NOT NULL REFERENCES cities(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (user_id, city_id)
);
"""


def city_key(name: str) -> str:
    """Case-insensitive identity of a city name, stored as cities.name_key."""
    return name.strip().casefold()


def to_db_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def from_db_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class WeatherStore:
    """
    Key-value-with-timestamp tables behind the weather cache and favorites.

    Cities and readings are append-only. One connection is shared and
    serialized by a lock; it runs in autocommit mode, so multi-statement
    work must go through transaction().
    """

    def __init__(self, path: str = "weather.sqlite3", seed_cities: Iterable[str] = DEFAULT_CITIES):
        self.path = path
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(path, timeout=10, isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(SCHEMA)
        self._seed(seed_cities)
        logging.info(f"Weather store ready at {path}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logging.info("Weather store closed")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """BEGIN/COMMIT around the block, ROLLBACK and re-raise on any error."""
        with self._lock:
            self._conn.execute("BEGIN")
            try:
                yield self._conn
            except BaseException:
                if self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")

    # Cities

    def find_city(self, name: str) -> Optional[City]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM cities WHERE name_key = ?", (city_key(name),)
            ).fetchone()
        return self._city(row) if row else None

    def find_or_create_city(self, name: str, country_code: str = "UK") -> City:
        with self._lock:
            return self._find_or_create_city(self._conn, name, country_code)

    # Readings

    def latest_reading(self, city_id: int) -> Optional[Reading]:
        """Most recent reading for a city regardless of age."""
        with self._lock:
            row = self._conn.execute(
                """
                SELECT r.*, c.name AS city_name
                FROM readings r
                JOIN cities c ON c.id = r.city_id
                WHERE r.city_id = ?
                ORDER BY r.observed_at DESC, r.id DESC
                LIMIT 1
                """,
                (city_id,),
            ).fetchone()
        return self._reading(row) if row else None

    def add_reading(self, city_id: int, reading: Reading) -> None:
        """
        Append a reading.

        Raises:
            CacheWriteFailed: If the row could not be written
        """
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT INTO readings (city_id, temperature, condition, observed_at) VALUES (?, ?, ?, ?)",
                    (city_id, reading.temperature, reading.condition, to_db_timestamp(reading.observed_at)),
                )
        except sqlite3.Error as e:
            raise CacheWriteFailed(f"Could not store reading for city {city_id}: {e}") from e

    def readings_for_favorites(self, user_id: int, since: datetime) -> List[Reading]:
        """All readings for a user's favorite cities observed after since, newest first."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT r.*, c.name AS city_name
                FROM readings r
                JOIN cities c ON c.id = r.city_id
                JOIN favorites f ON f.city_id = c.id
                WHERE f.user_id = ? AND r.observed_at > ?
                ORDER BY r.observed_at DESC, r.id DESC
                """,
                (user_id, to_db_timestamp(since)),
            ).fetchall()
        return [self._reading(row) for row in rows]

    # Favorites

    def favorite_cities(self, user_id: int) -> List[City]:
        """A user's favorite cities in canonical (case-insensitive name) order."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT c.* FROM cities c
                JOIN favorites f ON f.city_id = c.id
                WHERE f.user_id = ?
                ORDER BY c.name_key, c.id
                """,
                (user_id,),
            ).fetchall()
        return [self._city(row) for row in rows]

    def replace_favorites(self, user_id: int, city_names: Iterable[str]) -> List[City]:
        """
        Atomically replace a user's favorite set.

        Existing favorites are deleted, each city is found or created, and
        the links are inserted, all in one transaction.

        Raises:
            sqlite3.Error: After rolling back, if any statement failed
        """
        cities = []
        with self.transaction() as conn:
            conn.execute("DELETE FROM favorites WHERE user_id = ?", (user_id,))
            for name in city_names:
                city = self._find_or_create_city(conn, name, "UK")
                conn.execute(
                    "INSERT INTO favorites (user_id, city_id) VALUES (?, ?)",
                    (user_id, city.id),
                )
                cities.append(city)
        return cities

    # Internals

    def _seed(self, names: Iterable[str]) -> None:
        with self._lock:
            for name in names:
                self._conn.execute(
                    "INSERT OR IGNORE INTO cities (name, name_key, provider_code) VALUES (?, ?, ?)",
                    (name, city_key(name), KNOWN_CITY_CODES.get(name.lower())),
                )

    def _find_or_create_city(self, conn: sqlite3.Connection, name: str, country_code: str) -> City:
        name = name.strip()
        row = conn.execute("SELECT * FROM cities WHERE name_key = ?", (city_key(name),)).fetchone()
        if row is None:
            cursor = conn.execute(
                "INSERT INTO cities (name, name_key, country_code, provider_code) VALUES (?, ?, ?, ?)",
                (name, city_key(name), country_code, KNOWN_CITY_CODES.get(name.lower())),
            )
            row = conn.execute("SELECT * FROM cities WHERE id = ?", (cursor.lastrowid,)).fetchone()
            logging.info(f"Created city {name!r} (id={row['id']})")
        return self._city(row)

    @staticmethod
    def _city(row: sqlite3.Row) -> City:
        return City(
            id=row["id"],
            name=row["name"],
            country_code=row["country_code"],
            provider_code=row["provider_code"],
        )

    @staticmethod
    def _reading(row: sqlite3.Row) -> Reading:
        return Reading(
            city=row["city_name"],
            temperature=row["temperature"],
            condition=row["condition"],
            observed_at=from_db_timestamp(row["observed_at"]),
            city_id=row["city_id"],
        )
