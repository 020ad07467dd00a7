"""Weather domain model - pure data structures independent of any upstream site."""
from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime, timezone

CONDITION_UNKNOWN = "unknown"
CONDITION_UNAVAILABLE = "unavailable"
CONDITION_ERROR = "error"

# Conditions that may accompany a missing temperature
FAILURE_CONDITIONS = (CONDITION_UNAVAILABLE, CONDITION_ERROR)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class City:
    """A city known to the store."""
    id: int
    name: str
    country_code: str = "UK"
    provider_code: Optional[str] = None


@dataclass(frozen=True)
class Reading:
    """One timestamped weather observation for a city."""
    city: str
    temperature: Optional[float]
    condition: str
    observed_at: datetime = field(default_factory=utcnow)
    city_id: Optional[int] = None

    def __post_init__(self):
        if self.temperature is None and self.condition not in FAILURE_CONDITIONS:
            raise ValueError(
                f"Reading for {self.city!r} has no temperature but condition {self.condition!r}"
            )

    @classmethod
    def unavailable(cls, city: str, observed_at: Optional[datetime] = None) -> "Reading":
        """Sentinel for a city whose every fetch path failed."""
        return cls(city=city, temperature=None, condition=CONDITION_UNAVAILABLE,
                   observed_at=observed_at or utcnow())

    @classmethod
    def error(cls, city: str, observed_at: Optional[datetime] = None) -> "Reading":
        """Sentinel for a city whose scrape raised unexpectedly."""
        return cls(city=city, temperature=None, condition=CONDITION_ERROR,
                   observed_at=observed_at or utcnow())

    @property
    def ok(self) -> bool:
        return self.temperature is not None

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or utcnow()
        return (now - self.observed_at).total_seconds()

    def is_stale(self, max_age_seconds: float = 1800, now: Optional[datetime] = None) -> bool:
        """Check if this reading is too old to be served (age >= max_age_seconds)."""
        return self.age_seconds(now) >= max_age_seconds

    def with_city_id(self, city_id: int) -> "Reading":
        return Reading(
            city=self.city,
            temperature=self.temperature,
            condition=self.condition,
            observed_at=self.observed_at,
            city_id=city_id,
        )

    def to_dict(self) -> dict:
        return {
            "city": self.city,
            "temperature": self.temperature,
            "weather_condition": self.condition,
            "scraped_at": self.observed_at.isoformat(),
        }
