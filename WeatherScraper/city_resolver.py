"""Maps human-entered city names to weather.com location codes."""
from typing import Dict, Optional

DEFAULT_REGION_SUFFIX = ":1:UK"

KNOWN_CITY_CODES: Dict[str, str] = {
    "london": "UKXX0085:1:UK",
    "birmingham": "UKXX0016:1:UK",
    "manchester": "UKXX0095:1:UK",
    "glasgow": "UKXX0061:1:UK",
    "leeds": "UKXX0084:1:UK",
}

# Seeded into the store and used when a batch request names no cities
DEFAULT_CITIES = ["London", "Birmingham", "Manchester", "Glasgow", "Leeds"]


class CityResolver:
    """
    Case-insensitive lookup of provider codes.

    Unknown cities get a synthesized code (uppercased name plus the region
    suffix). The synthesized code is a best-effort guess and may not exist
    upstream.
    """

    def __init__(
        self,
        city_codes: Optional[Dict[str, str]] = None,
        region_suffix: str = DEFAULT_REGION_SUFFIX,
    ):
        table = KNOWN_CITY_CODES if city_codes is None else city_codes
        self.city_codes = {name.strip().lower(): code for name, code in table.items()}
        self.region_suffix = region_suffix

    def resolve(self, city_name: str) -> str:
        key = city_name.strip()
        code = self.city_codes.get(key.lower())
        if code is None:
            code = f"{key.upper()}{self.region_suffix}"
        return code

